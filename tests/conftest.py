"""
Shared fixtures: an in-memory database, isolated upload/tmp folders and a
helper building archive bundles.
"""

import json
import zipfile

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from labimport.core.config import MANIFEST_NAME, Settings
from labimport.database.models import Base, ItemType, Status
from labimport.ingestion.context import ImportContext
from labimport.stores.base import TagStore, UploadStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    # team 1 is the importing team, team 2 only exists to check scoping
    session.add_all([
        ItemType(id=1, team=1, name="Plasmid"),
        Status(id=1, team=2, name="Running", is_default=True),
        Status(id=2, team=1, name="Running", is_default=False),
        Status(id=3, team=1, name="Success", is_default=True),
    ])
    session.commit()
    yield session
    session.close()


@pytest.fixture
def context():
    return ImportContext(user_id=7, team_id=1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        uploads_dir=tmp_path / "uploads",
        tmp_dir=tmp_path / "tmp",
    )


@pytest.fixture
def make_archive(tmp_path):
    """
    Build a zip bundle. manifest is dumped as JSON unless it is already a
    string; files maps archive paths to contents.
    """
    def _make(manifest, files=None, name="export.zip", manifest_name=MANIFEST_NAME):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as z:
            if manifest is not None:
                text = manifest if isinstance(manifest, str) else json.dumps(manifest)
                z.writestr(manifest_name, text)
            for member, content in (files or {}).items():
                z.writestr(member, content)
        return path

    return _make


class RecordingTagStore(TagStore):
    def __init__(self):
        self.calls = []

    def add_tag(self, entity, tag):
        self.calls.append((entity, tag))


class RecordingUploadStore(UploadStore):
    def __init__(self):
        self.calls = []
        self.discarded = 0

    def attach_file(self, entity, path, comment=None, real_name=None):
        self.calls.append((entity, path, comment))

    def discard_pending(self):
        self.discarded += 1


@pytest.fixture
def tag_store():
    return RecordingTagStore()


@pytest.fixture
def upload_store():
    return RecordingUploadStore()
