# src/labimport/stores/uploads.py

import hashlib
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from labimport.database.models import Upload
from labimport.ingestion.context import EntityHandle, ImportContext
from labimport.stores.base import UploadStore

logger = logging.getLogger(__name__)

DEFAULT_COMMENT = "Click to add a comment"


def make_long_name(real_name: str) -> str:
    """
    Random storage name keeping the original extension, placed in a
    two-character subfolder: "3f/3fa1...e9.pdf".
    """
    digest = hashlib.sha512(uuid.uuid4().bytes).hexdigest()
    ext = Path(real_name).suffix.lower()
    return f"{digest[:2]}/{digest}{ext}"


def file_hash(path: Path, chunk_size: int = 65536) -> str:
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            sha.update(chunk)
    return sha.hexdigest()


class SqlUploadStore(UploadStore):
    """
    Copies files into uploads_dir and records them in the uploads table.

    Rows are only added to the session; committing is up to the caller.
    Files written since the last keep_pending() can be removed again with
    discard_pending() when the caller rolls back.
    """

    def __init__(self, db: Session, context: ImportContext, uploads_dir: Union[str, Path]):
        self.db = db
        self.context = context
        self.uploads_dir = Path(uploads_dir)
        self._pending: List[Path] = []

    def attach_file(
        self,
        entity: EntityHandle,
        path: Path,
        comment: Optional[str] = None,
        real_name: Optional[str] = None,
    ) -> Upload:
        path = Path(path)
        real_name = real_name or path.name
        long_name = make_long_name(real_name)
        dest = self.uploads_dir / long_name
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, dest)
            digest = file_hash(dest)
            size = dest.stat().st_size
        except OSError:
            self._remove(dest)
            raise
        self._pending.append(dest)

        upload = Upload(
            real_name=real_name,
            long_name=long_name,
            comment=comment if comment is not None else DEFAULT_COMMENT,
            item_id=entity.id,
            type=entity.type_name,
            userid=self.context.user_id,
            hash=digest,
            filesize=size,
        )
        self.db.add(upload)
        logger.debug(f"Stored {real_name} as {long_name} for {entity.type_name} #{entity.id}")
        return upload

    @staticmethod
    def _remove(stored: Path) -> None:
        try:
            os.remove(stored)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove orphaned upload {stored}: {e}")

    def discard_pending(self) -> None:
        for stored in self._pending:
            self._remove(stored)
        self._pending = []

    def keep_pending(self) -> None:
        self._pending = []
