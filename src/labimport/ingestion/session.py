"""
Import session: one end-to-end run of the pipeline over one archive.

    CREATED -> EXTRACTED -> MANIFEST_LOADED -> IMPORTING -> FINISHED | ABORTED

and TORN_DOWN once the extraction directory has been removed, whatever the
outcome was.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session
from tqdm import tqdm

from labimport.archive.extractor import ArchiveExtractor
from labimport.archive.workspace import extracted_archive, remove_tree
from labimport.core.config import Settings, get_settings
from labimport.core.errors import LabImportError, SessionStateError
from labimport.ingestion.attachments import ResolvedAttachment, resolve
from labimport.ingestion.context import EntityHandle, ImportContext
from labimport.ingestion.importer import RecordImporter
from labimport.ingestion.manifest import ImportKind, Manifest, read_manifest
from labimport.stores.base import TagStore, UploadStore
from labimport.stores.tags import SqlTagStore
from labimport.stores.uploads import SqlUploadStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CREATED = "created"
    EXTRACTED = "extracted"
    MANIFEST_LOADED = "manifest_loaded"
    IMPORTING = "importing"
    FINISHED = "finished"
    ABORTED = "aborted"
    TORN_DOWN = "torn_down"


@dataclass
class ImportResult:
    inserted: int
    kind: ImportKind
    state: SessionState
    attached: int = 0
    skipped_attachments: int = 0
    entities: List[EntityHandle] = field(default_factory=list)


def new_extraction_dir(tmp_root: Union[str, Path]) -> Path:
    """A directory name under tmp_root no other import will pick."""
    return Path(tmp_root) / f"import-{uuid.uuid4().hex}"


class ImportSession:
    """
    Imports every record of one archive into the database.

    target is the item type id when the archive holds items, and the id of
    the user the experiments are attributed to when it holds experiments.
    A session runs once. Whatever happens, its extraction directory is gone
    when run() returns or raises.
    """

    def __init__(
        self,
        archive_path: Union[str, Path],
        context: ImportContext,
        target: int,
        db: Session,
        uploads: Optional[UploadStore] = None,
        tags: Optional[TagStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.archive_path = Path(archive_path)
        self.context = context
        self.target = target
        self.db = db
        self.uploads = uploads or SqlUploadStore(db, context, self.settings.uploads_dir)
        self.tags = tags or SqlTagStore(db, context.team_id)
        self.tmp_path = new_extraction_dir(self.settings.tmp_dir)

        self.state = SessionState.CREATED
        self.outcome: Optional[SessionState] = None
        self.phase = "created"
        self.manifest: Optional[Manifest] = None
        self.inserted = 0
        self.entities: List[EntityHandle] = []
        self._importer: Optional[RecordImporter] = None

    @property
    def kind(self) -> Optional[ImportKind]:
        return self.manifest.kind if self.manifest else None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.teardown()
        return False

    def teardown(self) -> None:
        """Remove the extraction directory. Safe to call more than once."""
        remove_tree(self.tmp_path)
        self.state = SessionState.TORN_DOWN

    def _import_all(self, root: Path) -> None:
        self._importer = RecordImporter(
            self.db,
            self.context,
            self.manifest.kind,
            self.target,
            root,
            self.uploads,
            self.tags,
        )
        records = tqdm(
            self.manifest.records,
            desc="Importing records",
            disable=not self.settings.show_progress,
        )
        for index, record in enumerate(records):
            entity = self._importer.import_record(record, index)
            self.entities.append(entity)
            self.inserted += 1

    def run(self) -> ImportResult:
        """
        Run the whole pipeline.

        Returns an ImportResult on success. On failure the phase and the
        number of records already committed are set on the raised error.
        """
        if self.state != SessionState.CREATED:
            raise SessionStateError(f"Import session for '{self.archive_path}' has already run")

        try:
            self.phase = "validate"
            extractor = ArchiveExtractor(self.archive_path)

            self.phase = "extract"
            with extracted_archive(extractor, self.tmp_path) as root:
                self.state = SessionState.EXTRACTED

                self.phase = "manifest"
                self.manifest = read_manifest(
                    root, self.settings.manifest_name, strict=self.settings.strict_manifest
                )
                self.state = SessionState.MANIFEST_LOADED
                logger.info(
                    f"Importing {len(self.manifest)} {self.manifest.kind.value} from {self.archive_path}"
                )

                self.phase = "import"
                self.state = SessionState.IMPORTING
                self._import_all(root)
        except LabImportError as e:
            self.outcome = SessionState.ABORTED
            e.phase = self.phase
            e.inserted = self.inserted
            logger.error(f"Import of {self.archive_path} aborted during {self.phase}: {e}")
            raise
        except Exception:
            self.outcome = SessionState.ABORTED
            logger.exception(f"Import of {self.archive_path} aborted during {self.phase}")
            raise
        finally:
            self.state = SessionState.TORN_DOWN

        self.outcome = SessionState.FINISHED
        self.phase = "finished"
        logger.info(f"Imported {self.inserted} {self.manifest.kind.value} from {self.archive_path}")
        return ImportResult(
            inserted=self.inserted,
            kind=self.manifest.kind,
            state=self.outcome,
            attached=self._importer.attached if self._importer else 0,
            skipped_attachments=self._importer.skipped_attachments if self._importer else 0,
            entities=list(self.entities),
        )


def import_archive(
    archive_path: Union[str, Path],
    context: ImportContext,
    target: int,
    db: Session,
    settings: Optional[Settings] = None,
) -> ImportResult:
    """Run one ImportSession with the SQL upload and tag stores."""
    return ImportSession(archive_path, context, target, db, settings=settings).run()


def preview_archive(
    archive_path: Union[str, Path],
    settings: Optional[Settings] = None,
) -> Tuple[Manifest, Dict[int, List[ResolvedAttachment]]]:
    """
    Read an archive's manifest and resolve its attachments without writing
    anything to the database. The extraction directory is removed before
    returning.
    """
    settings = settings or get_settings()
    with extracted_archive(archive_path, new_extraction_dir(settings.tmp_dir)) as root:
        manifest = read_manifest(root, settings.manifest_name, strict=settings.strict_manifest)
        attachments = {
            index: resolve(root, record, manifest.kind)
            for index, record in enumerate(manifest.records)
        }
    return manifest, attachments
