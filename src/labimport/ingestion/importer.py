# labimport/ingestion/importer.py

import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labimport.core.errors import InvalidRecord, PersistenceFailed
from labimport.core.utils import parse_record_date
from labimport.database.models import Experiment, Item, Status
from labimport.ingestion.attachments import resolve
from labimport.ingestion.context import EntityHandle, ImportContext
from labimport.ingestion.manifest import ImportKind, ImportRecord
from labimport.ingestion.tags import ingest_tags
from labimport.stores.base import TagStore, UploadStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "date", "body")
EXPERIMENT_VISIBILITY = "team"

_NO_STATUS = object()


class RecordImporter:
    """
    Turns manifest records into items or experiments.

    target means the item type id for items, and the owning user id for
    experiments. Each record is committed on its own together with its
    uploads and tags; a failure rolls the whole record back.
    """

    def __init__(
        self,
        db: Session,
        context: ImportContext,
        kind: ImportKind,
        target: int,
        root_dir: Union[str, Path],
        uploads: UploadStore,
        tags: TagStore,
    ):
        self.db = db
        self.context = context
        self.kind = kind
        self.target = target
        self.root_dir = Path(root_dir)
        self.uploads = uploads
        self.tags = tags
        self.attached = 0
        self.skipped_attachments = 0
        self._default_status = _NO_STATUS

    def validate(self, record: ImportRecord, index: int = 0) -> date:
        """Check required fields and return the record's calendar date."""
        missing = [name for name in REQUIRED_FIELDS if getattr(record, name) is None]
        if missing:
            raise InvalidRecord(index, f"missing required field(s): {', '.join(missing)}")

        if record.date.strip() == "":
            return date.today()
        day = parse_record_date(record.date)
        if day is None:
            raise InvalidRecord(index, f"unparseable date '{record.date}'")
        return day

    def default_status_id(self) -> Optional[int]:
        """Id of the importing team's default experiment status, looked up once."""
        if self._default_status is _NO_STATUS:
            row = (
                self.db.query(Status.id)
                .filter(Status.team == self.context.team_id, Status.is_default.is_(True))
                .order_by(Status.id)
                .first()
            )
            self._default_status = row[0] if row else None
            if self._default_status is None:
                logger.warning(f"Team {self.context.team_id} has no default status; experiments get none")
        return self._default_status

    def _insert(self, record: ImportRecord, day: date) -> EntityHandle:
        if self.kind == ImportKind.EXPERIMENTS:
            entity = Experiment(
                team=self.context.team_id,
                title=record.title,
                date=day,
                body=record.body,
                userid=self.target,
                visibility=EXPERIMENT_VISIBILITY,
                status=self.default_status_id(),
                elabid=record.elabid,
            )
        else:
            entity = Item(
                team=self.context.team_id,
                title=record.title,
                date=day,
                body=record.body,
                userid=self.context.user_id,
                type=self.target,
            )
        self.db.add(entity)
        # needed to get the new id before attaching uploads and tags
        self.db.flush()
        return EntityHandle(kind=self.kind, id=entity.id)

    def _attach_files(self, entity: EntityHandle, record: ImportRecord) -> None:
        for attachment in resolve(self.root_dir, record, self.kind):
            if not attachment.exists:
                self.skipped_attachments += 1
                continue
            try:
                self.uploads.attach_file(
                    entity, attachment.absolute_path, attachment.comment, real_name=attachment.display_name
                )
            except OSError as e:
                logger.warning(f"Could not store attachment '{attachment.display_name}' of '{record.title}': {e}")
                self.skipped_attachments += 1
                continue
            self.attached += 1

    def _rollback(self) -> None:
        self.db.rollback()
        self.uploads.discard_pending()

    def import_record(self, record: ImportRecord, index: int = 0) -> EntityHandle:
        """
        Persist one record with its attachments and tags.

        Raises InvalidRecord before touching the database when required fields
        are missing, and PersistenceFailed when the database refuses the record.
        """
        day = self.validate(record, index)

        try:
            entity = self._insert(record, day)
            self._attach_files(entity, record)
            ingest_tags(self.tags, entity, record.tags)
            self.db.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceFailed(index, str(e)) from e
        except Exception:
            self._rollback()
            raise

        self.uploads.keep_pending()
        logger.info(f"Imported {self.kind.value} #{entity.id}: {record.title}")
        return entity
