# labimport/ingestion/manifest.py

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from labimport.core.config import MANIFEST_NAME
from labimport.core.errors import ManifestMalformed, ManifestMissing

logger = logging.getLogger(__name__)

# Key whose presence marks a record as an experiment
CORRELATION_KEY = "elabid"


class ImportKind(str, Enum):
    """Entity family the records of one manifest become."""
    ITEMS = "items"
    EXPERIMENTS = "experiments"


# --- Pydantic Schemas ---

def _scalar_to_text(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class AttachmentRef(BaseModel):
    real_name: str
    comment: Optional[str] = None
    # Sub-path relative to the archive root, when the exporter recorded one
    path: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="allow")


class ImportRecord(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    date: Optional[str] = None
    tags: Optional[str] = None
    category: Optional[str] = None
    elabid: Optional[str] = None
    uploads: List[AttachmentRef] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="allow")

    @field_validator("title", "body", "date", "tags", "category", "elabid", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _scalar_to_text(value)

    @field_validator("uploads", mode="before")
    @classmethod
    def _uploads_list(cls, value):
        # Exporters write null or false when a record has no attachment
        if not isinstance(value, list):
            return []
        return value

    @property
    def is_experiment_shaped(self) -> bool:
        return self.elabid is not None


class Manifest(BaseModel):
    kind: ImportKind
    records: List[ImportRecord] = Field(default_factory=list)
    # True when the manifest named its kind instead of having it sniffed
    explicit_kind: bool = False
    # Indices of records whose shape disagrees with kind
    divergent: List[int] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __len__(self) -> int:
        return len(self.records)


# --- Reading ---

def _split_document(data: Any, path: Path):
    """Return (explicit kind or None, raw record list) for a loaded manifest."""
    if isinstance(data, list):
        return None, data
    if isinstance(data, dict) and "records" in data:
        records = data["records"]
        if not isinstance(records, list):
            raise ManifestMalformed(path, "'records' must be a list")
        raw_kind = data.get("kind")
        if raw_kind is None:
            return None, records
        try:
            return ImportKind(raw_kind), records
        except ValueError:
            raise ManifestMalformed(
                path, f"unknown kind '{raw_kind}', expected one of {[k.value for k in ImportKind]}"
            )
    raise ManifestMalformed(path, "expected a list of records or an object with a 'records' list")


def sniff_kind(first_record: Optional[Dict[str, Any]]) -> ImportKind:
    """
    Classify a whole manifest from its first record: a correlation id means
    experiments, anything else means items.
    """
    if first_record is not None and first_record.get(CORRELATION_KEY) is not None:
        return ImportKind.EXPERIMENTS
    return ImportKind.ITEMS


def find_divergent(records: List[ImportRecord], kind: ImportKind) -> List[int]:
    expect_experiment = kind == ImportKind.EXPERIMENTS
    return [
        index for index, record in enumerate(records)
        if record.is_experiment_shaped != expect_experiment
    ]


def read_manifest(
    root_dir: Union[str, Path],
    manifest_name: str = MANIFEST_NAME,
    strict: bool = False,
) -> Manifest:
    """
    Load the manifest at the root of an extracted archive.

    Raises ManifestMissing when the file is absent and ManifestMalformed when
    it is not a valid manifest, or (with strict) when records of both kinds
    are mixed in one file.
    """
    path = Path(root_dir) / manifest_name
    if not path.is_file():
        raise ManifestMissing(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestMalformed(path, f"invalid JSON ({e})") from e
    except OSError as e:
        raise ManifestMalformed(path, f"cannot read file ({e})") from e

    explicit_kind, raw_records = _split_document(data, path)

    records = []
    for index, raw in enumerate(raw_records):
        if not isinstance(raw, dict):
            raise ManifestMalformed(path, f"record #{index} is a {type(raw).__name__}, not an object")
        try:
            records.append(ImportRecord.model_validate(raw))
        except ValidationError as e:
            raise ManifestMalformed(path, f"record #{index}: {e}") from e

    kind = explicit_kind or sniff_kind(raw_records[0] if raw_records else None)
    divergent = find_divergent(records, kind)
    if divergent:
        message = (
            f"{len(divergent)} record(s) do not look like {kind.value} "
            f"(indices {divergent}); they will be imported as {kind.value}"
        )
        if strict:
            raise ManifestMalformed(path, message)
        logger.warning(f"{path}: {message}")

    logger.debug(f"Read {len(records)} {kind.value} records from {path}")
    return Manifest(
        kind=kind,
        records=records,
        explicit_kind=explicit_kind is not None,
        divergent=divergent,
    )
