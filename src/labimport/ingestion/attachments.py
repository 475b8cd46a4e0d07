"""
Attachment path resolution.

Exporters store the files of a record in one folder per record:

    experiments:  <date>-<sanitized title>/<real_name>
    items:        <category> - <sanitized title>/<real_name>

When two attachments of one record share a real_name, the exporter prefixes
the second file on disk ("1_name.pdf") while the manifest still lists the
plain name. That rename is not reversed here: such a file resolves to a path
that does not exist and is skipped by the importer.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from labimport.core.utils import legacy_sanitize_title, sanitize_title
from labimport.ingestion.manifest import ImportKind, ImportRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAttachment:
    absolute_path: Path
    display_name: str
    comment: Optional[str]
    exists: bool


def _folder_name(record: ImportRecord, kind: ImportKind, title_part: str) -> str:
    if kind == ImportKind.EXPERIMENTS:
        return f"{record.date or ''}-{title_part}"
    return f"{record.category or ''} - {title_part}"


def record_folder_names(record: ImportRecord, kind: ImportKind) -> List[str]:
    """Candidate folder names for a record's attachments, most likely first."""
    title = record.title or ""
    names = [_folder_name(record, kind, sanitize_title(title))]
    legacy = _folder_name(record, kind, legacy_sanitize_title(title))
    if legacy not in names:
        names.append(legacy)
    return names


def _is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def _inside(root: Path, path: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def resolve(root_dir: Union[str, Path], record: ImportRecord, kind: ImportKind) -> List[ResolvedAttachment]:
    """
    Compute where each attachment of record should sit in the extracted tree.

    Every attachment yields one ResolvedAttachment; exists is False when the
    computed path is not a readable file. Nothing here raises for a missing
    file.
    """
    root = Path(root_dir)
    folders = record_folder_names(record, kind)
    resolved = []

    for ref in record.uploads:
        if ref.path:
            candidate = root / ref.path
            exists = _inside(root, candidate) and _is_readable_file(candidate)
        else:
            candidates = [root / folder / ref.real_name for folder in folders]
            found = [c for c in candidates if _inside(root, c) and _is_readable_file(c)]
            candidate = found[0] if found else candidates[0]
            exists = bool(found)

        if not exists:
            logger.debug(f"Attachment '{ref.real_name}' of '{record.title}' not found at {candidate}")

        resolved.append(ResolvedAttachment(
            absolute_path=candidate.absolute(),
            display_name=ref.real_name,
            comment=ref.comment,
            exists=exists,
        ))

    return resolved
