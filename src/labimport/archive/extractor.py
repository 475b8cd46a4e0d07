"""Archive extraction component.

Validates an archive bundle and unpacks every entry into a fresh directory,
preserving relative paths.
"""

import logging
import os
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Union

from labimport.core.errors import ArchiveExtractionFailed, ArchiveUnreadable

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"

PathLike = Union[str, Path]


def validate_archive(archive_path: PathLike) -> Path:
    """Check that a path points at a readable zip archive.

    Nothing is written to disk.

    Args:
        archive_path: Path to the archive file

    Returns:
        The archive path as a Path

    Raises:
        ArchiveUnreadable: If the file is missing, unreadable or not a zip
    """
    path = Path(archive_path)
    if not path.exists():
        raise ArchiveUnreadable(path, "file not found")
    if not path.is_file():
        raise ArchiveUnreadable(path, "not a regular file")
    if not os.access(path, os.R_OK):
        raise ArchiveUnreadable(path, "permission denied")
    if path.suffix.lower() != ARCHIVE_SUFFIX:
        raise ArchiveUnreadable(path, f"expected a '{ARCHIVE_SUFFIX}' file, got '{path.suffix or path.name}'")
    if not zipfile.is_zipfile(path):
        raise ArchiveUnreadable(path, "not a valid ZIP file")
    return path


def is_safe_member(name: str) -> bool:
    """Check that an archive member path stays inside the extraction root."""
    if not name or name.startswith(("/", "\\")):
        return False
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if any(part == ".." for part in parts):
        return False
    # Windows drive letters ("C:foo")
    if parts and len(parts[0]) >= 2 and parts[0][1] == ":":
        return False
    return True


class ArchiveExtractor:
    """Unpacks one archive bundle into a directory it creates itself."""

    def __init__(self, archive_path: PathLike):
        """Initialize with path to archive ZIP file.

        Args:
            archive_path: Path to the archive zip file

        Raises:
            ArchiveUnreadable: If the archive fails validation
        """
        self.archive_path = validate_archive(archive_path)

    def extract_to(self, dest_dir: PathLike) -> List[str]:
        """Extract every entry of the archive into dest_dir.

        dest_dir must not exist yet: it is created here, exclusively, so two
        imports can never share an extraction directory. When extraction fails
        half-way dest_dir is left behind for its owner to remove.

        Args:
            dest_dir: Directory to create and extract into

        Returns:
            Names of the extracted members, in archive order

        Raises:
            ArchiveUnreadable: If the archive cannot be opened
            ArchiveExtractionFailed: If dest_dir exists or an entry cannot be written
        """
        dest = Path(dest_dir)
        try:
            archive = zipfile.ZipFile(self.archive_path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveUnreadable(self.archive_path, str(e)) from e

        with archive:
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.mkdir(exist_ok=False)
            except FileExistsError as e:
                raise ArchiveExtractionFailed(self.archive_path, f"destination '{dest}' already exists") from e
            except OSError as e:
                raise ArchiveExtractionFailed(self.archive_path, f"cannot create '{dest}': {e}") from e

            extracted = []
            for info in archive.infolist():
                if not is_safe_member(info.filename):
                    raise ArchiveExtractionFailed(self.archive_path, f"unsafe member path '{info.filename}'")
                target = dest / info.filename
                try:
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                    else:
                        target.parent.mkdir(parents=True, exist_ok=True)
                        with archive.open(info) as src, open(target, "wb") as out:
                            shutil.copyfileobj(src, out)
                except (zipfile.BadZipFile, OSError, RuntimeError) as e:
                    raise ArchiveExtractionFailed(self.archive_path, f"entry '{info.filename}': {e}") from e
                extracted.append(info.filename)

        logger.info(f"Extracted {len(extracted)} entries from {self.archive_path} to {dest}")
        return extracted


def extract(archive_path: PathLike, dest_dir: PathLike) -> List[str]:
    """Validate archive_path and extract it into the not-yet-existing dest_dir."""
    return ArchiveExtractor(archive_path).extract_to(dest_dir)
