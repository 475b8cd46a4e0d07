"""Temporary extraction directories.

An extraction directory is owned by exactly one import. extracted_archive()
acquires it and removes it again on every exit path, including errors raised
while the caller works inside the with block.
"""

import contextlib
import logging
import os
from pathlib import Path
from typing import Iterator, Union

from labimport.archive.extractor import ArchiveExtractor
from labimport.core.errors import ArchiveExtractionFailed, CleanupError

logger = logging.getLogger(__name__)


def _remove(func, path: str) -> bool:
    try:
        func(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(str(CleanupError(path, str(e))))
        return False
    return True


def remove_tree(path: Union[str, Path]) -> bool:
    """Delete a directory tree bottom-up: files first, then their parent directory.

    A directory that does not exist counts as already removed. Other failures
    are logged and reported through the return value, never raised.

    Args:
        path: Root of the tree to remove

    Returns:
        True when everything was removed
    """
    root = str(path)
    if not os.path.lexists(root):
        return True

    ok = True
    for dirpath, dirnames, filenames in os.walk(root, topdown=False):
        for name in filenames:
            ok = _remove(os.unlink, os.path.join(dirpath, name)) and ok
        for name in dirnames:
            full = os.path.join(dirpath, name)
            # symlinked directories are listed but never walked into
            remover = os.unlink if os.path.islink(full) else os.rmdir
            ok = _remove(remover, full) and ok
    ok = _remove(os.rmdir, root) and ok

    if ok:
        logger.debug(f"Removed temporary directory {root}")
    return ok


@contextlib.contextmanager
def extracted_archive(
    archive: Union[str, Path, ArchiveExtractor],
    dest_dir: Union[str, Path],
) -> Iterator[Path]:
    """
    Use as:
        with extracted_archive("bundle.zip", tmp_root / "import-1") as root:
            ...
    """
    extractor = archive if isinstance(archive, ArchiveExtractor) else ArchiveExtractor(archive)
    dest = Path(dest_dir)
    try:
        extractor.extract_to(dest)
    except ArchiveExtractionFailed as e:
        # a pre-existing destination belongs to someone else
        if not isinstance(e.__cause__, FileExistsError):
            remove_tree(dest)
        raise
    try:
        yield dest
    finally:
        remove_tree(dest)
