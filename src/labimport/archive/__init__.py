"""Archive bundle access."""

from labimport.archive.extractor import ArchiveExtractor, extract, validate_archive
from labimport.archive.workspace import extracted_archive, remove_tree

__all__ = ["ArchiveExtractor", "extract", "extracted_archive", "remove_tree", "validate_archive"]
