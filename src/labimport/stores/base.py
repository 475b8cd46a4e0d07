# src/labimport/stores/base.py
"""
Capability interfaces the import pipeline writes through.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from labimport.ingestion.context import EntityHandle


class UploadStore(ABC):
    """Stores files and attaches them to one entity."""

    @abstractmethod
    def attach_file(
        self,
        entity: EntityHandle,
        path: Path,
        comment: Optional[str] = None,
        real_name: Optional[str] = None,
    ):
        """
        Copy the file at path into long-term storage and link it to entity.
        real_name is the name shown to users, path.name when not given.
        """
        pass

    def discard_pending(self) -> None:
        """Forget and remove files stored since the last keep_pending() call."""
        pass

    def keep_pending(self) -> None:
        """Mark files stored so far as committed."""
        pass


class TagStore(ABC):
    """Registers tag texts against one entity."""

    @abstractmethod
    def add_tag(self, entity: EntityHandle, tag: str):
        pass
