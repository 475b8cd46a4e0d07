"""Upload and tag stores used by the import pipeline."""

from labimport.stores.base import TagStore, UploadStore
from labimport.stores.tags import SqlTagStore
from labimport.stores.uploads import DEFAULT_COMMENT, SqlUploadStore

__all__ = ["DEFAULT_COMMENT", "SqlTagStore", "SqlUploadStore", "TagStore", "UploadStore"]
