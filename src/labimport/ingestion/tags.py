# labimport/ingestion/tags.py

from typing import Optional

from labimport.ingestion.context import EntityHandle
from labimport.stores.base import TagStore

TAG_SEPARATOR = "|"


def split_tags(tag_string: Optional[str]):
    """
    Split a "|"-separated tag string. None, "" and one-character strings mean
    no tags. Pieces are kept verbatim and duplicates are kept.
    """
    if not tag_string or len(tag_string) <= 1:
        return []
    return tag_string.split(TAG_SEPARATOR)


def ingest_tags(store: TagStore, entity: EntityHandle, tag_string: Optional[str]) -> int:
    """Register every tag of tag_string against entity, in order."""
    tags = split_tags(tag_string)
    for tag in tags:
        store.add_tag(entity, tag)
    return len(tags)
