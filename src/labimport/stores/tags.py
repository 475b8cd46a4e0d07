# src/labimport/stores/tags.py

import logging

from sqlalchemy.orm import Session

from labimport.database.models import Tag, TagLink
from labimport.ingestion.context import EntityHandle
from labimport.stores.base import TagStore

logger = logging.getLogger(__name__)


class SqlTagStore(TagStore):
    """
    Tags are shared per team: an existing tag text is reused, and an entity
    is linked to the same tag at most once.
    """

    def __init__(self, db: Session, team_id: int):
        self.db = db
        self.team_id = team_id

    def _get_or_create(self, text: str) -> Tag:
        tag = self.db.query(Tag).filter(Tag.team == self.team_id, Tag.tag == text).first()
        if tag is None:
            tag = Tag(team=self.team_id, tag=text)
            self.db.add(tag)
            self.db.flush()
        return tag

    def add_tag(self, entity: EntityHandle, tag: str) -> TagLink:
        row = self._get_or_create(tag)
        link = self.db.query(TagLink).filter(
            TagLink.item_id == entity.id,
            TagLink.item_type == entity.type_name,
            TagLink.tag_id == row.id,
        ).first()
        if link is not None:
            logger.debug(f"{entity.type_name} #{entity.id} already tagged '{tag}'")
            return link

        link = TagLink(item_id=entity.id, item_type=entity.type_name, tag_id=row.id)
        self.db.add(link)
        self.db.flush()
        return link
