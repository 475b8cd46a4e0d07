# src/labimport/database/models.py

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

# Create the base class for SQLAlchemy models
Base = declarative_base()


class ItemType(Base):
    """A team-defined category of database items (e.g. 'Antibody', 'Plasmid')."""
    __tablename__ = "items_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=True)

    items = relationship("Item", back_populates="item_type")


class Status(Base):
    """Experiment status rows; each team flags one of them as its default."""
    __tablename__ = "status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)


class Item(Base):
    """A plain database item."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    body = Column(Text, nullable=True)
    userid = Column(Integer, nullable=False)
    type = Column(Integer, ForeignKey("items_types.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    item_type = relationship("ItemType", back_populates="items")


class Experiment(Base):
    """An experiment, owned by one user and visible to a team."""
    __tablename__ = "experiments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    body = Column(Text, nullable=True)
    userid = Column(Integer, nullable=False)
    visibility = Column(String, nullable=False, default="team")
    status = Column(Integer, ForeignKey("status.id"), nullable=True)
    elabid = Column(String, nullable=True)  # correlation id carried over from the exporting instance
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Upload(Base):
    """A stored file attached to an item or an experiment."""
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    real_name = Column(String, nullable=False)  # name shown to users
    long_name = Column(String, nullable=False, unique=True)  # path relative to the uploads folder
    comment = Column(Text, nullable=True)
    item_id = Column(Integer, nullable=False, index=True)
    type = Column(String, nullable=False)  # 'items' or 'experiments'
    userid = Column(Integer, nullable=False)
    hash = Column(String, nullable=True)  # sha256 of the stored file
    filesize = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Tag(Base):
    """A tag text, shared across a team."""
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("team", "tag", name="uq_tags_team_tag"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    team = Column(Integer, nullable=False)
    tag = Column(String, nullable=False)

    links = relationship("TagLink", back_populates="tag", cascade="all, delete-orphan")


class TagLink(Base):
    """Links a tag to an item or an experiment."""
    __tablename__ = "tags2entity"
    __table_args__ = (
        UniqueConstraint("item_id", "item_type", "tag_id", name="uq_tags2entity"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, nullable=False, index=True)
    item_type = Column(String, nullable=False)  # 'items' or 'experiments'
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False)

    tag = relationship("Tag", back_populates="links")
