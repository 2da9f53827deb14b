from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	pass


class Item(Base):
	__tablename__ = "items"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	item_type: Mapped[str] = mapped_column(String(50))
	# notes and attachments may hang off a regular item
	parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("items.id"), nullable=True)
	note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	# attachment specific
	link_mode: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
	path: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
	mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
	charset: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
	date_added: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
	date_modified: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ItemData(Base):
	__tablename__ = "item_data"

	item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)
	field: Mapped[str] = mapped_column(String(100), primary_key=True)
	value: Mapped[str] = mapped_column(Text)


class Creator(Base):
	__tablename__ = "creators"
	__table_args__ = (UniqueConstraint("first_name", "last_name"),)

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	first_name: Mapped[str] = mapped_column(String(255), default="")
	last_name: Mapped[str] = mapped_column(String(255), default="")


class ItemCreator(Base):
	__tablename__ = "item_creators"

	item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)
	order_index: Mapped[int] = mapped_column(Integer, primary_key=True)
	creator_id: Mapped[int] = mapped_column(ForeignKey("creators.id"))
	creator_type_id: Mapped[int] = mapped_column(Integer, default=1)


class Tag(Base):
	__tablename__ = "tags"
	__table_args__ = (UniqueConstraint("name", "type"),)

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	name: Mapped[str] = mapped_column(String(255))
	# 0 = user, 1 = automatic
	type: Mapped[int] = mapped_column(Integer, default=0)


class ItemTag(Base):
	__tablename__ = "item_tags"

	item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)
	tag_id: Mapped[int] = mapped_column(ForeignKey("tags.id"), primary_key=True)


class ItemRelation(Base):
	__tablename__ = "item_relations"

	item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)
	related_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)


class Collection(Base):
	__tablename__ = "collections"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	name: Mapped[str] = mapped_column(String(255))
	parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("collections.id"), nullable=True)
	date_added: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class CollectionItem(Base):
	__tablename__ = "collection_items"

	collection_id: Mapped[int] = mapped_column(ForeignKey("collections.id"), primary_key=True)
	item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), primary_key=True)
	order_index: Mapped[int] = mapped_column(Integer, default=0)
