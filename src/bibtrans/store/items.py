"""Library store: the persistence operations the translation engine relies on.

Wraps a SQLAlchemy session. Creators are deduplicated by their normalized
(first, last) name pair, the same way documents are matched by normalized
identifiers elsewhere.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import schema
from .models import (
    Collection,
    CollectionItem,
    Creator,
    Item,
    ItemCreator,
    ItemData,
    ItemRelation,
    ItemTag,
    Tag,
)

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    """Collapse internal whitespace and strip; case is significant."""
    if not name:
        return ""
    return " ".join(name.split())


class LibraryStore:
    def __init__(self, session: Session):
        self.session = session

    # items

    def add_item(self, item_type: str, parent_id: Optional[int] = None) -> Item:
        now = datetime.now(timezone.utc)
        item = Item(item_type=item_type, parent_id=parent_id, date_added=now, date_modified=now)
        self.session.add(item)
        self.session.flush()
        return item

    def get_item(self, item_id: int) -> Optional[Item]:
        return self.session.get(Item, item_id)

    def set_field(self, item: Item, field: str, value) -> None:
        row = self.session.get(ItemData, (item.id, field))
        if row is None:
            self.session.add(ItemData(item_id=item.id, field=field, value=str(value)))
        else:
            row.value = str(value)
        item.date_modified = datetime.now(timezone.utc)
        self.session.flush()

    def get_field(self, item: Item, field: str) -> Optional[str]:
        row = self.session.get(ItemData, (item.id, field))
        return row.value if row else None

    def get_fields(self, item: Item) -> Dict[str, str]:
        rows = self.session.execute(select(ItemData).where(ItemData.item_id == item.id)).scalars()
        return {r.field: r.value for r in rows}

    def set_note(self, item: Item, note: str) -> None:
        item.note = note
        self.session.flush()

    def top_level_items(self) -> List[Item]:
        q = select(Item).where(Item.parent_id.is_(None)).order_by(Item.id)
        return list(self.session.execute(q).scalars())

    def child_items(self, item: Item, item_type: Optional[str] = None) -> List[Item]:
        q = select(Item).where(Item.parent_id == item.id)
        if item_type:
            q = q.where(Item.item_type == item_type)
        return list(self.session.execute(q.order_by(Item.id)).scalars())

    # creators

    def get_or_create_creator(self, first_name: Optional[str], last_name: Optional[str]) -> Creator:
        first = normalize_name(first_name)
        last = normalize_name(last_name)
        existing = self.session.execute(
            select(Creator).where(Creator.first_name == first, Creator.last_name == last)
        ).scalars().first()
        if existing:
            logger.debug(f"Reusing creator {existing.id} for {first} {last}")
            return existing
        creator = Creator(first_name=first, last_name=last)
        self.session.add(creator)
        self.session.flush()
        return creator

    def set_creator(self, item: Item, index: int, creator: Creator, creator_type_id: int) -> None:
        row = self.session.get(ItemCreator, (item.id, index))
        if row is None:
            self.session.add(ItemCreator(
                item_id=item.id, order_index=index,
                creator_id=creator.id, creator_type_id=creator_type_id,
            ))
        else:
            row.creator_id = creator.id
            row.creator_type_id = creator_type_id
        self.session.flush()

    def get_creators(self, item: Item) -> List[Dict[str, str]]:
        q = (
            select(ItemCreator, Creator)
            .join(Creator, Creator.id == ItemCreator.creator_id)
            .where(ItemCreator.item_id == item.id)
            .order_by(ItemCreator.order_index)
        )
        return [
            {
                "firstName": c.first_name,
                "lastName": c.last_name,
                "creatorType": schema.creator_type_name(link.creator_type_id),
            }
            for link, c in self.session.execute(q)
        ]

    # tags

    def add_tags(self, item: Item, names: Iterable[str], tag_type: int = 0) -> None:
        for name in names:
            name = (name or "").strip()
            if not name:
                continue
            tag = self.session.execute(
                select(Tag).where(Tag.name == name, Tag.type == tag_type)
            ).scalars().first()
            if tag is None:
                tag = Tag(name=name, type=tag_type)
                self.session.add(tag)
                self.session.flush()
            if self.session.get(ItemTag, (item.id, tag.id)) is None:
                self.session.add(ItemTag(item_id=item.id, tag_id=tag.id))
                self.session.flush()

    def get_tags(self, item: Item) -> List[Dict[str, object]]:
        q = (
            select(Tag)
            .join(ItemTag, ItemTag.tag_id == Tag.id)
            .where(ItemTag.item_id == item.id)
            .order_by(Tag.name)
        )
        return [{"tag": t.name, "type": t.type} for t in self.session.execute(q).scalars()]

    # relations

    def add_related(self, item_id: int, related_id: int) -> bool:
        if item_id == related_id:
            return False
        if self.session.get(ItemRelation, (item_id, related_id)) is not None:
            return False
        self.session.add(ItemRelation(item_id=item_id, related_id=related_id))
        self.session.flush()
        return True

    def get_related(self, item: Item) -> List[int]:
        q = select(ItemRelation.related_id).where(ItemRelation.item_id == item.id)
        return sorted(self.session.execute(q).scalars())

    # collections

    def add_collection(self, name: str, parent_id: Optional[int] = None) -> Collection:
        collection = Collection(name=name, parent_id=parent_id, date_added=datetime.now(timezone.utc))
        self.session.add(collection)
        self.session.flush()
        return collection

    def get_collection(self, collection_id: int) -> Optional[Collection]:
        return self.session.get(Collection, collection_id)

    def add_item_to_collection(self, collection: Collection, item_id: int) -> None:
        if self.session.get(CollectionItem, (collection.id, item_id)) is not None:
            return
        count = len(self.collection_items(collection))
        self.session.add(CollectionItem(collection_id=collection.id, item_id=item_id, order_index=count))
        self.session.flush()

    def collection_items(self, collection: Collection) -> List[Item]:
        q = (
            select(Item)
            .join(CollectionItem, CollectionItem.item_id == Item.id)
            .where(CollectionItem.collection_id == collection.id)
            .order_by(CollectionItem.order_index)
        )
        return list(self.session.execute(q).scalars())

    def child_collections(self, collection: Optional[Collection]) -> List[Collection]:
        parent_id = collection.id if collection else None
        q = select(Collection).where(
            Collection.parent_id.is_(None) if parent_id is None else Collection.parent_id == parent_id
        )
        return list(self.session.execute(q.order_by(Collection.id)).scalars())

    def all_collections(self, parent: Optional[Collection] = None) -> List[Collection]:
        """Descendants of ``parent`` (or the whole tree), parents before children."""
        result: List[Collection] = []
        for child in self.child_collections(parent):
            result.append(child)
            result.extend(self.all_collections(child))
        return result

    def commit(self) -> None:
        self.session.commit()

    def close(self) -> None:
        self.session.close()
