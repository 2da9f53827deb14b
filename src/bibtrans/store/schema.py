"""Item type schema: valid fields per type, base-field mappings, creator roles.

A base field (``publicationTitle``, ``publisher``, ``type``, ``number``) is a
canonical name that several item types store under a type-specific name, e.g.
``websiteTitle`` on a webpage or ``university`` on a thesis.
"""

from __future__ import annotations

from typing import Dict, List, Optional

_COMMON_TAIL = ["shortTitle", "url", "accessDate", "repository", "language", "rights", "extra"]

ITEM_TYPES: Dict[str, List[str]] = {
    "note": [],
    "attachment": ["title", "url", "accessDate"],
    "book": [
        "title", "abstractNote", "series", "volume", "numPages", "edition",
        "place", "publisher", "date", "ISBN", *_COMMON_TAIL,
    ],
    "bookSection": [
        "title", "abstractNote", "bookTitle", "series", "volume", "edition",
        "place", "publisher", "date", "pages", "ISBN", *_COMMON_TAIL,
    ],
    "journalArticle": [
        "title", "abstractNote", "publicationTitle", "volume", "issue", "pages",
        "date", "series", "journalAbbreviation", "DOI", "ISSN", *_COMMON_TAIL,
    ],
    "magazineArticle": [
        "title", "abstractNote", "publicationTitle", "volume", "issue", "date",
        "pages", "ISSN", *_COMMON_TAIL,
    ],
    "newspaperArticle": [
        "title", "abstractNote", "publicationTitle", "place", "edition", "date",
        "section", "pages", *_COMMON_TAIL,
    ],
    "thesis": [
        "title", "abstractNote", "thesisType", "university", "place", "date",
        "numPages", *_COMMON_TAIL,
    ],
    "report": [
        "title", "abstractNote", "reportNumber", "reportType", "seriesTitle",
        "place", "institution", "date", "pages", *_COMMON_TAIL,
    ],
    "conferencePaper": [
        "title", "abstractNote", "date", "proceedingsTitle", "conferenceName",
        "place", "publisher", "volume", "pages", "series", "DOI", "ISBN", *_COMMON_TAIL,
    ],
    "webpage": [
        "title", "abstractNote", "websiteTitle", "websiteType", "date",
        "shortTitle", "url", "accessDate", "language", "rights", "extra",
    ],
    "document": ["title", "abstractNote", "publisher", "date", *_COMMON_TAIL],
}

# (item type, type-specific field) -> base field
_BASE_MAPPINGS: Dict[str, Dict[str, str]] = {
    "bookSection": {"bookTitle": "publicationTitle"},
    "thesis": {"thesisType": "type", "university": "publisher"},
    "report": {"reportNumber": "number", "reportType": "type", "institution": "publisher"},
    "conferencePaper": {"proceedingsTitle": "publicationTitle"},
    "webpage": {"websiteTitle": "publicationTitle", "websiteType": "type"},
}

BASE_FIELDS = frozenset(b for m in _BASE_MAPPINGS.values() for b in m.values()) | {"publicationTitle", "publisher"}

CREATOR_TYPES: Dict[str, int] = {
    "author": 1,
    "contributor": 2,
    "editor": 3,
    "translator": 4,
    "seriesEditor": 5,
    "interviewee": 6,
    "interviewer": 7,
    "director": 8,
    "recipient": 10,
    "reviewedAuthor": 12,
    "bookAuthor": 14,
}
DEFAULT_CREATOR_TYPE = "author"

ALL_FIELDS = frozenset(f for fs in ITEM_TYPES.values() for f in fs) | BASE_FIELDS


def is_item_type(name: Optional[str]) -> bool:
    return name in ITEM_TYPES


def is_field(name: str) -> bool:
    return name in ALL_FIELDS


def is_base_field(name: str) -> bool:
    return name in BASE_FIELDS


def is_valid_for_type(field: str, item_type: str) -> bool:
    return field in ITEM_TYPES.get(item_type, ())


def type_fields(item_type: str) -> List[str]:
    return list(ITEM_TYPES.get(item_type, ()))


def field_from_type_and_base(item_type: str, base_field: str) -> Optional[str]:
    """Type-specific name of ``base_field`` for ``item_type``.

    Returns the base field itself when the type stores it under its canonical
    name, and None when the type has no counterpart at all.
    """
    for type_field, base in _BASE_MAPPINGS.get(item_type, {}).items():
        if base == base_field:
            return type_field
    if is_valid_for_type(base_field, item_type):
        return base_field
    return None


def base_from_type_and_field(item_type: str, field: str) -> Optional[str]:
    return _BASE_MAPPINGS.get(item_type, {}).get(field)


def creator_type_id(name: Optional[str]) -> Optional[int]:
    if not name:
        return None
    return CREATOR_TYPES.get(name)


def creator_type_name(type_id: int) -> str:
    for name, value in CREATOR_TYPES.items():
        if value == type_id:
            return name
    return DEFAULT_CREATOR_TYPE
