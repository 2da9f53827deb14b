"""Translator descriptors: metadata header plus lazily loaded code.

A translator file starts with a JSON object holding its metadata, followed by
the Python code that implements it::

    {
        "translatorID": "32d59d2d-b65a-4da4-b0a3-bdd3cfb979e7",
        "translatorType": 3,
        "label": "RIS",
        "target": "ris",
        "lastUpdated": "2008-06-10 22:30:00"
    }

    bib.configure("dataMode", "line")
    ...

Only the first ``MAX_INFO_LENGTH`` characters are scanned for the header so
that loading a registry does not read every translator body.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Pattern

from ..constants import MAX_INFO_LENGTH, TRANSLATOR_TYPES
from ..errors import MetadataError

logger = logging.getLogger(__name__)

REQUIRED_PROPERTIES = ("translatorID", "translatorType", "label", "target", "lastUpdated")


def parse_header(text: str) -> tuple[Dict[str, Any], int]:
    """Return the metadata object and the offset where the code begins."""
    start = text.find("{")
    if start == -1 or text[:start].strip():
        raise MetadataError("Invalid or missing translator metadata JSON object")
    try:
        info, end = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Invalid or missing translator metadata JSON object: {e}") from e
    if not isinstance(info, dict):
        raise MetadataError("Invalid or missing translator metadata JSON object")
    for prop in REQUIRED_PROPERTIES:
        if prop not in info:
            raise MetadataError(f'Missing property "{prop}" in translator metadata JSON object')
    return info, end


class Translator:
    """Immutable metadata for one translator.

    ``code`` is read from disk on access unless it was supplied up front or
    the translator is a web translator without a target (those run on every
    page, so their code is kept in memory).
    """

    def __init__(self, info: Dict[str, Any], code: Optional[str] = None, path: Optional[Path] = None):
        for prop in REQUIRED_PROPERTIES:
            if prop not in info:
                raise MetadataError(f'Missing property "{prop}" in translator metadata JSON object')
        self._info = dict(info)
        self._code = code
        self.path = Path(path) if path else None

        self.import_regexp: Optional[Pattern[str]] = None
        self.web_regexp: Optional[Pattern[str]] = None
        try:
            if self.supports("import") and self.target:
                self.import_regexp = re.compile(r"\." + self.target + "$", re.IGNORECASE)
            if self.supports("web") and self.target:
                self.web_regexp = re.compile(self.target, re.IGNORECASE)
        except re.error as e:
            raise MetadataError(f"Invalid target pattern {self.target!r}: {e}") from e

    @classmethod
    def from_file(cls, path: Path) -> "Translator":
        path = Path(path)
        with path.open("r", encoding="utf-8", errors="replace") as f:
            head = f.read(MAX_INFO_LENGTH)
            info, end = parse_header(head)
            translator = cls(info, path=path)
            if translator.supports("web") and not translator.target:
                translator._code = head[end:] + f.read()
        return translator

    @property
    def id(self) -> str:
        return self._info["translatorID"]

    @property
    def type_mask(self) -> int:
        return int(self._info["translatorType"])

    @property
    def label(self) -> str:
        return self._info["label"]

    @property
    def target(self) -> Optional[str]:
        return self._info["target"] or None

    @property
    def last_updated(self) -> str:
        return str(self._info["lastUpdated"])

    @property
    def in_repository(self) -> bool:
        return bool(self._info.get("inRepository", False))

    @property
    def info(self) -> Dict[str, Any]:
        return dict(self._info)

    @property
    def code(self) -> str:
        if self._code is not None:
            return self._code
        if self.path is None:
            raise MetadataError(f"Translator {self.label} has no code")
        text = self.path.read_text(encoding="utf-8", errors="replace")
        _, end = parse_header(text)
        return text[end:]

    def supports(self, mode: str) -> bool:
        return bool(self.type_mask & TRANSLATOR_TYPES[mode])

    def log_error(self, message: Any, level: int = logging.ERROR) -> None:
        where = self.path.as_uri() if self.path else self.id
        logger.log(level, f"{message} [{self.label}: {where}]")

    def __repr__(self) -> str:
        return f"<Translator {self.label!r} ({self.id})>"


class DetectedTranslator:
    """A translator found by a search, with the options in effect at detection."""

    def __init__(
        self,
        translator: Translator,
        item_type: Optional[str] = None,
        config_options: Optional[Dict[str, Any]] = None,
        display_options: Optional[Dict[str, Any]] = None,
    ):
        self.translator = translator
        self.item_type = item_type
        self.config_options = dict(config_options or {})
        self.display_options = dict(display_options or {})

    @property
    def id(self) -> str:
        return self.translator.id

    @property
    def label(self) -> str:
        return self.translator.label

    def __repr__(self) -> str:
        suffix = f" -> {self.item_type}" if self.item_type else ""
        return f"<DetectedTranslator {self.label!r}{suffix}>"
