"""Text output for export: to a file with a chosen charset, or to a string."""

from __future__ import annotations

import codecs
import re
from typing import BinaryIO, List, Optional

from ..constants import BOMS
from .readers import lookup_codec

_NEWLINES = re.compile(r"([\r\n]+)")


class FileOutput:
    """Block writer over a binary file.

    Without a charset, text is written as UTF-8 with no BOM. Once a charset is
    set, the first write emits its BOM if it has one. ``UTF-8xBOM`` selects
    UTF-8 without a BOM. For ``MACINTOSH`` newline runs are written as raw
    bytes, outside the encoder.
    """

    def __init__(self, raw: BinaryIO):
        self._raw = raw
        self.charset: Optional[str] = None
        self._encoder = None
        self._written = False

    def set_character_set(self, charset: str) -> None:
        name = charset.upper()
        codec = lookup_codec("utf-8" if name == "UTF-8XBOM" else charset)
        self.charset = name
        self._encoder = codecs.getincrementalencoder(codec)(errors="replace")

    def write(self, data: str) -> None:
        if not self.charset:
            self._raw.write(data.encode("utf-8"))
            self._written = True
            return

        if not self._written and self.charset in BOMS:
            self._raw.write(BOMS[self.charset])

        if self.charset == "MACINTOSH":
            for i, part in enumerate(_NEWLINES.split(data)):
                if i % 2:
                    self._raw.write(part.encode("ascii"))
                elif part:
                    self._raw.write(self._encoder.encode(part))
        else:
            self._raw.write(self._encoder.encode(data))
        self._written = True

    def close(self) -> None:
        self._raw.close()


class StringOutput:
    def __init__(self):
        self._parts: List[str] = []

    def write(self, data: str) -> None:
        self._parts.append(data)

    def set_character_set(self, charset: str) -> None:
        pass

    @property
    def value(self) -> str:
        return "".join(self._parts)

    def close(self) -> None:
        pass
