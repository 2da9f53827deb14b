"""Text input in block or line mode over files and in-memory strings.

``read`` returns ``None`` once the input is exhausted. In line mode it returns
one line without its terminator; CR, LF and CRLF all end a line.
"""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path
from typing import Optional

from charset_normalizer import from_path

from ..constants import BOMS
from ..errors import ValidationError
from .bom import sniff_bom
from .streams import StreamRegistry

logger = logging.getLogger(__name__)

_EOL = re.compile(r"[\r\n]")


def lookup_codec(charset: str) -> str:
    try:
        return codecs.lookup(charset).name
    except LookupError:
        raise ValidationError(f"Text encoding not supported: {charset}") from None


def detect_charset(path: Path) -> Optional[str]:
    """Best guess at the encoding of a file, as a Python codec name."""
    match = from_path(path).best()
    if match is None:
        return None
    logger.debug(f"Detected character set {match.encoding} for {Path(path).name}")
    return match.encoding


class TextReader:
    def __init__(self, data_mode: str = "block"):
        self.data_mode = data_mode
        self._buffer = ""
        self._eof = False

    def _fill(self) -> bool:
        raise NotImplementedError

    def read(self, amount: Optional[int] = None) -> Optional[str]:
        if self.data_mode == "line":
            return self.read_line()
        return self.read_block(amount)

    def read_block(self, amount: Optional[int] = None) -> Optional[str]:
        if amount is None:
            while self._fill():
                pass
        else:
            while len(self._buffer) < amount and self._fill():
                pass
        if not self._buffer:
            return None
        if amount is None:
            out, self._buffer = self._buffer, ""
        else:
            out, self._buffer = self._buffer[:amount], self._buffer[amount:]
        return out

    def read_line(self) -> Optional[str]:
        while True:
            m = _EOL.search(self._buffer)
            if m:
                idx = m.start()
                # a CR at the end of the buffer may be the first half of a CRLF
                if self._buffer[idx] == "\r" and idx == len(self._buffer) - 1 and self._fill():
                    continue
                skip = 2 if self._buffer[idx:idx + 2] == "\r\n" else 1
                line = self._buffer[:idx]
                self._buffer = self._buffer[idx + skip:]
                return line
            if not self._fill():
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, ""
                return line

    def set_character_set(self, charset: str) -> None:
        pass

    def close(self) -> None:
        pass


class StringInput(TextReader):
    """Reads from (and, for internal I/O, writes to) an in-memory string."""

    def __init__(self, text: str = "", data_mode: str = "block"):
        super().__init__(data_mode)
        self._pending = text

    def _fill(self) -> bool:
        if not self._pending:
            return False
        self._buffer += self._pending
        self._pending = ""
        return True

    def write(self, data: str) -> None:
        self._pending += data


class FileInput(TextReader):
    CHUNK_SIZE = 65536

    def __init__(
        self,
        path: Path,
        data_mode: str = "block",
        charset: Optional[str] = None,
        streams: Optional[StreamRegistry] = None,
    ):
        super().__init__(data_mode)
        self.path = Path(path)
        self.charset = charset
        self._bom_length = 0
        self._decoder = None
        self._raw = open(self.path, "rb")
        if streams is not None:
            streams.track(self._raw)
        self.rewind()

    def rewind(self) -> None:
        """Seek to the start, skip any BOM and reset decoding."""
        self._raw.seek(0)
        self._bom_length = 0
        if self.charset is None or (len(self.charset) > 3 and self.charset.upper().startswith("UTF")):
            bom_charset = sniff_bom(self._raw)
            if bom_charset:
                self._bom_length = len(BOMS[bom_charset])
                self.charset = bom_charset
        if self.charset:
            logger.debug(f"Using character set {self.charset} for {self.path.name}")
        self._reset_decoder(self.charset or "utf-8")

    def _reset_decoder(self, charset: str) -> None:
        codec = lookup_codec(charset)
        self._decoder = codecs.getincrementaldecoder(codec)(errors="replace")
        self._buffer = ""
        self._eof = False

    def set_character_set(self, charset: str) -> None:
        codec = lookup_codec(charset)
        self._raw.seek(self._bom_length)
        self.charset = charset
        self._reset_decoder(codec)

    def _fill(self) -> bool:
        if self._eof:
            return False
        data = self._raw.read(self.CHUNK_SIZE)
        if not data:
            self._eof = True
            tail = self._decoder.decode(b"", final=True)
            self._buffer += tail
            return bool(tail)
        self._buffer += self._decoder.decode(data)
        return True

    def close(self) -> None:
        self._raw.close()
