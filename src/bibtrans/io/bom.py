"""Byte-order-mark sniffing."""

from __future__ import annotations

from typing import BinaryIO, Optional

from ..constants import BOMS


def sniff_bom(stream: BinaryIO) -> Optional[str]:
    """Read ``stream`` one byte at a time for a known byte order mark.

    Reading continues while a longer mark can still match, so ``FF FE 00 00``
    resolves to UTF-32LE rather than UTF-16LE. On a match the stream is left
    just past the mark; otherwise it is rewound to where it started.
    """
    start = stream.tell()
    candidates = list(BOMS.items())
    matched: Optional[str] = None
    pos = 0
    while candidates:
        byte = stream.read(1)
        if not byte:
            break
        candidates = [(cs, mark) for cs, mark in candidates if mark[pos] == byte[0]]
        pos += 1
        for cs, mark in candidates:
            if len(mark) == pos:
                matched = cs
        candidates = [(cs, mark) for cs, mark in candidates if len(mark) > pos]

    stream.seek(start + (len(BOMS[matched]) if matched else 0))
    return matched


def bom_for(charset: Optional[str]) -> bytes:
    if not charset:
        return b""
    return BOMS.get(charset.upper(), b"")
