"""Virtualized I/O: block, line and graph views over files and strings."""

from .bom import bom_for, sniff_bom
from .graph import GraphAccess, GraphIO
from .readers import FileInput, StringInput, TextReader, detect_charset
from .streams import StreamRegistry
from .writers import FileOutput, StringOutput

__all__ = [
    "FileInput",
    "FileOutput",
    "GraphAccess",
    "GraphIO",
    "StreamRegistry",
    "StringInput",
    "StringOutput",
    "TextReader",
    "bom_for",
    "detect_charset",
    "sniff_bom",
]
