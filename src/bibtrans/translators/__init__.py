"""Translator metadata and the process-wide registry."""

from .descriptor import DetectedTranslator, Translator, parse_header
from .registry import TranslatorRegistry

__all__ = [
    "DetectedTranslator",
    "Translator",
    "TranslatorRegistry",
    "parse_header",
]
