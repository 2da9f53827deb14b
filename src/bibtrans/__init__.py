"""bibtrans: a plugin engine for bibliographic translators."""

__version__ = "0.3.0"

from .config import Config, Preferences, read_config
from .errors import (
	DetectionError,
	ExecutionError,
	InvalidSelection,
	MetadataError,
	SecurityError,
	TranslationError,
	ValidationError,
)
from .translate import Environment, Translation
from .translators import DetectedTranslator, Translator, TranslatorRegistry
from .web import WebDocument

__all__ = [
	"Config",
	"DetectedTranslator",
	"DetectionError",
	"Environment",
	"ExecutionError",
	"InvalidSelection",
	"MetadataError",
	"Preferences",
	"SecurityError",
	"Translation",
	"TranslationError",
	"Translator",
	"TranslatorRegistry",
	"ValidationError",
	"WebDocument",
	"read_config",
]
