"""Exception taxonomy for translation operations.

Local, per-record problems (bad field, unresolved cross-reference, missing
attachment source) are logged and never raised. Everything here is either
fatal to an operation or to the record being processed.
"""

from __future__ import annotations


class TranslationError(Exception):
	"""Base class for all engine errors."""


class MetadataError(TranslationError):
	"""Malformed or missing translator metadata header."""


class DetectionError(TranslationError):
	"""A translator's detect routine raised; the candidate counts as not found."""


class ExecutionError(TranslationError):
	"""A translator's do_* routine failed."""


class ValidationError(TranslationError):
	"""Invalid input handed to the engine by translator code."""


class InvalidSelection(ValidationError):
	"""select_items() called with an empty candidate set."""


class SecurityError(TranslationError):
	"""Translator code attempted to leave its capability surface."""


class FieldDiscardNotice(UserWarning):
	"""A field, tag or attachment could not be mapped onto the item type.

	Never raised by the engine; used as the category name in log messages.
	"""
