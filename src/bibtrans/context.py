"""Execution contexts and the facades handed to delegating translators."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Callable, Optional

from .capabilities import Capabilities, build_capabilities
from .errors import ExecutionError
from .sandbox import RestrictedSandbox, Sandbox
from .translators import DetectedTranslator, Translator

if TYPE_CHECKING:
	from .translate import Translation

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "http://www.example.com/"
_SEARCH_LOCATION_RE = re.compile(r"^https?://[\w.]+/")


def sandbox_location(translation: "Translation", translator: Optional[Translator]) -> str:
	"""Origin a sandbox is bound to: the page for web, the target's host for search."""
	if translation.mode == "web" and translation.location:
		return translation.location
	if translation.mode == "search" and translator is not None and translator.target:
		m = _SEARCH_LOCATION_RE.match(translator.target.replace("\\", "").replace("^", ""))
		if m:
			return m.group(0)
	return DEFAULT_LOCATION


class ExecutionContext:
	"""A sandbox with a capability object bound as ``bib``."""

	def __init__(self, sandbox: Sandbox, capabilities: Capabilities, phase: str):
		self.sandbox = sandbox
		self.capabilities = capabilities
		self.phase = phase
		sandbox.eval("", {"bib": capabilities})

	def load(self, translator: Translator) -> None:
		self.sandbox.eval(translator.code)

	def has(self, name: str) -> bool:
		return self.sandbox.has(name)

	def call(self, name: str, *args) -> Any:
		return self.sandbox.call(name, *args)


def create_context(
	translation: "Translation",
	phase: str,
	translator: Optional[Translator] = None,
	sandbox_factory: Callable[[str], Sandbox] = RestrictedSandbox,
) -> ExecutionContext:
	location = sandbox_location(translation, translator)
	logger.debug(f"Binding sandbox to {location}")
	return ExecutionContext(sandbox_factory(location), build_capabilities(translation, phase), phase)


class TranslatorObject:
	"""Functions defined by a loaded child translator, callable by name."""

	def __init__(self, context: ExecutionContext):
		self._context = context

	def __getattr__(self, name: str) -> Any:
		if name.startswith("_"):
			raise AttributeError(name)
		return self._context.sandbox.get(name)


class TranslatorChoice:
	"""A detection result as translator code sees it: ID, label and detected type."""

	def __init__(self, detected: DetectedTranslator):
		self._detected = detected
		self.id = detected.id
		self.label = detected.label
		self.item_type = detected.item_type

	def __repr__(self) -> str:
		return f"<TranslatorChoice {self.label!r}>"


def _choices(found):
	if found is None:
		return None
	return [TranslatorChoice(d) for d in found]


def _unwrap_choice(translator):
	if isinstance(translator, TranslatorChoice):
		return translator._detected
	if isinstance(translator, (list, tuple)):
		return [_unwrap_choice(t) for t in translator]
	return translator


class TranslatorProxy:
	"""What ``bib.load_translator(mode)`` returns: a child operation without target rebinding."""

	def __init__(self, child: "Translation", parent: "Translation"):
		self._child = child
		self._parent = parent

	def set_search(self, search) -> None:
		self._child.set_search(search)

	def set_document(self, document) -> None:
		self._child.set_document(document)

	def set_handler(self, event: str, handler) -> None:
		if event == "translators":
			self._child.set_handler(event, lambda obj, found: handler(obj, _choices(found)))
			return
		self._child.set_handler(event, handler)

	def set_string(self, string: str) -> None:
		self._child.set_string(string)

	def set_translator(self, translator) -> bool:
		return self._child.set_translator(_unwrap_choice(translator))

	def get_translators(self):
		return _choices(self._child.get_translators())

	def _install_default_handlers(self) -> None:
		child = self._child
		if child.has_handlers():
			return
		if child.mode != "export":
			child.set_handler("itemDone", lambda obj, item: item.complete())
		if child.mode == "web":
			for handler in self._parent.handlers_for("select"):
				child.set_handler("select", handler)

	def translate(self):
		self._install_default_handlers()
		return self._child.translate()

	def get_translator_object(self) -> TranslatorObject:
		child = self._child
		if not child.prepare_for_delegation():
			raise ExecutionError(f"Could not load translator {child.translator.label if child.translator else ''}")
		self._install_default_handlers()
		return TranslatorObject(child.context)
