"""Translation operations: the object a caller drives.

A ``Translation`` is built for one mode (import, export, web or search). The
caller binds a target, optionally asks for the translators that can handle it,
picks one and runs it::

    translation = Translation("import", env)
    translation.set_location(Path("refs.ris"))
    found = translation.get_translators()
    translation.set_translator(found[0])
    translation.set_handler("done", on_done)
    translation.translate()

Lifecycle: ``idle -> detecting -> idle`` for detection, then
``idle -> executing -> completing -> done``. Completion runs exactly once per
run, whichever way it is reached.

Events fired through ``set_handler``: ``select``, ``itemDone``,
``collectionDone``, ``done``, ``debug``, ``error``, ``translators``. Handlers
are called as ``handler(translation, argument)``; in a child operation created
by ``bib.load_translator`` the first argument is ``None``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .config import Config, Preferences
from .constants import DATA_MODES, MODES, REPORT_URL
from .context import ExecutionContext, TranslatorProxy, create_context
from .errors import (
	DetectionError,
	ExecutionError,
	InvalidSelection,
	SecurityError,
	TranslationError,
	ValidationError,
)
from .export import ItemExporter
from .io import FileInput, FileOutput, GraphIO, StreamRegistry, StringInput, StringOutput, detect_charset
from .loop import CallbackQueue
from .materialize import ItemSaver
from .records import ScrapedCollection, ScrapedItem, record_to_dict
from .report import generate_error_string, report_translation_failure
from .sandbox import RestrictedSandbox, Sandbox
from .search import TranslatorSearch
from .store.attachments import AttachmentStore
from .store.items import LibraryStore
from .translators import DetectedTranslator, Translator, TranslatorRegistry
from .utils.http import session_from_config

logger = logging.getLogger(__name__)

DO_FUNCTIONS = {
	"import": "do_import",
	"export": "do_export",
	"web": "do_web",
	"search": "do_search",
}


class Environment:
	"""Process-level collaborators shared by every operation."""

	def __init__(
		self,
		registry: TranslatorRegistry,
		library: Optional[LibraryStore] = None,
		attachments: Optional[AttachmentStore] = None,
		preferences: Optional[Preferences] = None,
		http: Optional[requests.Session] = None,
		report_url: str = REPORT_URL,
		sandbox_factory: Callable[[str], Sandbox] = RestrictedSandbox,
	):
		self.registry = registry
		self.library = library
		self.attachments = attachments
		self.preferences = preferences or Preferences()
		self.http = http
		self.report_url = report_url
		self.sandbox_factory = sandbox_factory

	@classmethod
	def from_config(cls, config: Config, library: Optional[LibraryStore] = None) -> "Environment":
		http = session_from_config(config)
		attachments = AttachmentStore(library, config.storage_dir, http=http) if library is not None else None
		return cls(
			registry=TranslatorRegistry(config.translators_dir),
			library=library,
			attachments=attachments,
			preferences=config.preferences,
			http=http,
			report_url=config.report_url,
		)


class Translation:
	def __init__(
		self,
		mode: str,
		env: Environment,
		save_items: bool = True,
		save_attachments: bool = True,
		parent: Optional["Translation"] = None,
	):
		if mode not in MODES:
			raise ValueError(f"Invalid translation type: {mode}")
		self.mode = mode
		self.env = env
		self.save_items = save_items
		self.save_attachments = save_attachments
		self.parent = parent
		self.state = "idle"

		# target
		self.document = None
		self.location: Optional[Union[str, Path]] = None
		self.path: Optional[str] = None
		self.search: Optional[Dict[str, Any]] = None
		self.items = None
		self.collection = None
		self._storage: Optional[str] = None
		self._charset: Optional[str] = None

		self._translators: List[Translator] = []
		self._set_display_options: Optional[Dict[str, Any]] = None
		self.config_options: Dict[str, Any] = {}
		self.display_options: Dict[str, Any] = {}
		self._handlers: Dict[str, List[Callable]] = {}

		self.context: Optional[ExecutionContext] = None
		self.queue = CallbackQueue(on_error=self._on_callback_error)
		self.streams = StreamRegistry()
		self.wait_for_completion = False
		self._async_phase: Optional[str] = None
		self._search: Optional[TranslatorSearch] = None

		self.reader = None
		self.writer = None
		self.graph: Optional[GraphIO] = None

		self._saver: Optional[ItemSaver] = None
		self._exporter: Optional[ItemExporter] = None
		self._export_file_dir: Optional[Path] = None
		self.new_items: List[int] = []
		self.new_collections: List[int] = []
		self.output: Optional[str] = None
		self.success: Optional[bool] = None
		self._complete = False
		self._items_done = False

	def __repr__(self) -> str:
		return f"<Translation {self.mode} {self.state} {self.path or ''}>"

	# target and translator selection

	def set_document(self, document) -> None:
		self.document = document
		self.set_location(document.url)

	def set_search(self, search: Dict[str, Any]) -> None:
		self.search = search

	def set_items(self, items) -> None:
		self.items = list(items)

	def set_collection(self, collection) -> None:
		self.collection = collection

	def set_location(self, location: Union[str, Path]) -> None:
		if self.mode == "web":
			self.location = str(location)
		else:
			self.location = Path(location)
		self.path = str(self.location)

	def set_string(self, string: str) -> None:
		self._storage = string

	def set_charset(self, charset: Optional[str]) -> None:
		self._charset = charset

	def set_display_options(self, display_options: Dict[str, Any]) -> None:
		self._set_display_options = dict(display_options)

	def set_translator(self, translator) -> bool:
		"""Select the translator to run: a descriptor, a detection result or an ID.

		Search operations also accept a list; the candidates are tried in order
		until one yields a result.
		"""
		if not translator:
			raise ValueError("cannot set translator: invalid value")
		self._translators = []
		self._set_display_options = None

		if isinstance(translator, (list, tuple)):
			if self.mode != "search":
				raise ValueError(
					f"cannot set translator: a single translator must be specified when doing {self.mode} translation"
				)
			for candidate in translator:
				resolved = self._resolve_translator(candidate)
				if resolved is not None:
					self._translators.append(resolved)
		else:
			if isinstance(translator, DetectedTranslator) and translator.display_options:
				self._set_display_options = dict(translator.display_options)
			resolved = self._resolve_translator(translator)
			if resolved is not None:
				self._translators = [resolved]
		return bool(self._translators)

	def _resolve_translator(self, translator) -> Optional[Translator]:
		if isinstance(translator, DetectedTranslator):
			return translator.translator
		if isinstance(translator, Translator):
			return translator
		if isinstance(translator, str):
			found = self.env.registry.get(translator)
			if found is None:
				logger.warning(f"No translator with ID {translator}")
			return found
		raise ValueError(f"cannot set translator: invalid value {translator!r}")

	@property
	def translator(self) -> Optional[Translator]:
		return self._translators[0] if self._translators else None

	def has_target(self) -> bool:
		if self.mode == "import":
			return self.location is not None or self._storage is not None
		if self.mode == "web":
			return self.location is not None
		if self.mode == "search":
			return self.search is not None
		return True

	def detect_arguments(self) -> tuple:
		if self.mode == "web":
			return (self.document, self.location)
		if self.mode == "search":
			return (self.search,)
		return ()

	# events

	def set_handler(self, event: str, handler: Callable) -> None:
		self._handlers.setdefault(event, []).append(handler)

	def clear_handlers(self, event: str) -> None:
		self._handlers[event] = []

	def has_handlers(self) -> bool:
		return any(self._handlers.values())

	def handlers_for(self, event: str) -> List[Callable]:
		return list(self._handlers.get(event, []))

	def run_handler(self, event: str, argument: Any = None) -> Any:
		"""Call every handler for ``event``; return the last one's value.

		Handler errors are logged, except in child operations where they
		propagate to the delegating translator.
		"""
		value = None
		for i, handler in enumerate(self.handlers_for(event)):
			try:
				value = handler(None if self.parent is not None else self, argument)
			except Exception as e:
				if self.parent is not None:
					raise
				logger.warning(f"{e!r} in handler {i} for {event}")
		return value

	def _debug(self, message: Any, level: int = logging.DEBUG) -> None:
		if self.run_handler("debug", message) is not False:
			logger.log(level, f"Translate: {message}")

	# capability callbacks

	def configure(self, option: str, value: Any) -> None:
		self.config_options[option] = value
		self._debug(f"Setting configure option {option} to {value}")

	def add_option(self, option: str, value: Any) -> None:
		self.display_options[option] = value
		self._debug(f"Setting display option {option} to {value}")

	def _enable_async(self, phase: str) -> None:
		self.wait_for_completion = True
		self._async_phase = phase

	def _signal_done(self, phase: str, value: Any = None) -> None:
		if not self.wait_for_completion or self._async_phase != phase:
			raise ExecutionError("done() called without a preceding wait()")
		if phase == "detect":
			self.queue.call_soon(self._search.complete, value)
		else:
			self.queue.call_soon(self._translation_complete, value)

	def _select_items(self, options: Dict[str, Any]) -> Dict[str, Any]:
		if not options:
			raise InvalidSelection("Translator called select_items() with no items")
		if self._handlers.get("select"):
			return self.run_handler("select", options)
		return options

	def load_translator(self, mode: str) -> TranslatorProxy:
		if mode == "export" and self.mode in ("web", "search"):
			raise SecurityError("Web and search translators may not call export translators")
		child = Translation(mode, self.env, save_items=False, parent=self)
		return TranslatorProxy(child, self)

	def _on_callback_error(self, error: BaseException) -> None:
		if self.state == "detecting" and self._search is not None and self._search.pending:
			self._search.complete(None, error)
			return
		if self.state != "executing":
			logger.warning(f"Ignoring error from queued callback in state {self.state}: {error!r}")
			return
		if self.parent is not None:
			self._abandon()
			raise error
		self._translation_complete(False, self._wrap(error))

	def _pump(self, stalled: Callable[[], bool], on_stall: Callable[[], None]) -> None:
		"""Drain queued callbacks. When nothing is left to run but the phase is
		still waiting for ``done()``, ``on_stall`` decides the outcome."""
		if self.queue.draining:
			return
		while True:
			self.queue.drain()
			if not stalled():
				return
			on_stall()

	# detection

	def get_translators(self) -> Optional[List[DetectedTranslator]]:
		"""Find the translators that can handle the bound target, in registry order."""
		if self._search is not None:
			self._search.running = False

		candidates = self.env.registry.get_all_for_type(self.mode)
		self.state = "detecting"
		self._debug(f"Searching for translators for {self.path or 'an undisclosed location'}")

		search = self._search = TranslatorSearch(self, candidates)
		search.execute()
		self._pump(
			lambda: search.pending,
			lambda: search.complete(None, DetectionError(
				f"{search.current.label} called wait() but never signalled completion"
			)),
		)
		if self.state == "detecting":
			self.state = "idle"
		if search.finished:
			if self.mode == "import":
				self._close_streams()
			return list(search.found)
		return None

	def _generate_context(self, phase: str, translator: Optional[Translator]) -> None:
		self.wait_for_completion = False
		self._async_phase = None
		self.context = create_context(self, phase, translator, self.env.sandbox_factory)

	def _parse_code(self, translator: Translator) -> bool:
		self.config_options = {}
		self.display_options = {}
		self._debug(f"Parsing code for {translator.label}")
		try:
			self.context.load(translator)
		except Exception as e:
			translator.log_error(e)
			self._debug(f"{e} in parsing code for {translator.label}", logging.INFO)
			return False
		return True

	def _prepare_detect(self, translator: Translator) -> bool:
		self._generate_context("detect", translator)
		if not self._parse_code(translator):
			return False
		if self.mode == "import":
			try:
				self._import_configure_io()
			except Exception as e:
				self._debug(f"{e} in opening IO for {translator.label}", logging.INFO)
				return False
		return True

	# execution

	def translate(self) -> Optional[bool]:
		"""Run the selected translator. Returns the outcome passed to ``done``."""
		self.new_items = []
		self.new_collections = []
		self.output = None
		self.success = None
		self._complete = False
		self._items_done = False

		if self.translator is None:
			raise ValueError("cannot translate: no translator specified")
		if self.location is None and self._storage is None and self.mode not in ("search", "export"):
			raise ValueError("cannot translate: no location specified")
		if self.env.library is None and (self.save_items or self.mode == "export"):
			raise ValueError("cannot translate: no library configured")

		self._saver = None
		if self.save_items and self.mode != "export":
			base_dir = Path(self.location).parent if self.mode == "import" and self.location is not None else None
			self._saver = ItemSaver(
				self.env.library,
				self.env.attachments,
				self.mode,
				self.env.preferences,
				save_attachments=self.save_attachments,
				base_dir=base_dir,
			)
			self.new_collections = self._saver.new_collections

		self.state = "executing"
		if not self._load_translator():
			return self.success

		if self._dispatch():
			if not self.wait_for_completion:
				self._translation_complete(True)
			else:
				self._pump(
					lambda: not self._complete,
					lambda: self._translation_complete(False, ExecutionError(
						f"{self.translator.label} called wait() but never called done()"
					)),
				)
		return self.success

	run = translate

	def _load_translator(self) -> bool:
		translator = self.translator
		self._generate_context("translate", translator)
		if not self._parse_code(translator):
			self._translation_complete(False, ExecutionError(f"Could not parse code for {translator.label}"))
			return False
		if self._set_display_options is not None:
			self.display_options.update(self._set_display_options)
		return True

	def prepare_for_delegation(self) -> bool:
		"""Load the translator with read/write in-memory I/O so another translator can call into it."""
		if self.translator is None:
			raise ValueError("cannot load translator: no translator specified")
		self.state = "executing"
		self._complete = False
		if not self._load_translator():
			return False
		self._initialize_internal_io()
		return True

	def _dispatch(self) -> bool:
		"""Configure I/O and call the entry point. False when the run already failed."""
		fn_name = DO_FUNCTIONS[self.mode]
		try:
			if self.mode == "import":
				self._import_prepare()
			elif self.mode == "export":
				self._export_prepare()
			if not self.context.has(fn_name):
				raise ExecutionError(f"{self.translator.label} does not define {fn_name}()")
			self.context.call(fn_name, *self.detect_arguments())
		except Exception as e:
			if self.parent is not None:
				self._abandon()
				raise
			self._translation_complete(False, self._wrap(e))
			return False
		return True

	@staticmethod
	def _wrap(error: BaseException) -> BaseException:
		if isinstance(error, TranslationError):
			return error
		wrapped = ExecutionError(f"{type(error).__name__}: {error}")
		wrapped.__cause__ = error
		return wrapped

	# I/O

	def _data_mode(self) -> str:
		mode = self.config_options.get("dataMode") or "block"
		if mode == "rdf":
			mode = "graph"
		if mode not in DATA_MODES:
			raise ValidationError(f"Invalid data mode {mode!r}")
		return mode

	def _import_prepare(self) -> None:
		charset = None
		if self._storage is None:
			if self._charset:
				charset = self._charset
			elif self.env.preferences.import_charset == "auto":
				charset = self._charset = detect_charset(Path(self.location))
			else:
				charset = self.env.preferences.import_charset or None
		self._import_configure_io(charset)

	def _import_configure_io(self, charset: Optional[str] = None) -> None:
		data_mode = self._data_mode()
		if data_mode == "graph":
			if self.graph is None:
				if self._storage is not None:
					self.graph = GraphIO.from_string(self._storage, base=self.path)
				else:
					self.graph = GraphIO.from_file(Path(self.location))
				self.streams.track(self.graph)
			return

		if self.reader is not None:
			self.reader.close()
		if self._storage is not None:
			self.reader = StringInput(self._storage, data_mode)
		else:
			self.reader = FileInput(Path(self.location), data_mode, charset, self.streams)

	def _initialize_internal_io(self) -> None:
		if self.mode not in ("import", "export"):
			return
		if self._data_mode() == "graph":
			self.graph = GraphIO()
			self.streams.track(self.graph)
		else:
			storage = StringInput(self._storage or "", self._data_mode())
			self.reader = self.writer = storage

	def _export_prepare(self) -> None:
		if self.display_options.get("exportFileData") and self.location is not None:
			location = Path(self.location)
			if location.is_file():
				location.unlink()
			directory = location.parent / location.stem
			directory.mkdir(parents=True, exist_ok=True)
			target = self.translator.target
			self.location = directory / (f"{location.stem}.{target}" if target else location.stem)
			self.path = str(self.location)
			self._export_file_dir = directory / "files"
			self._export_file_dir.mkdir(exist_ok=True)

		self._exporter = ItemExporter(
			self.env.library,
			self.env.attachments,
			items=self.items,
			collection=self.collection,
			get_collections=bool(self.config_options.get("getCollections")),
			file_directory=self._export_file_dir,
			on_item=lambda item: self.run_handler("itemDone", item),
		)
		self._export_configure_io()

	def _export_configure_io(self) -> None:
		if self._data_mode() == "graph":
			self.graph = GraphIO(destination=self.location)
			self.streams.track(self.graph)
			return
		if self.location is None:
			self.writer = StringOutput()
			return
		raw = open(self.location, "wb")
		self.streams.track(raw)
		self.writer = FileOutput(raw)
		if self.display_options.get("exportCharset"):
			self.writer.set_character_set(self.display_options["exportCharset"])

	def _export_next_item(self) -> Optional[Dict[str, Any]]:
		if self._exporter is None:
			raise ValidationError("next_item() is only available while exporting")
		return self._exporter.next_item()

	def _export_next_collection(self) -> Optional[Dict[str, Any]]:
		if self._exporter is None:
			raise ValidationError("next_collection() is only available while exporting")
		return self._exporter.next_collection()

	def _close_streams(self) -> None:
		if isinstance(self.writer, StringOutput):
			self.output = self.writer.value
		elif self.mode == "export" and self.graph is not None and self.graph.destination is None:
			self.output = self.graph.serialize()
		self.streams.close_all()
		self.reader = None
		self.writer = None
		self.graph = None

	# records

	def _item_done(self, item: ScrapedItem) -> None:
		if self.save_items and self._saver is None:
			raise ValidationError("item completed after the translation finished")
		if self.mode == "web" and item.get("repository") is None and self.translator is not None:
			# only when truly unset; False or "" opt out
			item["repository"] = self.translator.label

		self._items_done = True

		if not self.save_items:
			if self.parent is not None:
				item.rebind(self.parent._item_done)
				self._debug("Calling done from parent sandbox")
			self.run_handler("itemDone", item)
			return

		item_id = self._saver.save_item(record_to_dict(item))
		if item_id is None:
			return
		self.new_items.append(item_id)
		self.run_handler("itemDone", self.env.library.get_item(item_id))

	def _collection_done(self, collection: ScrapedCollection) -> None:
		if not self.save_items:
			self.run_handler("collectionDone", collection)
			return
		if self._saver is None:
			raise ValidationError("collection completed after the translation finished")
		saved = self._saver.save_collection(record_to_dict(collection))
		self.run_handler("collectionDone", saved)

	# completion

	def error_string(self, error: Any) -> str:
		return generate_error_string(error, self.path, self.env.preferences)

	def _abandon(self) -> None:
		self._complete = True
		self._close_streams()
		self.state = "done"

	def _translation_complete(self, return_value: Any = None, error: Optional[BaseException] = None) -> None:
		if self._complete:
			return
		if return_value is None:
			return_value = self._items_done
		self._complete = True
		self.wait_for_completion = False
		self.state = "completing"

		if self.mode == "search" and not self._items_done:
			label = self.translator.label if self.translator else "no translator"
			self._debug(f"Could not find a result using {label}: \n{self.error_string(error)}", logging.INFO)
			if len(self._translators) > 1:
				self._translators.pop(0)
				self.translate()
				return
			return_value = False

		self._close_streams()
		if self._saver is not None:
			self._saver.resolve_see_also()
			self.env.library.commit()
			self._saver = None

		if not return_value:
			if error is not None:
				self._report_failure(error)
		else:
			self._debug("Translation successful")

		self.state = "done"
		self.success = bool(return_value)
		self.run_handler("done", self.success)

	def _report_failure(self, error: BaseException) -> None:
		translator = self.translator
		if translator is not None:
			translator.log_error(error)
		error_string = self.error_string(error)
		label = translator.label if translator else "no translator"
		self._debug(f"Translation using {label} failed: \n{error_string}", logging.WARNING)
		if self.mode == "web":
			report_translation_failure(
				translator, error_string, self.env.preferences, self.env.http, self.env.report_url,
			)
		self.run_handler("error", error)
