"""The ``bib`` object translator code runs against.

Each mode gets its own capability class, so the surface a translator sees is
fixed by its mode:

- every mode: ``debug``, ``configure``, ``add_option``, ``get_option``,
  ``wait``, ``done``, ``load_translator``, ``utilities``
- import, web, search: ``Item``
- import: ``Collection``, plus ``read``/``write``/``set_character_set``/``graph``
- web, search: ``select_items``
- export: ``next_item``, ``next_collection``, plus the I/O methods
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from .errors import InvalidSelection, ValidationError
from .io import GraphAccess
from .records import collection_factory, item_factory
from .utilities import Utilities

if TYPE_CHECKING:
    from .translate import Translation


class Capabilities:
    mode: Optional[str] = None

    def __init__(self, translation: "Translation", phase: str):
        self._translation = translation
        self._phase = phase
        self.utilities = Utilities(translation)

    def debug(self, message: Any) -> None:
        self._translation._debug(message)

    def configure(self, option: str, value: Any) -> None:
        self._translation.configure(option, value)

    def add_option(self, option: str, value: Any) -> None:
        self._translation.add_option(option, value)

    def get_option(self, option: str) -> Any:
        return self._translation.display_options.get(option)

    def wait(self) -> None:
        self._translation._enable_async(self._phase)

    def done(self, value: Any = None) -> None:
        self._translation._signal_done(self._phase, value)

    def load_translator(self, mode: str):
        return self._translation.load_translator(mode)


class _RecordCapabilities(Capabilities):
    def __init__(self, translation: "Translation", phase: str):
        super().__init__(translation, phase)
        self.Item = item_factory(translation._item_done)


class _IOCapabilities:
    _translation: "Translation"

    def read(self, amount: Optional[int] = None) -> Optional[str]:
        reader = self._translation.reader
        if reader is None:
            raise ValidationError("read() is not available in this data mode")
        return reader.read(amount)

    def write(self, data: str) -> None:
        writer = self._translation.writer
        if writer is None:
            raise ValidationError("write() is not available in this data mode")
        writer.write(data)

    def set_character_set(self, charset: str) -> None:
        translation = self._translation
        if translation.writer is not None:
            translation.writer.set_character_set(charset)
        elif translation.reader is not None:
            translation.reader.set_character_set(charset)

    @property
    def graph(self) -> Optional[GraphAccess]:
        graph = self._translation.graph
        return GraphAccess(graph) if graph is not None else None


class _SelectCapabilities:
    _translation: "Translation"

    def select_items(self, options: Dict[str, Any]) -> Dict[str, Any]:
        if not options:
            raise InvalidSelection("Translator called select_items() with no items")
        return self._translation._select_items(options)


class ImportCapabilities(_IOCapabilities, _RecordCapabilities):
    mode = "import"

    def __init__(self, translation: "Translation", phase: str):
        super().__init__(translation, phase)
        self.Collection = collection_factory(translation._collection_done)


class ExportCapabilities(_IOCapabilities, Capabilities):
    mode = "export"

    def next_item(self) -> Optional[Dict[str, Any]]:
        return self._translation._export_next_item()

    def next_collection(self) -> Optional[Dict[str, Any]]:
        return self._translation._export_next_collection()


class WebCapabilities(_SelectCapabilities, _RecordCapabilities):
    mode = "web"


class SearchCapabilities(_SelectCapabilities, _RecordCapabilities):
    mode = "search"


CAPABILITIES: Dict[str, Type[Capabilities]] = {
    "import": ImportCapabilities,
    "export": ExportCapabilities,
    "web": WebCapabilities,
    "search": SearchCapabilities,
}


def build_capabilities(translation: "Translation", phase: str) -> Capabilities:
    return CAPABILITIES[translation.mode](translation, phase)
