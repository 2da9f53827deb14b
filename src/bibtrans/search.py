"""Translator search: which candidates can handle the bound target.

Candidates are tried in input order. A translator with a target pattern is
only asked to detect when the pattern matches the path or URL. An import
search that finds nothing runs once more with the pattern test inverted, to
catch files whose extension does not match their content.

Detection may be asynchronous: a detect routine that calls ``bib.wait()``
suspends the search until it calls ``bib.done(value)``. Only one candidate is
in flight at a time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from .errors import DetectionError
from .translators import DetectedTranslator, Translator

if TYPE_CHECKING:
    from .translate import Translation

logger = logging.getLogger(__name__)

DETECT_FUNCTIONS = {
    "import": "detect_import",
    "web": "detect_web",
    "search": "detect_search",
}


class TranslatorSearch:
    def __init__(self, translation: "Translation", translators: Sequence[Translator]):
        self.translation = translation
        self.all_translators = list(translators)
        self.translators = list(translators)
        self.found: List[DetectedTranslator] = []
        self.ignore_extensions = False
        self.async_mode = False
        self.running = True
        self.finished = False
        self.current: Optional[Translator] = None

    @property
    def pending(self) -> bool:
        return self.running and self.async_mode and self.current is not None

    def execute(self) -> None:
        """Work through the queue until it is empty or a detection suspends."""
        while self.running and not self.finished:
            if self._check_done():
                return
            translator = self.translators.pop(0)

            if not self.translation.has_target():
                # nothing to detect against; every candidate applies
                self._add(translator)
                continue

            if not self._matches_target(translator):
                continue

            if not self.translation._prepare_detect(translator):
                continue

            if self._run_detect(translator):
                return

    def _matches_target(self, translator: Translator) -> bool:
        mode = self.translation.mode
        if not translator.target or mode not in ("import", "web"):
            return True
        regexp = translator.web_regexp if mode == "web" else translator.import_regexp
        matched = bool(regexp and regexp.search(self.translation.path or ""))
        if self.ignore_extensions:
            # the literal pass already failed; now try the ones that did not match
            matched = not matched
        return matched

    def _run_detect(self, translator: Translator) -> bool:
        """Run the detect routine. Returns True when detection went asynchronous."""
        translation = self.translation
        fn_name = DETECT_FUNCTIONS.get(translation.mode)
        if fn_name is None or not translation.context.has(fn_name):
            # no detect routine (export translators, mostly); include it anyway
            self._add(translator)
            return False

        self.current = translator
        try:
            value = translation.context.call(fn_name, *translation.detect_arguments())
        except Exception as e:
            self._detect_failed(translator, e)
            self.current = None
            return False
        translation._debug(f"Executed detect code for {translator.label}")

        if translation.wait_for_completion:
            self.async_mode = True
            return True
        if value:
            self._process(translator, value)
        self.current = None
        return False

    def _check_done(self) -> bool:
        if self.translators:
            return False
        if self.found:
            self._deliver(self.found)
            return True
        if self.translation.mode == "import" and not self.ignore_extensions:
            logger.debug("No import translator matched; retrying with extensions ignored")
            self.ignore_extensions = True
            self.translators = list(self.all_translators)
            if not self.translators:
                return self._deliver([])
            return False
        self._deliver([])
        return True

    def _deliver(self, found: List[DetectedTranslator]) -> bool:
        self.finished = True
        self.translation.run_handler("translators", list(found))
        return True

    def _process(self, translator: Translator, value: Any) -> None:
        self.translation._debug(f"Found translator {translator.label}")
        self._add(translator, value if isinstance(value, str) else None)

    def _add(self, translator: Translator, item_type: Optional[str] = None) -> None:
        self.found.append(DetectedTranslator(
            translator,
            item_type=item_type,
            config_options=self.translation.config_options,
            display_options=self.translation.display_options,
        ))

    def _detect_failed(self, translator: Translator, error: BaseException) -> None:
        err = error if isinstance(error, DetectionError) else DetectionError(f"{type(error).__name__}: {error}")
        translator.log_error(err, logging.WARNING)
        error_string = self.translation.error_string(err)
        self.translation._debug(f"Detect code for {translator.label} failed: \n{error_string}")

    def complete(self, value: Any = None, error: Optional[BaseException] = None) -> None:
        """Resume after an asynchronous detection signalled its result."""
        if not self.running or self.current is None:
            return
        self.translation.wait_for_completion = False
        translator, self.current = self.current, None
        self.async_mode = False
        if value:
            self._process(translator, value)
        elif error is not None:
            self._detect_failed(translator, error)
        self.execute()
