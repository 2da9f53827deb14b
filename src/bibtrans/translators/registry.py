"""Translator registry: loads descriptors from a directory and caches them
by ID and by operation type.

One registry is shared by every operation in a process. It is read-only for
the engine; ``invalidate`` drops the cache so the next lookup reloads it.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Dict, List, Optional

from ..constants import MODES
from ..errors import MetadataError
from .descriptor import Translator

logger = logging.getLogger(__name__)


class TranslatorRegistry:
    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._translators: Dict[str, Translator] = {}
        self._cache: Dict[str, List[Translator]] = {}
        self._initialized = False

    def init(self) -> None:
        start = time.time()
        self._translators = {}
        self._cache = {mode: [] for mode in MODES}

        count = 0
        files = sorted(p for p in self.directory.iterdir() if p.is_file()) if self.directory.is_dir() else []
        for path in files:
            if not path.name or path.name.startswith("."):
                continue
            count += 1
            try:
                translator = Translator.from_file(path)
            except MetadataError as e:
                logger.error(f"{e} [{path}]")
                continue
            except OSError as e:
                logger.error(f"Could not read translator {path}: {e}")
                continue

            existing = self._translators.get(translator.id)
            if existing:
                translator.log_error(
                    f'Translator with ID {translator.id} already loaded from "{existing.path.name if existing.path else existing.label}"'
                )
                continue
            self._translators[translator.id] = translator
            for mode in MODES:
                if translator.supports(mode):
                    self._cache[mode].append(translator)

        self._initialized = True
        logger.debug(f"Cached {count} translators in {int((time.time() - start) * 1000)} ms")

    def invalidate(self) -> None:
        self._initialized = False
        self._translators = {}
        self._cache = {}

    def _ensure(self) -> None:
        if not self._initialized:
            self.init()

    def get(self, translator_id: str) -> Optional[Translator]:
        self._ensure()
        return self._translators.get(translator_id)

    def get_all_for_type(self, mode: str) -> List[Translator]:
        self._ensure()
        if mode not in self._cache:
            raise ValueError(f"Unknown translator type: {mode}")
        return list(self._cache[mode])

    def __len__(self) -> int:
        self._ensure()
        return len(self._translators)

    @staticmethod
    def file_name_from_label(label: str) -> str:
        name = re.sub(r'[\\/:*?"<>|\x00-\x1f]', "", label).strip().strip(".")
        return f"{name or 'translator'}.py"
