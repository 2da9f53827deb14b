from __future__ import annotations

import logging
from typing import Any, List

logger = logging.getLogger(__name__)


class StreamRegistry:
    """Open handles of one operation, closed together at teardown.

    Closing tolerates handles that are already closed, were only partially
    set up (``None``), or raise on close.
    """

    def __init__(self):
        self._handles: List[Any] = []

    def track(self, handle: Any) -> Any:
        self._handles.append(handle)
        return handle

    def __len__(self) -> int:
        return len(self._handles)

    def close_all(self) -> int:
        closed = 0
        handles, self._handles = self._handles, []
        for handle in handles:
            if handle is None:
                continue
            close = getattr(handle, "close", None)
            if close is None:
                continue
            try:
                close()
                closed += 1
            except (OSError, ValueError) as e:
                logger.debug(f"Ignoring error while closing {handle!r}: {e}")
        return closed
