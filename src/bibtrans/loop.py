"""Cooperative callback queue owned by one operation.

There are no threads. Work that translator code wants done "later"
(HTTP callbacks, deferred calls) is queued here and run when the operation
drains the queue after an entry point returns in asynchronous mode.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)


class CallbackQueue:
    def __init__(self, on_error: Optional[Callable[[BaseException], None]] = None):
        self._pending: Deque[Tuple[Callable[..., Any], tuple]] = deque()
        self._draining = False
        self.on_error = on_error

    def call_soon(self, fn: Callable[..., Any], *args) -> None:
        self._pending.append((fn, args))

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def draining(self) -> bool:
        return self._draining

    def clear(self) -> None:
        self._pending.clear()

    def drain(self) -> int:
        """Run queued callbacks, including ones queued while draining.

        Re-entrant calls return immediately; the outer drain picks up the work.
        """
        if self._draining:
            return 0
        self._draining = True
        ran = 0
        try:
            while self._pending:
                fn, args = self._pending.popleft()
                ran += 1
                try:
                    fn(*args)
                except Exception as e:
                    if self.on_error is None:
                        raise
                    logger.debug(f"Queued callback {getattr(fn, '__name__', fn)!r} failed: {e}")
                    self.on_error(e)
        finally:
            self._draining = False
        return ran
