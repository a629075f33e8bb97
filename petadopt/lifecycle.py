"""Cancellation tokens and latest-wins fetch scopes for screens."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class TaskScope:
    """Runs screen fetches on a worker pool and applies only live results.

    Each fetch is registered under a slot name. Starting a new fetch in a slot
    cancels the previous one, and ``close()`` cancels all of them, so a slow
    response can neither overwrite a newer one nor land after unmount.
    """

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=DEFAULT_MAX_WORKERS)
        self._lock = threading.RLock()
        self._tokens: dict[str, CancelToken] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def run(
        self,
        slot: str,
        fetch: Callable[[], Any],
        apply: Callable[[Any], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Future:
        """Submit ``fetch`` and hand its result to ``apply`` if still current.

        Returns:
            Future resolving to True when the result was applied.
        """
        token = CancelToken()
        with self._lock:
            if self._closed:
                raise RuntimeError("Task scope is closed.")
            previous = self._tokens.get(slot)
            if previous is not None:
                previous.cancel()
            self._tokens[slot] = token
        return self._executor.submit(self._execute, slot, token, fetch, apply, on_error)

    def _execute(self, slot, token, fetch, apply, on_error) -> bool:
        if token.cancelled:
            return False
        try:
            result = fetch()
        except Exception as exc:
            if on_error is None:
                raise
            with self._lock:
                if token.cancelled:
                    return False
                on_error(exc)
            return False
        with self._lock:
            if token.cancelled:
                logger.debug(f"Dropping superseded result for {slot}.")
                return False
            apply(result)
        return True

    def cancel(self, slot: str) -> None:
        with self._lock:
            token = self._tokens.pop(slot, None)
        if token is not None:
            token.cancel()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            tokens = list(self._tokens.values())
            self._tokens.clear()
        for token in tokens:
            token.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
