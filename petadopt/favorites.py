"""Per-listing favorite state backed by the favorites join table."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .backend import BackendError, get_client
from .repository import add_favorite, is_favorited, remove_favorite

logger = logging.getLogger(__name__)

# Keys of (user_id, pet_id) with a toggle currently awaiting the backend.
_IN_FLIGHT: set[tuple[str, int]] = set()
_IN_FLIGHT_LOCK = threading.Lock()


def _claim(key: tuple[str, int]) -> bool:
    with _IN_FLIGHT_LOCK:
        if key in _IN_FLIGHT:
            return False
        _IN_FLIGHT.add(key)
        return True


def _release(key: tuple[str, int]) -> None:
    with _IN_FLIGHT_LOCK:
        _IN_FLIGHT.discard(key)


def _is_in_flight(key: tuple[str, int]) -> bool:
    with _IN_FLIGHT_LOCK:
        return key in _IN_FLIGHT


class FavoriteToggle:
    """Favorite button state for one (user, pet) pair.

    State only flips after the backend acknowledges the insert or delete. A
    toggle issued while another one for the same pair is outstanding (from
    this or any other instance) is rejected without a network call.
    ``version`` counts acknowledged toggles so an existence check that started
    before one of them can be discarded.
    """

    def __init__(
        self,
        user_id: str,
        pet_id: int,
        *,
        client_factory: Callable = get_client,
    ) -> None:
        self.user_id = str(user_id)
        self.pet_id = int(pet_id)
        self.favorited = False
        self.version = 0
        self._client_factory = client_factory
        self._lock = threading.Lock()

    @property
    def key(self) -> tuple[str, int]:
        return (self.user_id, self.pet_id)

    @property
    def pending(self) -> bool:
        """True while a toggle for this pair is awaiting the backend."""
        return _is_in_flight(self.key)

    def check(self) -> bool:
        """Read membership from the backend without touching local state."""
        return is_favorited(self.user_id, self.pet_id, client_factory=self._client_factory)

    def apply_loaded(self, favorited: bool, version: int) -> bool:
        """Adopt a membership read started at ``version``.

        Returns:
            False when a toggle was acknowledged since or is still pending,
            leaving state as is.
        """
        with self._lock:
            if version != self.version or self.pending:
                logger.debug(f"Ignoring stale favorite read for pet {self.pet_id}.")
                return False
            self.favorited = bool(favorited)
            return True

    def load(self) -> bool:
        version = self.version
        self.apply_loaded(self.check(), version)
        return self.favorited

    def toggle(self) -> bool:
        """Flip favorite membership and return the resulting state."""
        if not _claim(self.key):
            logger.debug(f"Favorite toggle for pet {self.pet_id} already in flight.")
            return self.favorited
        target = not self.favorited
        try:
            if target:
                add_favorite(
                    self.user_id, self.pet_id, client_factory=self._client_factory
                )
            else:
                remove_favorite(
                    self.user_id, self.pet_id, client_factory=self._client_factory
                )
            with self._lock:
                self.favorited = target
                self.version += 1
        except BackendError:
            logger.exception(f"Failed to toggle favorite for pet {self.pet_id}.")
        finally:
            _release(self.key)
        return self.favorited
