"""Name search and the recent-search history."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .config import RECENT_SEARCH_LIMIT, SPECIES_ALL
from .models import Listing
from .repository import search_listings_by_name

logger = logging.getLogger(__name__)


class RecentSearches:
    """Bounded, de-duplicated, most-recent-first list of past queries.

    Lives only in process memory. Safe to update from worker threads.
    """

    def __init__(self, limit: int = RECENT_SEARCH_LIMIT) -> None:
        self.limit = max(1, int(limit))
        self._items: list[str] = []
        self._lock = threading.Lock()

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def add(self, query: str) -> None:
        with self._lock:
            self._items = [query, *(item for item in self._items if item != query)]
            del self._items[self.limit :]

    def clear(self) -> None:
        with self._lock:
            self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))


class SearchTracker:
    def __init__(
        self,
        recent: RecentSearches | None = None,
        search_fn: Callable[..., list[Listing]] = search_listings_by_name,
    ) -> None:
        self.recent = recent if recent is not None else RecentSearches()
        self._search_fn = search_fn
        self.species = SPECIES_ALL
        self.breed = ""

    def set_filters(self, species: str = SPECIES_ALL, breed: str = "") -> None:
        self.species = species or SPECIES_ALL
        self.breed = breed or ""

    def search(self, query: str) -> list[Listing]:
        """Run the name search with the active species/breed filters."""
        return self._search_fn(query, species=self.species, breed=self.breed)

    def submit_query(self, query: str | None) -> list[Listing] | None:
        """Search by name and remember the query.

        Returns:
            Matching listings, or None when the query is blank (no-op).
        """
        text = (query or "").strip()
        if not text:
            return None
        results = self.search(text)
        self.recent.add(text)
        logger.debug(f"Search {text!r} returned {len(results)} listings.")
        return results

    def select_recent(self, query: str) -> list[Listing]:
        """Re-run a remembered query and move it to the front of the history."""
        return self.submit_query(query) or []

    def clear_recent(self) -> None:
        self.recent.clear()
