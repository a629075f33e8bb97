"""Listing and favorite queries against the hosted row store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .backend import BackendError, TableQuery, get_client
from .config import (
    FAVORITES_TABLE,
    HOME_FEED_LIMIT,
    HOME_SECTION_LIMIT,
    LISTINGS_TABLE,
    SEARCH_RESULT_LIMIT,
    SORT_NEWEST,
    SORT_POPULAR,
    SPECIES_ALL,
    SUGGESTION_LIMIT,
)
from .models import Favorite, Listing

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    SORT_NEWEST: "created_at",
    SORT_POPULAR: "favorites_count",
}


@dataclass(frozen=True)
class ListingFilters:
    species: str = SPECIES_ALL
    breed: str = ""
    sort: str = SORT_NEWEST
    name: str = ""


def normalize_species_filter(value: str | None) -> str:
    """Return the lowercase species token, or "" for the show-all sentinel."""
    text = (value or "").strip()
    if not text or text.lower() == SPECIES_ALL.lower():
        return ""
    return text.lower()


def normalize_breed_filter(value: str | None) -> str:
    """Trim a breed substring; interior whitespace is part of the match."""
    return (value or "").strip()


def normalize_name_filter(value: str | None) -> str:
    return (value or "").strip()


def normalize_sort(value: str | None) -> str:
    candidate = (value or "").strip().lower()
    for mode in SORT_COLUMNS:
        if mode.lower() == candidate:
            return mode
    return SORT_NEWEST


def like_pattern(value: str) -> str:
    """Build a substring pattern, escaping LIKE metacharacters.

    ``*`` is the wildcard in the row API's query string, so literal asterisks
    are dropped from user input.
    """
    escaped = (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
        .replace("*", "")
    )
    return f"*{escaped}*"


def build_listing_query(
    client,
    filters: ListingFilters,
    limit: Optional[int] = None,
) -> TableQuery:
    """Translate filter selections into one listing read query.

    Args:
        client: Backend client exposing ``table``.
        filters: Species/breed/name/sort selections from the UI.
        limit: Optional row cap; None leaves the result unbounded.

    Returns:
        A TableQuery with zero or more predicates and exactly one ordering.
    """
    query = client.table(LISTINGS_TABLE).select("*")

    species = normalize_species_filter(filters.species)
    if species:
        query = query.eq("species", species)

    breed = normalize_breed_filter(filters.breed)
    if breed:
        query = query.ilike("breed", like_pattern(breed))

    name = normalize_name_filter(filters.name)
    if name:
        query = query.ilike("name", like_pattern(name))

    query = query.order(SORT_COLUMNS[normalize_sort(filters.sort)], desc=True)
    if limit is not None:
        query = query.limit(limit)
    return query


def _fetch_rows(query: TableQuery, what: str) -> list[dict]:
    try:
        return query.execute()
    except BackendError:
        logger.exception(f"Failed to fetch {what}.")
        return []


def fetch_listings(
    filters: ListingFilters | None = None,
    limit: Optional[int] = None,
    *,
    client_factory: Callable = get_client,
) -> list[Listing]:
    """Run a filtered listing query; backend errors yield an empty list."""
    query = build_listing_query(client_factory(), filters or ListingFilters(), limit)
    return [Listing.from_row(row) for row in _fetch_rows(query, "listings")]


def fetch_home_feed(
    limit: int = HOME_FEED_LIMIT,
    *,
    client_factory: Callable = get_client,
) -> list[Listing]:
    """Load the newest listings for the home feed."""
    return fetch_listings(ListingFilters(), limit, client_factory=client_factory)


def fetch_home_sections(
    limit: int = HOME_SECTION_LIMIT,
    *,
    client_factory: Callable = get_client,
) -> dict[str, list[Listing]]:
    """Load the urgent-care, trending and new-arrival rails."""
    client = client_factory()
    urgent = (
        client.table(LISTINGS_TABLE)
        .select("*")
        .eq("special_needs", True)
        .order("created_at", desc=True)
        .limit(limit)
    )
    trending = build_listing_query(client, ListingFilters(sort=SORT_POPULAR), limit)
    new_arrivals = build_listing_query(client, ListingFilters(sort=SORT_NEWEST), limit)
    return {
        "urgent": [Listing.from_row(r) for r in _fetch_rows(urgent, "urgent pets")],
        "trending": [Listing.from_row(r) for r in _fetch_rows(trending, "trending pets")],
        "new_arrivals": [
            Listing.from_row(r) for r in _fetch_rows(new_arrivals, "new arrivals")
        ],
    }


def fetch_suggestions(
    limit: int = SUGGESTION_LIMIT,
    *,
    client_factory: Callable = get_client,
) -> list[Listing]:
    query = client_factory().table(LISTINGS_TABLE).select("*").limit(limit)
    return [Listing.from_row(row) for row in _fetch_rows(query, "suggestions")]


def search_listings_by_name(
    name: str,
    species: str = SPECIES_ALL,
    breed: str = "",
    limit: int = SEARCH_RESULT_LIMIT,
    *,
    client_factory: Callable = get_client,
) -> list[Listing]:
    """Case-insensitive name substring search, newest first."""
    filters = ListingFilters(species=species, breed=breed, sort=SORT_NEWEST, name=name)
    return fetch_listings(filters, limit, client_factory=client_factory)


def fetch_listing(
    pet_id: int,
    *,
    client_factory: Callable = get_client,
) -> Listing | None:
    """Load one listing by id, or None when absent or on error."""
    query = client_factory().table(LISTINGS_TABLE).select("*").eq("id", pet_id)
    try:
        row = query.maybe_single()
    except BackendError:
        logger.exception(f"Failed to fetch listing {pet_id}.")
        return None
    return Listing.from_row(row) if row else None


def insert_listing(
    row: dict,
    *,
    client_factory: Callable = get_client,
) -> Listing:
    """Insert a listing row and return it as stored.

    Raises:
        BackendError: When the insert is rejected.
    """
    created = client_factory().table(LISTINGS_TABLE).insert(row)
    if not created:
        raise BackendError("Listing insert returned no row.")
    return Listing.from_row(created[0])


# ===========================
# Favorites
# ===========================


def _favorite_query(client, user_id: str, pet_id: int) -> TableQuery:
    return client.table(FAVORITES_TABLE).eq("user_id", user_id).eq("pet_id", pet_id)


def is_favorited(
    user_id: str,
    pet_id: int,
    *,
    client_factory: Callable = get_client,
) -> bool:
    """Return True when a (user, pet) favorite row exists."""
    try:
        row = _favorite_query(client_factory(), user_id, pet_id).select("*").maybe_single()
    except BackendError:
        logger.exception(f"Failed to check favorite for pet {pet_id}.")
        return False
    return row is not None


def add_favorite(
    user_id: str,
    pet_id: int,
    *,
    client_factory: Callable = get_client,
) -> None:
    client_factory().table(FAVORITES_TABLE).insert({"user_id": user_id, "pet_id": pet_id})


def remove_favorite(
    user_id: str,
    pet_id: int,
    *,
    client_factory: Callable = get_client,
) -> None:
    _favorite_query(client_factory(), user_id, pet_id).delete()


def fetch_favorites(
    user_id: str,
    *,
    client_factory: Callable = get_client,
) -> list[Favorite]:
    """Load a user's favorites with their listings, most recent first."""
    query = (
        client_factory()
        .table(FAVORITES_TABLE)
        .select(f"*, {LISTINGS_TABLE}(*)")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
    )
    return [Favorite.from_row(row) for row in _fetch_rows(query, "favorites")]
