"""Configuration and simple helper utilities for PetAdopt."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

SESSION_CACHE_DIR = "./data/cache/session"

HOME_FEED_LIMIT = 20
HOME_SECTION_LIMIT = 10
SEARCH_RESULT_LIMIT = 20
SUGGESTION_LIMIT = 5
RECENT_SEARCH_LIMIT = 5
PASSWORD_MIN_LENGTH = 6
REQUEST_TIMEOUT_SECONDS = 30

SPECIES_ALL = "All"
SORT_NEWEST = "Newest"
SORT_POPULAR = "Popular"
SORT_MODES = (SORT_NEWEST, SORT_POPULAR)

LISTINGS_TABLE = "pets"
FAVORITES_TABLE = "favorites"
PROFILES_TABLE = "profiles"

DEFAULT_UPLOAD_PRESET = "ml_default"
IMAGE_HOST_API = "https://api.cloudinary.com/v1_1"

PLACEHOLDER_AVATAR_URL = "https://via.placeholder.com/150"
PLACEHOLDER_BIO = "No bio yet."

LOGIN_ROUTE = "/auth/login"
HOME_ROUTE = "/home"


def _first_env(*names: str) -> str:
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def get_backend_config() -> tuple[str, str]:
    """Return the backend service URL and public key.

    Missing values come back as empty strings so every backend call fails the
    same way instead of at import time.
    """
    url = _first_env("SUPABASE_URL", "EXPO_PUBLIC_SUPABASE_URL")
    key = _first_env("SUPABASE_ANON_KEY", "EXPO_PUBLIC_SUPABASE_ANON_KEY")
    return url.rstrip("/"), key


def get_image_host_config() -> tuple[str, str]:
    """Return the image host cloud name and unsigned upload preset."""
    cloud_name = _first_env("CLOUDINARY_CLOUD_NAME")
    preset = _first_env("CLOUDINARY_UPLOAD_PRESET") or DEFAULT_UPLOAD_PRESET
    return cloud_name, preset


def get_log_level() -> str:
    return (os.environ.get("LOG_LEVEL") or "INFO").upper()
