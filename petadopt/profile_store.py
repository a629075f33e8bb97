"""Profile rows keyed by auth user id."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from .backend import BackendError, get_client
from .config import PLACEHOLDER_AVATAR_URL, PLACEHOLDER_BIO, PROFILES_TABLE
from .email_utils import display_name_from_email
from .models import Profile

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def profile_name_error(name: str | None) -> str | None:
    if not (name or "").strip():
        return "Name cannot be empty."
    return None


def load_profile(
    user_id: str,
    *,
    client_factory: Callable = get_client,
) -> Profile | None:
    """Fetch a profile row; absence or failure means "no profile yet"."""
    query = client_factory().table(PROFILES_TABLE).select("*").eq("id", user_id)
    try:
        row = query.maybe_single()
    except BackendError:
        logger.exception(f"Failed to fetch profile for {user_id}.")
        return None
    return Profile.from_row(row) if row else None


def save_profile(
    profile: Profile,
    *,
    client_factory: Callable = get_client,
) -> Profile:
    """Upsert a profile keyed by id, stamping ``updated_at``.

    Raises:
        BackendError: When the upsert is rejected.
    """
    stamped = replace(profile, updated_at=_utc_now())
    rows = client_factory().table(PROFILES_TABLE).upsert(stamped.to_row(), on_conflict="id")
    logger.info(f"Saved profile for {profile.id}.")
    return Profile.from_row(rows[0]) if rows else stamped


def create_default_profile(
    user_id: str,
    *,
    client_factory: Callable = get_client,
) -> None:
    """Insert the empty profile created alongside a new account."""
    now = _utc_now()
    row = Profile(id=user_id, created_at=now, updated_at=now).to_row()
    client_factory().table(PROFILES_TABLE).insert(row)


@dataclass(frozen=True)
class ProfileView:
    display_name: str
    email: str
    bio: str
    avatar_url: str


def profile_view(profile: Optional[Profile], email: str | None) -> ProfileView:
    """Apply display defaults for missing profile fields."""
    email_text = email or ""
    name = (profile.name if profile else "") or display_name_from_email(email_text)
    return ProfileView(
        display_name=name,
        email=email_text,
        bio=(profile.bio if profile else "") or PLACEHOLDER_BIO,
        avatar_url=(profile.avatar_url if profile else "") or PLACEHOLDER_AVATAR_URL,
    )
