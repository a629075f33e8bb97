from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes")
    return bool(value)


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Listing:
    id: Optional[int]
    name: str
    species: str
    location: str

    breed: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    health_status: Optional[str] = None

    vaccinated: bool = False
    adoption_fee: float = 0.0
    special_needs: bool = False
    favorites_count: int = 0
    created_at: Optional[str] = None

    def __post_init__(self) -> None:
        """Normalize species to the lowercase token used by filters."""
        object.__setattr__(self, "species", str(self.species or "").strip().lower())

    @classmethod
    def from_row(cls, row: dict) -> "Listing":
        """Build a listing from a backend row, tolerating missing columns.

        Args:
            row: Mapping returned by the listing store.

        Returns:
            Parsed Listing.
        """
        return cls(
            id=_as_int(row.get("id")),
            name=row.get("name") or "",
            species=row.get("species") or "",
            location=row.get("location") or "",
            breed=row.get("breed"),
            age=_as_int(row.get("age")),
            gender=row.get("gender"),
            description=row.get("description"),
            image_url=row.get("image_url"),
            health_status=row.get("health_status"),
            vaccinated=_as_bool(row.get("vaccinated")),
            adoption_fee=_as_float(row.get("adoption_fee")),
            special_needs=_as_bool(row.get("special_needs")),
            favorites_count=_as_int(row.get("favorites_count")) or 0,
            created_at=row.get("created_at"),
        )

    def to_insert_row(self) -> dict:
        """Return the columns a client may write; the backend assigns the rest."""
        return {
            "name": self.name,
            "species": self.species,
            "location": self.location,
            "image_url": self.image_url,
            "breed": self.breed,
            "age": self.age,
            "gender": self.gender,
            "description": self.description,
            "health_status": self.health_status,
            "vaccinated": self.vaccinated,
            "adoption_fee": self.adoption_fee,
            "special_needs": self.special_needs,
        }

    def __str__(self) -> str:
        """Return a human-readable listing summary."""

        def fmt(v):
            return v if v not in (None, "") else "--"

        return (
            f"Listing #{fmt(self.id)} ({fmt(self.species)})\n"
            f"{'-' * 60}\n"
            f"Name       : {fmt(self.name)}\n"
            f"Breed      : {fmt(self.breed)}\n"
            f"Age        : {fmt(self.age)}\n"
            f"Gender     : {fmt(self.gender)}\n"
            f"Location   : {fmt(self.location)}\n"
            f"Health     : {fmt(self.health_status)}\n"
            f"Vaccinated : {'yes' if self.vaccinated else 'no'}\n"
            f"Fee        : ${self.adoption_fee:.2f}\n"
            f"Favorites  : {self.favorites_count}\n"
            f"Image      : {fmt(self.image_url)}\n"
            f"Created At : {fmt(self.created_at)}\n"
        )


@dataclass(frozen=True)
class Favorite:
    user_id: str
    pet_id: int
    created_at: Optional[str] = None
    pet: Optional[Listing] = None

    @classmethod
    def from_row(cls, row: dict) -> "Favorite":
        # Joined selects nest the listing under the table name.
        joined = row.get("pets")
        return cls(
            user_id=str(row.get("user_id") or ""),
            pet_id=_as_int(row.get("pet_id")) or 0,
            created_at=row.get("created_at"),
            pet=Listing.from_row(joined) if isinstance(joined, dict) else None,
        )


@dataclass(frozen=True)
class Profile:
    id: str
    name: str = ""
    bio: str = ""
    avatar_url: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        return cls(
            id=str(row.get("id") or ""),
            name=row.get("name") or "",
            bio=row.get("bio") or "",
            avatar_url=row.get("avatar_url") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_row(self) -> dict:
        row = {
            "id": self.id,
            "name": self.name,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "updated_at": self.updated_at,
        }
        if self.created_at:
            row["created_at"] = self.created_at
        return row


@dataclass(frozen=True)
class User:
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "User":
        return cls(
            id=str(payload.get("id") or ""),
            email=payload.get("email") or None,
            phone=payload.get("phone") or None,
        )


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user: User
    expires_at: int = field(default_factory=lambda: int(time.time()) + 3600)

    @classmethod
    def from_payload(cls, payload: dict) -> "AuthSession":
        """Parse a token response from the auth service.

        Args:
            payload: JSON body containing tokens and the user object.

        Returns:
            Parsed AuthSession.
        """
        expires_at = _as_int(payload.get("expires_at"))
        if expires_at is None:
            expires_in = _as_int(payload.get("expires_in")) or 3600
            expires_at = int(time.time()) + expires_in
        return cls(
            access_token=payload.get("access_token") or "",
            refresh_token=payload.get("refresh_token") or "",
            user=User.from_payload(payload.get("user") or {}),
            expires_at=expires_at,
        )

    def is_expired(self, now: Optional[float] = None, skew_seconds: int = 30) -> bool:
        current = time.time() if now is None else now
        return current >= self.expires_at - skew_seconds
