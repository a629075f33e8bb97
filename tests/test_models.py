import time

from petadopt.models import AuthSession, Favorite, Listing, Profile


def test_listing_from_row_normalizes_species_and_types():
    listing = Listing.from_row(
        {
            "id": "7",
            "name": "Biscuit",
            "species": " Dog ",
            "breed": "Labrador Mix",
            "age": "3",
            "location": "Austin, TX",
            "vaccinated": "true",
            "adoption_fee": "75.5",
            "special_needs": False,
            "favorites_count": None,
            "created_at": "2025-01-02T00:00:00+00:00",
        }
    )
    assert listing.id == 7
    assert listing.species == "dog"
    assert listing.age == 3
    assert listing.vaccinated is True
    assert listing.adoption_fee == 75.5
    assert listing.favorites_count == 0


def test_listing_str_includes_fields():
    listing = Listing(
        id=12,
        name="Mochi",
        species="CAT",
        location="Chicago",
        breed="Domestic Shorthair",
        age=2,
        adoption_fee=50,
    )
    s = str(listing)
    assert "Listing #12 (cat)" in s
    assert "Mochi" in s
    assert "Domestic Shorthair" in s
    assert "Chicago" in s
    assert "$50.00" in s


def test_listing_insert_row_excludes_backend_columns():
    row = Listing(id=1, name="Rex", species="dog", location="Denver").to_insert_row()
    assert "id" not in row
    assert "favorites_count" not in row
    assert "created_at" not in row
    assert row["vaccinated"] is False
    assert row["adoption_fee"] == 0.0


def test_favorite_from_row_parses_joined_listing():
    fav = Favorite.from_row(
        {
            "user_id": "u1",
            "pet_id": 4,
            "pets": {"id": 4, "name": "Rex", "species": "dog", "location": "Denver"},
        }
    )
    assert fav.pet_id == 4
    assert fav.pet is not None
    assert fav.pet.name == "Rex"

    bare = Favorite.from_row({"user_id": "u1", "pet_id": 5, "pets": None})
    assert bare.pet is None


def test_profile_row_round_trip_keeps_id():
    profile = Profile.from_row({"id": "u1", "name": None, "bio": "Hi"})
    assert profile.name == ""
    assert profile.to_row()["id"] == "u1"
    assert "created_at" not in profile.to_row()


def test_auth_session_expiry_from_expires_in():
    session = AuthSession.from_payload(
        {
            "access_token": "a",
            "refresh_token": "r",
            "expires_in": 3600,
            "user": {"id": "u1", "email": "a@example.com"},
        }
    )
    assert session.user.id == "u1"
    assert session.is_expired() is False
    assert session.is_expired(now=time.time() + 7200) is True
