import pytest

from petadopt.backend import BackendError
from petadopt.config import PLACEHOLDER_AVATAR_URL, PLACEHOLDER_BIO
from petadopt.models import Profile
from petadopt.profile_store import (
    create_default_profile,
    load_profile,
    profile_name_error,
    profile_view,
    save_profile,
)


class DummyProfiles:
    def __init__(self, client):
        self.client = client
        self.filters = {}

    def select(self, columns="*"):
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def maybe_single(self):
        if self.client.error is not None:
            raise self.client.error
        return self.client.rows.get(self.filters.get("id"))

    def upsert(self, row, on_conflict="id"):
        self.client.calls.append(("upsert", row, on_conflict))
        if self.client.error is not None:
            raise self.client.error
        self.client.rows[row["id"]] = dict(row)
        return [dict(row)]

    def insert(self, row):
        self.client.calls.append(("insert", row))
        self.client.rows[row["id"]] = dict(row)
        return [dict(row)]


class DummyClient:
    def __init__(self, rows=None, error=None):
        self.rows = rows or {}
        self.error = error
        self.calls = []

    def table(self, name):
        assert name == "profiles"
        return DummyProfiles(self)


def test_load_profile_missing_or_failing_is_none():
    assert load_profile("u1", client_factory=lambda: DummyClient()) is None
    failing = DummyClient(error=BackendError("boom"))
    assert load_profile("u1", client_factory=lambda: failing) is None


def test_load_profile_parses_row():
    client = DummyClient(rows={"u1": {"id": "u1", "name": "Maya", "bio": "Cat person"}})
    profile = load_profile("u1", client_factory=lambda: client)
    assert profile.name == "Maya"


def test_save_profile_upserts_by_id_and_stamps_update():
    client = DummyClient()
    saved = save_profile(Profile(id="u1", name="Maya"), client_factory=lambda: client)
    op, row, on_conflict = client.calls[0]
    assert op == "upsert"
    assert on_conflict == "id"
    assert row["id"] == "u1"
    assert row["updated_at"]
    assert saved.updated_at == row["updated_at"]


def test_save_profile_propagates_backend_errors():
    client = DummyClient(error=BackendError("denied", status=403))
    with pytest.raises(BackendError):
        save_profile(Profile(id="u1", name="Maya"), client_factory=lambda: client)


def test_create_default_profile_inserts_timestamps():
    client = DummyClient()
    create_default_profile("u9", client_factory=lambda: client)
    op, row = client.calls[0]
    assert op == "insert"
    assert row["id"] == "u9"
    assert row["created_at"] == row["updated_at"]


def test_profile_name_error():
    assert profile_name_error("  ") == "Name cannot be empty."
    assert profile_name_error("Maya") is None


def test_profile_view_applies_defaults():
    view = profile_view(None, "maya@example.com")
    assert view.display_name == "maya"
    assert view.bio == PLACEHOLDER_BIO
    assert view.avatar_url == PLACEHOLDER_AVATAR_URL

    view = profile_view(Profile(id="u1", name="M", bio="Hi", avatar_url="https://a"), None)
    assert (view.display_name, view.email, view.bio, view.avatar_url) == ("M", "", "Hi", "https://a")
