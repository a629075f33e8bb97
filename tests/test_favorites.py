import threading

import pytest

import petadopt.favorites as favorites
from petadopt.backend import BackendError


class DummyFavoritesTable:
    """Stands in for the favorites table query chain."""

    def __init__(self, store):
        self.store = store
        self.filters = {}

    def select(self, columns="*"):
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, count):
        return self

    def execute(self):
        key = (self.filters["user_id"], self.filters["pet_id"])
        return [{"user_id": key[0], "pet_id": key[1]}] if key in self.store.rows else []

    def maybe_single(self):
        rows = self.execute()
        return rows[0] if rows else None

    def insert(self, row):
        self.store.before_write()
        self.store.writes.append(("insert", row["user_id"], row["pet_id"]))
        self.store.rows.add((row["user_id"], row["pet_id"]))
        return [row]

    def delete(self):
        self.store.before_write()
        key = (self.filters["user_id"], self.filters["pet_id"])
        self.store.writes.append(("delete",) + key)
        self.store.rows.discard(key)


class DummyStore:
    def __init__(self, rows=(), error=None, gate=None):
        self.rows = set(rows)
        self.error = error
        self.gate = gate
        self.entered = threading.Event()
        self.writes = []

    def before_write(self):
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error

    def table(self, name):
        return DummyFavoritesTable(self)


@pytest.fixture(autouse=True)
def clear_in_flight():
    favorites._IN_FLIGHT.clear()
    yield
    favorites._IN_FLIGHT.clear()


def test_toggle_twice_restores_original_state():
    store = DummyStore()
    toggle = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    assert toggle.load() is False
    assert toggle.toggle() is True
    assert ("u1", 7) in store.rows
    assert toggle.toggle() is False
    assert store.rows == set()
    assert [w[0] for w in store.writes] == ["insert", "delete"]


def test_load_reflects_existing_row():
    store = DummyStore(rows={("u1", 7)})
    toggle = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    assert toggle.load() is True


def test_failed_toggle_leaves_state_unchanged():
    store = DummyStore(error=BackendError("offline"))
    toggle = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    assert toggle.toggle() is False
    assert toggle.favorited is False
    assert toggle.pending is False


def test_concurrent_toggle_for_same_pair_is_rejected():
    gate = threading.Event()
    store = DummyStore(gate=gate)
    first = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    second = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)

    worker = threading.Thread(target=first.toggle)
    worker.start()
    assert store.entered.wait(timeout=5)
    assert second.pending is True

    assert second.toggle() is False
    gate.set()
    worker.join(timeout=5)

    assert first.favorited is True
    assert store.writes == [("insert", "u1", 7)]
    assert second.pending is False


def test_different_pets_do_not_block_each_other():
    store = DummyStore()
    a = favorites.FavoriteToggle("u1", 1, client_factory=lambda: store)
    b = favorites.FavoriteToggle("u1", 2, client_factory=lambda: store)
    assert a.toggle() is True
    assert b.toggle() is True
    assert store.rows == {("u1", 1), ("u1", 2)}


def test_read_started_before_acknowledged_toggle_is_ignored():
    store = DummyStore()
    toggle = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    version = toggle.version
    stale = toggle.check()
    assert toggle.toggle() is True
    assert toggle.apply_loaded(stale, version) is False
    assert toggle.favorited is True


def test_current_read_is_applied():
    store = DummyStore(rows={("u1", 7)})
    toggle = favorites.FavoriteToggle("u1", 7, client_factory=lambda: store)
    assert toggle.apply_loaded(toggle.check(), toggle.version) is True
    assert toggle.favorited is True
