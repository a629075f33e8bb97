import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from petadopt.lifecycle import CancelToken, TaskScope


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


def test_cancel_token():
    token = CancelToken()
    assert token.cancelled is False
    token.cancel()
    assert token.cancelled is True


def test_result_is_applied(executor):
    scope = TaskScope(executor)
    applied = []
    assert scope.run("feed", lambda: [1, 2], applied.append).result(timeout=5) is True
    assert applied == [[1, 2]]


def test_newer_fetch_supersedes_slow_one(executor):
    scope = TaskScope(executor)
    release = threading.Event()
    applied = []

    def slow():
        release.wait(timeout=5)
        return "old"

    first = scope.run("results", slow, applied.append)
    second = scope.run("results", lambda: "new", applied.append)
    assert second.result(timeout=5) is True
    release.set()
    assert first.result(timeout=5) is False
    assert applied == ["new"]


def test_close_drops_pending_results_and_rejects_new_work(executor):
    scope = TaskScope(executor)
    release = threading.Event()
    applied = []

    def slow():
        release.wait(timeout=5)
        return "late"

    future = scope.run("detail", slow, applied.append)
    scope.close()
    release.set()
    assert future.result(timeout=5) is False
    assert applied == []
    assert scope.closed is True
    with pytest.raises(RuntimeError):
        scope.run("detail", lambda: 1, applied.append)


def test_errors_go_to_handler(executor):
    scope = TaskScope(executor)
    errors = []

    def boom():
        raise ValueError("nope")

    assert scope.run("x", boom, lambda r: None, on_error=errors.append).result(timeout=5) is False
    assert [str(e) for e in errors] == ["nope"]


def test_errors_without_handler_surface_on_future(executor):
    scope = TaskScope(executor)

    def boom():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        scope.run("x", boom, lambda r: None).result(timeout=5)


def test_cancel_slot(executor):
    scope = TaskScope(executor)
    release = threading.Event()
    applied = []

    def slow():
        release.wait(timeout=5)
        return 1

    future = scope.run("x", slow, applied.append)
    scope.cancel("x")
    release.set()
    assert future.result(timeout=5) is False
    assert applied == []
