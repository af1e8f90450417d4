from __future__ import annotations

import json
import threading
from typing import List, Optional

import pytest
import requests

from frontend.core.api import BackendError
from frontend.core.models import UserProfile
from frontend.core.session import ClientSessionCache, CurrentValue, build_session_cache

ADA = UserProfile(name="Ada Lovelace", email="ada@example.com")
GRACE = UserProfile(name="Grace Hopper", email="grace@example.com", picture_url="https://img.test/g.png")


def _cache(fetch_user=lambda: ADA, post_logout=lambda: None) -> ClientSessionCache:
    return ClientSessionCache(fetch_user=fetch_user, post_logout=post_logout)


def _raise(error: Exception):
    def _inner():
        raise error

    return _inner


def test_current_value_replays_latest_to_new_subscribers() -> None:
    cell: CurrentValue[str] = CurrentValue()
    cell.publish("first")
    seen: List[Optional[str]] = []

    cell.subscribe(seen.append)
    cell.publish("second")

    assert seen == ["first", "second"]


def test_current_value_unsubscribe_stops_updates() -> None:
    cell: CurrentValue[str] = CurrentValue("initial")
    seen: List[Optional[str]] = []

    unsubscribe = cell.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    cell.publish("later")

    assert seen == ["initial"]


def test_failing_subscriber_does_not_block_others() -> None:
    cell: CurrentValue[str] = CurrentValue()
    seen: List[Optional[str]] = []

    def broken(_: Optional[str]) -> None:
        raise RuntimeError("boom")

    cell.subscribe(broken)
    cell.subscribe(seen.append)
    cell.publish("value")

    assert seen == [None, "value"]
    assert cell.value == "value"


def test_refresh_publishes_user() -> None:
    cache = _cache()
    seen: List[Optional[UserProfile]] = []
    cache.subscribe(seen.append)

    assert cache.refresh() == ADA
    assert cache.is_authenticated
    assert seen == [None, ADA]


@pytest.mark.parametrize(
    "error",
    [
        BackendError("Unauthorized", status_code=401),
        BackendError("down", status_code=503),
        BackendError("refused", cause=requests.exceptions.ConnectionError("refused")),
    ],
)
def test_refresh_failures_publish_absent(error) -> None:
    cache = _cache(fetch_user=lambda: ADA)
    cache.refresh()
    cache._fetch_user = _raise(error)

    assert cache.refresh() is None
    assert cache.user is None
    assert not cache.is_authenticated


def test_adopt_from_redirect_is_one_shot_and_clears_address() -> None:
    cache = _cache(fetch_user=lambda: GRACE)
    cleared: List[bool] = []
    seen: List[Optional[UserProfile]] = []
    cache.subscribe(seen.append)
    raw = json.dumps({"name": "Grace Hopper", "email": "grace@example.com", "picture": "https://img.test/g.png"})

    first = cache.adopt_from_redirect(raw, clear_address=lambda: cleared.append(True))
    second = cache.adopt_from_redirect(
        json.dumps({"name": "Mallory", "email": "mallory@example.com"}),
        clear_address=lambda: cleared.append(True),
    )

    assert first == GRACE
    assert second == GRACE
    assert cache.user == GRACE
    assert all(user is None or user.email != "mallory@example.com" for user in seen)
    assert cleared == [True, True]


def test_adopted_identity_without_live_session_ends_absent() -> None:
    cache = _cache(fetch_user=_raise(BackendError("Unauthorized", status_code=401)))
    seen: List[Optional[UserProfile]] = []
    cache.subscribe(seen.append)
    forged = json.dumps({"name": "Mallory Admin", "email": "ceo@example.com"})

    result = cache.adopt_from_redirect(forged, clear_address=lambda: None)

    assert result is None
    assert cache.user is None
    assert not cache.is_authenticated
    assert seen[-1] is None


def test_backend_identity_wins_over_adopted_identity() -> None:
    cache = _cache(fetch_user=lambda: ADA)
    raw = json.dumps({"name": "Grace Hopper", "email": "grace@example.com"})

    assert cache.adopt_from_redirect(raw, clear_address=lambda: None) == ADA
    assert cache.user == ADA


def test_adopt_ignores_missing_parameter() -> None:
    calls: List[str] = []
    cache = _cache(fetch_user=lambda: calls.append("fetch") or ADA)
    cleared: List[bool] = []

    assert cache.adopt_from_redirect(None, clear_address=lambda: cleared.append(True)) is None
    assert cleared == []
    assert calls == []


@pytest.mark.parametrize("raw", ["not json", json.dumps(["a", "b"]), json.dumps({"name": "No Email"})])
def test_adopt_malformed_data_still_clears_address(raw) -> None:
    cache = _cache(fetch_user=_raise(BackendError("Unauthorized", status_code=401)))
    cleared: List[bool] = []

    assert cache.adopt_from_redirect(raw, clear_address=lambda: cleared.append(True)) is None
    assert cache.user is None
    assert cleared == [True]


def test_logout_publishes_absent_on_success() -> None:
    calls: List[str] = []
    cache = _cache(post_logout=lambda: calls.append("logout"))
    cache.refresh()

    cache.logout()

    assert calls == ["logout"]
    assert cache.user is None


def test_logout_publishes_absent_even_when_backend_fails() -> None:
    cache = _cache(post_logout=_raise(BackendError("down", status_code=502)))
    cache.refresh()
    seen: List[Optional[UserProfile]] = []
    cache.subscribe(seen.append)

    cache.logout()

    assert seen == [ADA, None]
    assert not cache.is_authenticated


def test_overlapping_refreshes_are_last_write_wins() -> None:
    """The response that resolves last stays published, whichever call started first."""
    slow_started = threading.Event()
    release_slow = threading.Event()
    calls = {"count": 0}
    lock = threading.Lock()

    def fetch_user() -> UserProfile:
        with lock:
            calls["count"] += 1
            call_number = calls["count"]
        if call_number == 1:
            slow_started.set()
            release_slow.wait(timeout=5)
            return ADA
        return GRACE

    cache = _cache(fetch_user=fetch_user)
    slow = threading.Thread(target=cache.refresh)
    slow.start()
    assert slow_started.wait(timeout=5)

    cache.refresh()
    assert cache.user == GRACE

    release_slow.set()
    slow.join(timeout=5)
    assert cache.user == ADA


def test_build_session_cache_reads_token_at_call_time(monkeypatch) -> None:
    tokens = iter(["first-token", "second-token"])
    seen_tokens: List[Optional[str]] = []

    def fake_get_current_user(token: Optional[str]) -> UserProfile:
        seen_tokens.append(token)
        return ADA

    monkeypatch.setattr("frontend.core.api.get_current_user", fake_get_current_user)
    cache = build_session_cache(lambda: next(tokens))

    cache.refresh()
    cache.refresh()

    assert seen_tokens == ["first-token", "second-token"]
