"""Tests for the in-memory and SQL session stores."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from backend.auth.identity import IdentityClaim
from backend.auth.store import InMemorySessionStore, SqlSessionStore, build_session_store

CLAIM = IdentityClaim(name="Ada Lovelace", email="ada@example.com", picture_url="https://img.test/ada.png")
TTL = timedelta(days=30)


def _memory_engine():
    return create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, clock):
    if request.param == "memory":
        backend = InMemorySessionStore(ttl=TTL, clock=clock)
    else:
        backend = SqlSessionStore(engine=_memory_engine(), ttl=TTL, clock=clock)
    backend.open()
    yield backend
    backend.close()


def test_lookup_returns_created_claim(store, clock):
    session_id = store.create(CLAIM)

    session = store.lookup(session_id)

    assert session is not None
    assert session.session_id == session_id
    assert session.claim == CLAIM
    assert session.issued_at == clock.now
    assert session.sliding_expiration is True


def test_tokens_are_unique_and_long(store):
    tokens = {store.create(CLAIM) for _ in range(20)}

    assert len(tokens) == 20
    # 32 random bytes encode to 43 url-safe characters.
    assert all(len(token) >= 43 for token in tokens)


@pytest.mark.parametrize("token", [None, "", "not-a-real-token"])
def test_lookup_unknown_token_is_absent(store, token):
    assert store.lookup(token) is None


def test_destroy_is_idempotent(store):
    session_id = store.create(CLAIM)

    store.destroy(session_id)
    store.destroy(session_id)
    store.destroy("never-issued")
    store.destroy(None)

    assert store.lookup(session_id) is None


def test_lookup_just_before_expiry_slides_window(store, clock):
    session_id = store.create(CLAIM)
    clock.advance(days=30, seconds=-1)

    session = store.lookup(session_id)

    assert session is not None
    assert session.expires_at == clock.now + TTL

    clock.advance(days=29)
    assert store.lookup(session_id) is not None


def test_lookup_after_expiry_is_absent(store, clock):
    session_id = store.create(CLAIM)
    clock.advance(days=30, seconds=1)

    assert store.lookup(session_id) is None
    # The expired record is gone, not merely hidden.
    clock.advance(days=-30)
    assert store.lookup(session_id) is None


def test_purge_expired_removes_only_stale_sessions(store, clock):
    stale = store.create(CLAIM)
    clock.advance(days=20)
    fresh = store.create(CLAIM)
    clock.advance(days=11)

    assert store.purge_expired() == 1
    assert store.lookup(fresh) is not None
    assert store.lookup(stale) is None


def test_create_drops_abandoned_sessions(store, clock):
    for _ in range(5):
        store.create(CLAIM)
    clock.advance(days=31)

    fresh = store.create(CLAIM)

    assert store.purge_expired() == 0
    assert store.lookup(fresh) is not None


def test_memory_store_does_not_grow_with_abandoned_sessions(clock):
    store = InMemorySessionStore(ttl=TTL, clock=clock)
    for _ in range(5):
        store.create(CLAIM)
    clock.advance(days=31)
    store.create(CLAIM)
    clock.advance(days=31)
    store.create(CLAIM)

    assert len(store) == 1


def test_sql_sessions_survive_a_new_store_instance(clock):
    engine = _memory_engine()
    first = SqlSessionStore(engine=engine, ttl=TTL, clock=clock)
    first.open()
    session_id = first.create(CLAIM)

    second = SqlSessionStore(engine=engine, ttl=TTL, clock=clock)
    session = second.lookup(session_id)

    assert session is not None
    assert session.claim == CLAIM
    engine.dispose()


def test_concurrent_lookups_extend_consistently(clock):
    store = InMemorySessionStore(ttl=TTL, clock=clock)
    session_id = store.create(CLAIM)
    clock.advance(days=1)
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        session = store.lookup(session_id)
        with results_lock:
            results.append(session)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(session is not None for session in results)
    assert {session.expires_at for session in results} == {clock.now + TTL}


def test_concurrent_creates_never_collide(clock):
    store = InMemorySessionStore(ttl=TTL, clock=clock)
    created = []
    created_lock = threading.Lock()

    def worker() -> None:
        for _ in range(25):
            token = store.create(CLAIM)
            with created_lock:
                created.append(token)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(created)) == 100
    assert len(store) == 100


def test_lookup_returns_a_detached_copy(clock):
    store = InMemorySessionStore(ttl=TTL, clock=clock)
    session_id = store.create(CLAIM)

    session = store.lookup(session_id)
    session.expires_at = clock.now

    assert store.lookup(session_id).expires_at == clock.now + TTL


def test_build_session_store_selects_backend():
    assert isinstance(build_session_store("memory"), InMemorySessionStore)
    assert isinstance(build_session_store("sql"), SqlSessionStore)
