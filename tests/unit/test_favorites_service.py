"""Unit tests for favorite toggling and favorite_count maintenance."""

from __future__ import annotations

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from snippy.core.database import run_in_transaction
from snippy.core.db_kernel import CollisionError, ConnectivityError
from snippy.models.favorite import Favorite
from snippy.services import favorites as favorite_service
from snippy.services.counters import SnippetCounter


class _FakeDb:
    """In-memory favorites table and counters; sessions journal writes until commit."""

    def __init__(self) -> None:
        self.favorites: dict[tuple[str, str], Favorite] = {}
        self.counts: dict[str, int] = {"favorite_count": 0}
        self.fail_next_flush: Exception | None = None
        self.fail_next_commit: Exception | None = None


class _FakeSession:
    def __init__(self, db: _FakeDb) -> None:
        self.db = db
        self.pending_add: list[Favorite] = []
        self.pending_delete: list[Favorite] = []
        self.undo: list[Callable[[], None]] = []
        self.rollbacks = 0

    def add(self, obj: Favorite) -> None:
        self.pending_add.append(obj)

    async def delete(self, obj: Favorite) -> None:
        self.pending_delete.append(obj)

    async def flush(self) -> None:
        if self.db.fail_next_flush is not None:
            error, self.db.fail_next_flush = self.db.fail_next_flush, None
            self.pending_add.clear()
            raise error
        for obj in self.pending_add:
            key = (obj.auth0_id, obj.snippet_id)
            self.db.favorites[key] = obj
            self.undo.append(lambda key=key: self.db.favorites.pop(key, None))
        for obj in self.pending_delete:
            key = (obj.auth0_id, obj.snippet_id)
            removed = self.db.favorites.pop(key, None)
            if removed is not None:
                self.undo.append(lambda key=key, removed=removed: self.db.favorites.__setitem__(key, removed))
        self.pending_add.clear()
        self.pending_delete.clear()

    def add_to_counter(self, column: str, delta: int) -> None:
        self.db.counts[column] += delta
        self.undo.append(lambda: self.db.counts.__setitem__(column, self.db.counts[column] - delta))

    async def commit(self) -> None:
        if self.db.fail_next_commit is not None:
            error, self.db.fail_next_commit = self.db.fail_next_commit, None
            raise error
        self.undo.clear()

    async def rollback(self) -> None:
        self.rollbacks += 1
        while self.undo:
            self.undo.pop()()

    async def refresh(self, obj: Any, attribute_names: list[str] | None = None) -> None:
        for name in attribute_names or []:
            setattr(obj, name, self.db.counts[name])


@pytest.fixture
def snippet() -> SimpleNamespace:
    return SimpleNamespace(id="c-snippet", short_id="aB3xZ9q", favorite_count=0)


@pytest.fixture
def db(monkeypatch: pytest.MonkeyPatch, snippet: SimpleNamespace) -> _FakeDb:
    fake = _FakeDb()

    async def _visible(_session: Any, short_id: str, _viewer: str | None) -> SimpleNamespace:
        assert short_id == snippet.short_id
        return snippet

    async def _get_favorite(_session: Any, *, auth0_id: str, snippet_id: str) -> Favorite | None:
        return fake.favorites.get((auth0_id, snippet_id))

    async def _increment(session: _FakeSession, _snippet_id: str, counter: SnippetCounter, amount: int = 1) -> bool:
        session.add_to_counter(counter.value, amount)
        return True

    async def _decrement(session: _FakeSession, _snippet_id: str, counter: SnippetCounter, amount: int = 1) -> bool:
        if fake.counts[counter.value] < amount:
            return False
        session.add_to_counter(counter.value, -amount)
        return True

    monkeypatch.setattr("snippy.services.favorites.get_visible_snippet", _visible)
    monkeypatch.setattr("snippy.services.favorites.favorite_repository.get_favorite", _get_favorite)
    monkeypatch.setattr("snippy.services.favorites.counters.increment", _increment)
    monkeypatch.setattr("snippy.services.favorites.counters.decrement", _decrement)
    return fake


@pytest.mark.asyncio
async def test_toggle_adds_then_removes(db: _FakeDb) -> None:
    session = _FakeSession(db)

    first = await favorite_service.toggle_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]
    second = await favorite_service.toggle_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]

    assert (first.is_favorited, first.favorite_count) == (True, 1)
    assert (second.is_favorited, second.favorite_count) == (False, 0)
    assert db.favorites == {}


@pytest.mark.asyncio
async def test_count_tracks_favorites_across_users(db: _FakeDb) -> None:
    session = _FakeSession(db)

    for user in ("auth0|u1", "auth0|u2", "auth0|u3"):
        await favorite_service.toggle_favorite(session, "aB3xZ9q", actor_id=user)  # type: ignore[arg-type]
    state = await favorite_service.toggle_favorite(session, "aB3xZ9q", actor_id="auth0|u2")  # type: ignore[arg-type]

    assert state.favorite_count == 2
    assert db.counts["favorite_count"] == len(db.favorites)


@pytest.mark.asyncio
async def test_add_and_remove_are_idempotent(db: _FakeDb) -> None:
    session = _FakeSession(db)

    await favorite_service.add_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]
    added = await favorite_service.add_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]
    assert (added.is_favorited, added.favorite_count) == (True, 1)

    await favorite_service.remove_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]
    removed = await favorite_service.remove_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]
    assert (removed.is_favorited, removed.favorite_count) == (False, 0)


@pytest.mark.asyncio
async def test_failed_insert_does_not_touch_counter(db: _FakeDb) -> None:
    session = _FakeSession(db)
    db.fail_next_flush = CollisionError("snippet_id", "c-snippet")

    with pytest.raises(CollisionError):
        await favorite_service.toggle_favorite(session, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]

    assert db.counts["favorite_count"] == 0
    assert db.favorites == {}


class _SessionMaker:
    def __init__(self, session: _FakeSession) -> None:
        self.session = session

    def __call__(self) -> _SessionMaker:
        return self

    async def __aenter__(self) -> _FakeSession:
        return self.session

    async def __aexit__(self, *_exc: Any) -> None:
        return None


@pytest.mark.asyncio
async def test_commit_failure_rolls_back_applied_increment(
    monkeypatch: pytest.MonkeyPatch,
    db: _FakeDb,
) -> None:
    session = _FakeSession(db)
    monkeypatch.setattr("snippy.core.database.async_session_maker", _SessionMaker(session))
    db.fail_next_commit = RuntimeError("connection is closed")
    states: list[favorite_service.FavoriteState] = []

    async def _toggle(active: _FakeSession) -> None:
        states.append(await favorite_service.toggle_favorite(active, "aB3xZ9q", actor_id="auth0|u1"))  # type: ignore[arg-type]

    with pytest.raises(ConnectivityError):
        await run_in_transaction(_toggle, operation_name="toggle_favorite")  # type: ignore[arg-type]

    assert states[0].favorite_count == 1
    assert session.rollbacks == 1
    assert db.counts["favorite_count"] == 0
    assert db.favorites == {}


@pytest.mark.asyncio
async def test_committed_toggle_survives_later_rollback(
    monkeypatch: pytest.MonkeyPatch,
    db: _FakeDb,
) -> None:
    session = _FakeSession(db)
    monkeypatch.setattr("snippy.core.database.async_session_maker", _SessionMaker(session))

    async def _toggle(active: _FakeSession) -> None:
        await favorite_service.toggle_favorite(active, "aB3xZ9q", actor_id="auth0|u1")  # type: ignore[arg-type]

    await run_in_transaction(_toggle, operation_name="toggle_favorite")  # type: ignore[arg-type]
    db.fail_next_commit = RuntimeError("connection is closed")
    with pytest.raises(ConnectivityError):
        await run_in_transaction(_toggle, operation_name="toggle_favorite")  # type: ignore[arg-type]

    assert db.counts["favorite_count"] == 1
    assert ("auth0|u1", "c-snippet") in db.favorites
