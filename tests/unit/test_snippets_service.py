"""Unit tests for snippet visibility, views and fork bookkeeping."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from snippy.config import Settings
from snippy.core.context import build_service_context
from snippy.core.exceptions import NotOwnerError, SnippetNotFoundError
from snippy.services import snippets as snippet_service
from snippy.services.counters import SnippetCounter
from snippy.services.snippets import FileInput


class _FakeSession:
    def __init__(self) -> None:
        self.added: list[Any] = []
        self.deleted: list[Any] = []
        self.flush_calls = 0
        self.refreshed: list[tuple[Any, tuple[str, ...]]] = []
        self.scalar_result: Any = None

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def delete(self, obj: Any) -> None:
        self.deleted.append(obj)

    async def flush(self) -> None:
        self.flush_calls += 1

    async def refresh(self, obj: Any, attribute_names: list[str] | None = None) -> None:
        self.refreshed.append((obj, tuple(attribute_names or ())))

    async def execute(self, _statement: Any) -> Any:
        return SimpleNamespace(scalar_one_or_none=lambda: self.scalar_result)


def _snippet(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": "c-original",
        "short_id": "aB3xZ9q",
        "auth0_id": "auth0|owner",
        "name": "Spinner",
        "description": "CSS spinner",
        "tags": ["css"],
        "is_private": False,
        "parent_short_id": None,
        "external_resources": [],
        "files": [SimpleNamespace(file_type="css", content=".spin {}")],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def counter_calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str, SnippetCounter]]:
    calls: list[tuple[str, str, SnippetCounter]] = []

    async def _increment(_session: Any, snippet_id: str, counter: SnippetCounter, amount: int = 1) -> bool:
        calls.append(("inc", snippet_id, counter))
        return True

    async def _decrement(_session: Any, snippet_id: str, counter: SnippetCounter, amount: int = 1) -> bool:
        calls.append(("dec", snippet_id, counter))
        return True

    monkeypatch.setattr("snippy.services.snippets.counters.increment", _increment)
    monkeypatch.setattr("snippy.services.snippets.counters.decrement", _decrement)
    return calls


def _serve(monkeypatch: pytest.MonkeyPatch, snippet: SimpleNamespace | None) -> None:
    async def _get_by_short_id(_session: Any, _short_id: str) -> SimpleNamespace | None:
        return snippet

    monkeypatch.setattr(
        "snippy.services.snippets.snippet_repository.get_by_short_id",
        _get_by_short_id,
    )


@pytest.mark.asyncio
async def test_private_snippet_hidden_from_other_users(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, _snippet(is_private=True))

    with pytest.raises(SnippetNotFoundError):
        await snippet_service.get_visible_snippet(_FakeSession(), "aB3xZ9q", "auth0|other")  # type: ignore[arg-type]
    with pytest.raises(SnippetNotFoundError):
        await snippet_service.get_visible_snippet(_FakeSession(), "aB3xZ9q", None)  # type: ignore[arg-type]

    owned = await snippet_service.get_visible_snippet(_FakeSession(), "aB3xZ9q", "auth0|owner")  # type: ignore[arg-type]
    assert owned.short_id == "aB3xZ9q"


@pytest.mark.asyncio
async def test_view_counts_only_non_owner_reads(
    monkeypatch: pytest.MonkeyPatch,
    counter_calls: list[tuple[str, str, SnippetCounter]],
) -> None:
    _serve(monkeypatch, _snippet())

    await snippet_service.view_snippet(_FakeSession(), "aB3xZ9q", "auth0|owner")  # type: ignore[arg-type]
    assert counter_calls == []

    session = _FakeSession()
    await snippet_service.view_snippet(session, "aB3xZ9q", None)  # type: ignore[arg-type]
    assert counter_calls == [("inc", "c-original", SnippetCounter.VIEW)]
    assert session.refreshed[0][1] == ("view_count",)


@pytest.mark.asyncio
async def test_update_requires_owner(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, _snippet())

    with pytest.raises(NotOwnerError):
        await snippet_service.update_snippet(
            _FakeSession(),  # type: ignore[arg-type]
            "aB3xZ9q",
            actor_id="auth0|other",
            patch={"name": "Hijacked"},
        )


@pytest.mark.asyncio
async def test_update_ignores_system_fields_and_upserts_files(monkeypatch: pytest.MonkeyPatch) -> None:
    snippet = _snippet(view_count=7)
    _serve(monkeypatch, snippet)

    await snippet_service.update_snippet(
        _FakeSession(),  # type: ignore[arg-type]
        "aB3xZ9q",
        actor_id="auth0|owner",
        patch={"name": "Loader", "short_id": "hacked", "view_count": 0, "is_private": None},
        files=[FileInput("css", ".load {}"), FileInput("html", "<div></div>")],
    )

    assert snippet.name == "Loader"
    assert snippet.short_id == "aB3xZ9q"
    assert snippet.view_count == 7
    assert snippet.is_private is False
    assert snippet.files[0].content == ".load {}"
    assert {item.file_type for item in snippet.files} == {"css", "html"}


@pytest.mark.asyncio
async def test_delete_fork_releases_parent_fork_count(
    monkeypatch: pytest.MonkeyPatch,
    counter_calls: list[tuple[str, str, SnippetCounter]],
) -> None:
    fork = _snippet(id="c-fork", short_id="Fk00001", parent_short_id="aB3xZ9q")
    _serve(monkeypatch, fork)
    session = _FakeSession()
    session.scalar_result = "c-original"

    await snippet_service.delete_snippet(session, "Fk00001", actor_id="auth0|owner")  # type: ignore[arg-type]

    assert counter_calls == [("dec", "c-original", SnippetCounter.FORK)]
    assert session.deleted == [fork]


@pytest.mark.asyncio
async def test_delete_fork_of_deleted_parent_skips_counter(
    monkeypatch: pytest.MonkeyPatch,
    counter_calls: list[tuple[str, str, SnippetCounter]],
) -> None:
    _serve(monkeypatch, _snippet(id="c-fork", parent_short_id="gone000"))
    session = _FakeSession()

    await snippet_service.delete_snippet(session, "Fk00001", actor_id="auth0|owner")  # type: ignore[arg-type]

    assert counter_calls == []
    assert len(session.deleted) == 1


@pytest.mark.asyncio
async def test_fork_copies_files_and_increments_parent(
    monkeypatch: pytest.MonkeyPatch,
    counter_calls: list[tuple[str, str, SnippetCounter]],
) -> None:
    _serve(monkeypatch, _snippet())
    forker = SimpleNamespace(auth0_id="auth0|forker")

    async def _get_user(_session: Any, auth0_id: str) -> SimpleNamespace:
        assert auth0_id == "auth0|forker"
        return forker

    async def _new_short_id(*_args: Any) -> str:
        return "Fk00001"

    monkeypatch.setattr("snippy.services.snippets.user_repository.get_by_auth0_id", _get_user)
    monkeypatch.setattr("snippy.services.snippets.new_short_id", _new_short_id)
    monkeypatch.setattr("snippy.services.snippets.Snippet", lambda **kw: SimpleNamespace(**kw))
    monkeypatch.setattr("snippy.services.snippets.SnippetFile", lambda **kw: SimpleNamespace(**kw))
    session = _FakeSession()
    context = build_service_context(Settings(_env_file=None))

    fork = await snippet_service.fork_snippet(
        session,  # type: ignore[arg-type]
        context,
        "aB3xZ9q",
        actor_id="auth0|forker",
    )

    assert fork.short_id == "Fk00001"
    assert fork.parent_short_id == "aB3xZ9q"
    assert fork.auth0_id == "auth0|forker"
    assert fork.fork_count == 0
    assert [(f.file_type, f.content) for f in fork.files] == [("css", ".spin {}")]
    assert session.added == [fork]
    assert counter_calls == [("inc", "c-original", SnippetCounter.FORK)]
