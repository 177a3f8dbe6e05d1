"""Unit tests for snippet listing queries."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.dialects import postgresql

from snippy.repositories import snippet_repository
from snippy.repositories.snippet_repository import escape_like


class _Scalars:
    def all(self) -> list[Any]:
        return []


class _Result:
    def scalars(self) -> _Scalars:
        return _Scalars()


class _FakeSession:
    def __init__(self) -> None:
        self.statements: list[Any] = []

    async def scalar(self, statement: Any) -> int:
        self.statements.append(statement)
        return 0

    async def execute(self, statement: Any) -> _Result:
        self.statements.append(statement)
        return _Result()


@pytest.mark.parametrize(
    ("raw", "escaped"),
    [
        ("spinner", "spinner"),
        ("100%", "100\\%"),
        ("snake_case", "snake\\_case"),
        ("C:\\temp", "C:\\\\temp"),
    ],
)
def test_escape_like(raw: str, escaped: str) -> None:
    assert escape_like(raw) == escaped


@pytest.mark.asyncio
async def test_search_matches_wildcards_literally() -> None:
    session = _FakeSession()

    items, total = await snippet_repository.list_snippets(
        session,  # type: ignore[arg-type]
        offset=0,
        limit=10,
        search="100%_off",
    )

    assert (list(items), total) == ([], 0)
    compiled = session.statements[1].compile(dialect=postgresql.dialect())
    assert "ILIKE" in str(compiled)
    assert "ESCAPE" in str(compiled)
    assert "%100\\%\\_off%" in compiled.params.values()
