"""Unit tests for account provisioning and profile updates."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from snippy.config import Settings
from snippy.core.context import build_service_context
from snippy.core.exceptions import ConflictError, InvalidUsernameError
from snippy.services import users as user_service


class _FakeSession:
    def __init__(self) -> None:
        self.added: list[Any] = []
        self.flush_calls = 0

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def flush(self) -> None:
        self.flush_calls += 1

    async def refresh(self, obj: Any, attribute_names: list[str] | None = None) -> None:
        return None


@pytest.fixture
def context():
    return build_service_context(Settings(_env_file=None))


def _users(monkeypatch: pytest.MonkeyPatch, by_id: dict[str, Any], by_name: dict[str, Any]) -> None:
    async def _get_by_auth0_id(_session: Any, auth0_id: str) -> Any:
        return by_id.get(auth0_id)

    async def _get_by_user_name(_session: Any, user_name: str) -> Any:
        return by_name.get(user_name)

    async def _any_users(_session: Any) -> bool:
        return bool(by_id)

    monkeypatch.setattr("snippy.services.users.user_repository.get_by_auth0_id", _get_by_auth0_id)
    monkeypatch.setattr("snippy.services.users.user_repository.get_by_user_name", _get_by_user_name)
    monkeypatch.setattr("snippy.services.users.user_repository.any_users", _any_users)


@pytest.mark.asyncio
async def test_first_user_is_created_as_admin(monkeypatch: pytest.MonkeyPatch, context) -> None:
    _users(monkeypatch, {}, {})

    async def _new_username(_session: Any, _policies: Any, _settings: Any, display_name: str | None) -> str:
        assert display_name == "Ada Lovelace"
        return "adalovelace4821"

    monkeypatch.setattr("snippy.services.users.new_username", _new_username)
    session = _FakeSession()

    user, created = await user_service.ensure_user(
        session,  # type: ignore[arg-type]
        context,
        auth0_id="auth0|ada",
        name="Ada Lovelace",
        picture_url="https://cdn.example/ada.png",
    )

    assert created is True
    assert user.user_name == "adalovelace4821"
    assert user.is_admin is True
    assert session.added == [user]


@pytest.mark.asyncio
async def test_later_users_are_not_admin(monkeypatch: pytest.MonkeyPatch, context) -> None:
    _users(monkeypatch, {"auth0|ada": SimpleNamespace()}, {})

    async def _new_username(*_args: Any) -> str:
        return "grace1000"

    monkeypatch.setattr("snippy.services.users.new_username", _new_username)

    user, created = await user_service.ensure_user(
        _FakeSession(),  # type: ignore[arg-type]
        context,
        auth0_id="auth0|grace",
        name="Grace",
    )

    assert created is True
    assert user.is_admin is False


@pytest.mark.asyncio
async def test_existing_user_gets_picture_refreshed(monkeypatch: pytest.MonkeyPatch, context) -> None:
    existing = SimpleNamespace(auth0_id="auth0|ada", picture_url="old.png")
    _users(monkeypatch, {"auth0|ada": existing}, {})
    session = _FakeSession()

    user, created = await user_service.ensure_user(
        session,  # type: ignore[arg-type]
        context,
        auth0_id="auth0|ada",
        picture_url="new.png",
    )

    assert created is False
    assert user is existing
    assert existing.picture_url == "new.png"
    assert session.added == []


@pytest.mark.asyncio
@pytest.mark.parametrize("requested", ["snippet", "Snippet", "ab", "has space", "-leading"])
async def test_update_profile_rejects_reserved_or_malformed_names(
    monkeypatch: pytest.MonkeyPatch,
    context,
    requested: str,
) -> None:
    _users(monkeypatch, {"auth0|ada": SimpleNamespace(auth0_id="auth0|ada", user_name="ada1000")}, {})

    with pytest.raises(InvalidUsernameError):
        await user_service.update_profile(
            _FakeSession(),  # type: ignore[arg-type]
            context,
            auth0_id="auth0|ada",
            user_name=requested,
        )


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_name(monkeypatch: pytest.MonkeyPatch, context) -> None:
    ada = SimpleNamespace(auth0_id="auth0|ada", user_name="ada1000")
    grace = SimpleNamespace(auth0_id="auth0|grace", user_name="grace")
    _users(monkeypatch, {"auth0|ada": ada}, {"grace": grace})

    with pytest.raises(ConflictError):
        await user_service.update_profile(
            _FakeSession(),  # type: ignore[arg-type]
            context,
            auth0_id="auth0|ada",
            user_name="Grace",
        )


@pytest.mark.asyncio
async def test_update_profile_applies_changes(monkeypatch: pytest.MonkeyPatch, context) -> None:
    ada = SimpleNamespace(auth0_id="auth0|ada", user_name="ada1000", display_name="Ada", bio=None)
    _users(monkeypatch, {"auth0|ada": ada}, {"ada1000": ada})

    user = await user_service.update_profile(
        _FakeSession(),  # type: ignore[arg-type]
        context,
        auth0_id="auth0|ada",
        user_name="Countess-Ada",
        bio="Analytical engines",
    )

    assert user.user_name == "countess-ada"
    assert user.display_name == "Ada"
    assert user.bio == "Analytical engines"


def _taken_names(monkeypatch: pytest.MonkeyPatch, taken: set[str]) -> list[str]:
    probed: list[str] = []

    async def _exists(_session: Any, user_name: str) -> bool:
        probed.append(user_name)
        return user_name in taken

    monkeypatch.setattr("snippy.services.users.user_repository.user_name_exists", _exists)
    return probed


@pytest.mark.asyncio
async def test_username_availability_free_name(monkeypatch: pytest.MonkeyPatch, context) -> None:
    probed = _taken_names(monkeypatch, {"ada1000"})

    result = await user_service.check_username_availability(_FakeSession(), context, " Grace-Hopper ")  # type: ignore[arg-type]

    assert result == ("grace-hopper", True)
    assert probed == ["grace-hopper"]


@pytest.mark.asyncio
async def test_username_availability_taken_name(monkeypatch: pytest.MonkeyPatch, context) -> None:
    _taken_names(monkeypatch, {"ada1000"})

    result = await user_service.check_username_availability(_FakeSession(), context, "ADA1000")  # type: ignore[arg-type]

    assert result == ("ada1000", False)


@pytest.mark.asyncio
@pytest.mark.parametrize("requested", ["snippet", "SNIPPET", "ab", "   ", "bad_name"])
async def test_username_availability_rejects_reserved_or_malformed(
    monkeypatch: pytest.MonkeyPatch,
    context,
    requested: str,
) -> None:
    probed = _taken_names(monkeypatch, set())

    with pytest.raises(InvalidUsernameError):
        await user_service.check_username_availability(_FakeSession(), context, requested)  # type: ignore[arg-type]

    assert probed == []
