"""Unit tests for settings parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from snippy.config import Settings


def test_defaults_match_service_parameters() -> None:
    settings = Settings(_env_file=None)

    assert settings.short_id_length == 7
    assert len(settings.short_id_alphabet) == 62
    assert settings.reserved_usernames == ["snippet"]
    assert len(settings.username_adjectives) == 10
    assert len(settings.username_nouns) == 10
    assert settings.rate_limit_window_seconds == 900
    assert settings.pagination_max_limit == 100


@pytest.mark.parametrize(
    "raw",
    [
        "postgresql://u:p@db:5432/snippy",
        "postgres://u:p@db:5432/snippy",
        "postgresql+psycopg2://u:p@db:5432/snippy",
    ],
)
def test_database_url_normalized_to_asyncpg(raw: str) -> None:
    settings = Settings(_env_file=None, database_url=raw)

    assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/snippy"


def test_list_settings_accept_comma_separated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESERVED_USERNAMES", "snippet, admin ,api")
    monkeypatch.setenv("CORS_ORIGINS", '["https://snippy.dev", "http://localhost:4200"]')

    settings = Settings(_env_file=None)

    assert settings.reserved_usernames == ["snippet", "admin", "api"]
    assert settings.cors_origins == ["https://snippy.dev", "http://localhost:4200"]


def test_alphabet_must_be_unique_symbols() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, short_id_alphabet="aab")


def test_auth0_issuer_derived_from_domain() -> None:
    assert Settings(_env_file=None).auth0_issuer is None
    assert (
        Settings(_env_file=None, auth0_domain="snippy.eu.auth0.com").auth0_issuer
        == "https://snippy.eu.auth0.com/"
    )
