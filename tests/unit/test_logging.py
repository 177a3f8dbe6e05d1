"""Unit tests for the JSON-extras log formatter."""

from __future__ import annotations

import json
import logging

from snippy.core.logging import JSONExtrasFormatter, correlation_scope, current_correlation_id


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="snippy.services.snippets",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Snippet created",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_extras_as_json() -> None:
    line = JSONExtrasFormatter().format(_record(short_id="aB3xZ9q", auth0_id="auth0|1"))

    prefix, _, payload = line.partition(" {")
    assert "| INFO" in prefix
    assert "| snippy.services.snippets | Snippet created" in prefix
    assert json.loads("{" + payload) == {"short_id": "aB3xZ9q", "auth0_id": "auth0|1"}


def test_formatter_without_extras_has_no_json_suffix() -> None:
    line = JSONExtrasFormatter().format(_record())

    assert line.endswith("Snippet created")


def test_bound_correlation_id_tags_the_line() -> None:
    with correlation_scope("3f2a9c01bd44"):
        line = JSONExtrasFormatter().format(_record(short_id="aB3xZ9q"))

    assert "| snippy.services.snippets [3f2a9c01bd44] | Snippet created" in line
    assert line.endswith('{"short_id": "aB3xZ9q"}')
    assert current_correlation_id() is None


def test_explicit_correlation_id_extra_wins_and_leaves_json() -> None:
    with correlation_scope("outer"):
        line = JSONExtrasFormatter().format(_record(correlation_id="inner"))

    assert "[inner]" in line
    assert line.endswith("Snippet created")
