"""Process-wide service context.

Built once during application startup, after logging and before the database
connection check, and handed to request handlers through a FastAPI dependency.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from snippy.config import Settings, settings as default_settings
from snippy.core.resilience import (
    LoggingRetryObserver,
    ResiliencePolicies,
    build_resilience_policies,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceContext:
    """Configuration objects shared by all requests."""

    settings: Settings
    policies: ResiliencePolicies
    observer: LoggingRetryObserver


_context: ServiceContext | None = None


def build_service_context(settings: Settings) -> ServiceContext:
    """Construct a fresh context from settings."""
    observer = LoggingRetryObserver()
    policies = build_resilience_policies(settings, observer=observer)
    return ServiceContext(settings=settings, policies=policies, observer=observer)


def init_service_context(settings: Settings | None = None) -> ServiceContext:
    """Create the process-wide context if it does not exist yet."""
    global _context
    if _context is None:
        _context = build_service_context(settings or default_settings)
        logger.info(
            "Service context initialized",
            extra={
                "short_id_attempts": _context.policies.short_id.max_attempts,
                "username_attempts": _context.policies.username.max_attempts,
            },
        )
    return _context


def get_service_context() -> ServiceContext:
    """Return the process-wide context (FastAPI dependency)."""
    return init_service_context()


def reset_service_context() -> None:
    """Drop the process-wide context (used in tests)."""
    global _context
    _context = None
