"""Structured logging helpers (PHI-safe)."""

import logging
from typing import Any

from lexdesk.core.config import settings


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if org_id:
        context["org_id"] = str(org_id)
    if entity_type:
        context["entity_type"] = entity_type
    if entity_id:
        context["entity_id"] = str(entity_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def configure_logging() -> None:
    """Configure root logging for entry points (app, worker, CLI)."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_sentry(service_name: str) -> bool:
    """Initialize Sentry when SENTRY_DSN is set. Returns True when enabled."""
    if not settings.SENTRY_DSN:
        return False

    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=f"{service_name}@{settings.VERSION}",
        traces_sample_rate=0.0,
        send_default_pii=False,
    )
    return True
