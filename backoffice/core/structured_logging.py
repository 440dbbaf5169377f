"""Structured logging helpers."""

import logging
from typing import Any
from uuid import UUID


def build_log_context(
    *,
    quote_id: UUID | str | None = None,
    project_id: UUID | str | None = None,
    repository: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict for use as ``extra=``."""
    context: dict[str, Any] = {}
    if quote_id:
        context["quote_id"] = str(quote_id)
    if project_id:
        context["project_id"] = str(project_id)
    if repository:
        context["repository"] = repository
    return context


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API and the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
