"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    case_holder_id: UUID | str | None = None,
    property_id: UUID | str | None = None,
    lease_id: UUID | str | None = None,
    document_id: UUID | str | None = None,
    batch_size: int | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """
    Return a PII-safe log context dict.

    Only identifiers and counts are accepted: names, emails and content
    locators never reach the log pipeline.
    """
    context: dict[str, Any] = {}
    if case_holder_id:
        context["case_holder_id"] = str(case_holder_id)
    if property_id:
        context["property_id"] = str(property_id)
    if lease_id:
        context["lease_id"] = str(lease_id)
    if document_id:
        context["document_id"] = str(document_id)
    if batch_size is not None:
        context["batch_size"] = batch_size
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
