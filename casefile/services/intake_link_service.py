"""Public intake links: token issuance, revocation and token-to-context resolution."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from casefile.core.cache import CacheStore
from casefile.core.config import settings
from casefile.core.structured_logging import build_log_context
from casefile.db.enums import IntakeLinkStatus
from casefile.db.models import CaseHolder, Document, IntakeLink, Lease, Property
from casefile.services.case_context_service import ContextRefs, get_case_holder

logger = logging.getLogger(__name__)

TOKEN_CACHE_PREFIX = "intake-token:"


class IntakeLinkError(Exception):
    """Base exception for intake link errors."""

    pass


class IntakeLinkNotFoundError(IntakeLinkError):
    """No intake link for this token."""

    pass


class IntakeLinkRevokedError(IntakeLinkError):
    """The intake link was revoked by staff."""

    pass


def _new_token() -> str:
    return secrets.token_urlsafe(settings.INTAKE_TOKEN_BYTES)


def _cache_key(token: str) -> str:
    return f"{TOKEN_CACHE_PREFIX}{token}"


def _refs_to_cache(refs: ContextRefs) -> dict[str, str | None]:
    return {
        "case_holder_id": str(refs.case_holder_id),
        "property_id": str(refs.property_id) if refs.property_id else None,
        "lease_id": str(refs.lease_id) if refs.lease_id else None,
    }


def _refs_from_cache(value: dict) -> ContextRefs:
    return ContextRefs(
        case_holder_id=UUID(value["case_holder_id"]),
        property_id=UUID(value["property_id"]) if value.get("property_id") else None,
        lease_id=UUID(value["lease_id"]) if value.get("lease_id") else None,
    )


# =============================================================================
# Link management (staff side)
# =============================================================================


def create_intake_link(
    db: Session,
    holder: CaseHolder,
    property_id: UUID | None = None,
    lease_id: UUID | None = None,
) -> IntakeLink:
    """Issue a new pending intake link for a case holder."""
    link = IntakeLink(
        token=_new_token(),
        case_holder_id=holder.id,
        property_id=property_id,
        lease_id=lease_id,
        status=IntakeLinkStatus.PENDING.value,
    )
    db.add(link)
    db.flush()
    return link


def get_link_by_token(db: Session, token: str) -> IntakeLink | None:
    return db.execute(
        select(IntakeLink).where(IntakeLink.token == token)
    ).scalar_one_or_none()


def revoke_intake_link(db: Session, link: IntakeLink, cache: CacheStore | None = None) -> IntakeLink:
    """Revoke a link; cached resolutions of its token are dropped."""
    link.status = IntakeLinkStatus.REVOKED.value
    link.revoked_at = datetime.now(timezone.utc)
    db.flush()
    if cache is not None:
        cache.delete(_cache_key(link.token))
    return link


def regenerate_token(db: Session, link: IntakeLink, cache: CacheStore | None = None) -> IntakeLink:
    """Replace a link's token, invalidating the previous one."""
    old_token = link.token
    link.token = _new_token()
    db.flush()
    if cache is not None:
        cache.delete(_cache_key(old_token))
    return link


def mark_submitted(db: Session, link: IntakeLink) -> IntakeLink:
    """Record a completed submission; the link stays usable for resubmissions."""
    if link.status == IntakeLinkStatus.PENDING.value:
        link.status = IntakeLinkStatus.SUBMITTED.value
    link.submitted_at = datetime.now(timezone.utc)
    db.flush()
    return link


# =============================================================================
# Resolution (public side)
# =============================================================================


def resolve_intake_token(
    db: Session,
    token: str,
    cache: CacheStore | None = None,
) -> ContextRefs:
    """
    Map an intake token to the case context it was issued for.

    Raises IntakeLinkNotFoundError or IntakeLinkRevokedError.
    """
    if cache is not None:
        cached = cache.get(_cache_key(token))
        if cached is not None:
            return _refs_from_cache(cached)

    link = get_link_by_token(db, token)
    if link is None:
        raise IntakeLinkNotFoundError("Intake link not found")
    if link.status == IntakeLinkStatus.REVOKED.value:
        logger.info(
            "Rejected revoked intake link",
            extra=build_log_context(case_holder_id=link.case_holder_id),
        )
        raise IntakeLinkRevokedError("Intake link has been revoked")

    refs = ContextRefs(
        case_holder_id=link.case_holder_id,
        property_id=link.property_id,
        lease_id=link.lease_id,
    )
    if cache is not None:
        cache.set(
            _cache_key(token),
            _refs_to_cache(refs),
            ttl_seconds=settings.INTAKE_TOKEN_CACHE_TTL_SECONDS,
        )
    return refs


def list_case_documents(db: Session, refs: ContextRefs) -> list[Document]:
    """Documents attached anywhere in the case graph reachable from a submission context."""
    holder = get_case_holder(db, refs.case_holder_id)
    if holder is None:
        return []

    conditions = [Document.case_holder_id == holder.id]
    individual_ids = [person.id for person in holder.individuals]
    if individual_ids:
        conditions.append(Document.individual_id.in_(individual_ids))
    if holder.organization is not None:
        conditions.append(Document.organization_id == holder.organization.id)
    if refs.property_id and db.get(Property, refs.property_id) is not None:
        conditions.append(Document.property_id == refs.property_id)
    if refs.lease_id and db.get(Lease, refs.lease_id) is not None:
        conditions.append(Document.lease_id == refs.lease_id)

    return list(
        db.execute(
            select(Document).where(or_(*conditions)).order_by(Document.created_at)
        ).scalars()
    )
