"""Create-or-update of document rows keyed by (content locator, kind, owner)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from casefile.core.locks import HolderLockRegistry, default_lock_registry
from casefile.core.structured_logging import build_log_context
from casefile.db.enums import DocumentKind
from casefile.db.models import Document
from casefile.services.attachment_resolver import (
    AttachmentError,
    CaseHolderTarget,
    TargetRef,
    parse_kind,
)
from casefile.services.document_labels import label_for

logger = logging.getLogger(__name__)


class StorageConflictError(AttachmentError):
    """A concurrent writer inserted the same identity key first."""

    code = "StorageConflict"


class MissingContentLocatorError(AttachmentError):
    """Artifact submitted without a content locator."""

    code = "MissingContentLocator"


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive fields of an artifact; never part of its identity."""

    label: str | None = None
    file_name: str | None = None
    media_type: str | None = None
    size: int | None = None
    uploaded_by_id: UUID | None = None

    def display_label(self, kind: DocumentKind) -> str:
        for candidate in (self.label, self.file_name):
            if candidate and candidate.strip():
                return candidate.strip()[:255]
        return label_for(kind)


@dataclass
class UpsertResult:
    action: UpsertAction
    document: Document

    @property
    def created(self) -> bool:
        return self.action == UpsertAction.CREATED


# =============================================================================
# Lookups
# =============================================================================


def find_existing_document(
    db: Session,
    content_locator: str,
    kind: DocumentKind,
    target: TargetRef,
) -> Document | None:
    """
    Find the row matching the identity key.

    A holder-level match also requires the individual and organization
    references to be empty, so a household document is never confused with
    a person-level one sharing the same content locator.
    """
    query = select(Document).where(
        Document.content_locator == content_locator,
        Document.kind == kind.value,
        getattr(Document, target.owner_column) == target.id,
    )
    if isinstance(target, CaseHolderTarget):
        query = query.where(
            Document.individual_id.is_(None),
            Document.organization_id.is_(None),
        )
    return db.execute(query.order_by(Document.created_at)).scalars().first()


# =============================================================================
# Writes
# =============================================================================


def _apply_metadata(document: Document, kind: DocumentKind, metadata: DocumentMetadata) -> None:
    """Refresh descriptive fields in place; owner references never move."""
    document.label = metadata.display_label(kind)
    if metadata.media_type is not None:
        document.media_type = metadata.media_type
    if metadata.size is not None:
        document.size = metadata.size
    if metadata.uploaded_by_id is not None:
        document.uploaded_by_id = metadata.uploaded_by_id


def _insert_document(
    db: Session,
    content_locator: str,
    kind: DocumentKind,
    target: TargetRef,
    metadata: DocumentMetadata,
) -> Document:
    document = Document(
        kind=kind.value,
        content_locator=content_locator,
        media_type=metadata.media_type,
        size=metadata.size,
        label=metadata.display_label(kind),
        uploaded_by_id=metadata.uploaded_by_id,
        owner_key=target.owner_key,
    )
    setattr(document, target.owner_column, target.id)
    try:
        with db.begin_nested():
            db.add(document)
            db.flush()
    except IntegrityError as exc:
        raise StorageConflictError(
            f"Document identity already stored for {target.owner_key}"
        ) from exc
    return document


def upsert_document(
    db: Session,
    content_locator: str,
    kind: DocumentKind | str,
    target: TargetRef,
    metadata: DocumentMetadata | None = None,
    *,
    lock_key=None,
    locks: HolderLockRegistry | None = None,
) -> UpsertResult:
    """
    Create the document for (content_locator, kind, target) or update it.

    Idempotent: a second identical call updates the existing row. The
    match-then-insert runs under a holder-scoped lock; a unique violation
    from another process is retried once as an update.
    """
    kind = parse_kind(kind)
    metadata = metadata or DocumentMetadata()
    if not content_locator or not content_locator.strip():
        raise MissingContentLocatorError("Artifact has no content locator")
    content_locator = content_locator.strip()
    locks = locks or default_lock_registry

    with locks.hold(lock_key if lock_key is not None else target.owner_key):
        existing = find_existing_document(db, content_locator, kind, target)
        if existing is not None:
            _apply_metadata(existing, kind, metadata)
            db.flush()
            return UpsertResult(action=UpsertAction.UPDATED, document=existing)

        try:
            document = _insert_document(db, content_locator, kind, target, metadata)
        except StorageConflictError:
            existing = find_existing_document(db, content_locator, kind, target)
            if existing is None:
                raise
            logger.info(
                "Document insert lost a race, updating existing row",
                extra=build_log_context(document_id=existing.id),
            )
            _apply_metadata(existing, kind, metadata)
            db.flush()
            return UpsertResult(action=UpsertAction.UPDATED, document=existing)

    logger.debug(
        "Document created",
        extra=build_log_context(document_id=document.id),
    )
    return UpsertResult(action=UpsertAction.CREATED, document=document)
