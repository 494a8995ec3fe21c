"""
Batch orchestration for one case submission.

Each artifact is classified and persisted independently: a failure on one
item becomes a failed outcome and never stops its siblings. Completion
statuses are recomputed once per touched holder/property after every
item's write has been committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casefile.core.locks import HolderLockRegistry
from casefile.core.structured_logging import build_log_context
from casefile.db.enums import CompletionStatus
from casefile.services import completion_service
from casefile.services.attachment_resolver import (
    AttachmentError,
    CaseContext,
    CaseHolderTarget,
    IndividualTarget,
    OrganizationTarget,
    PropertyTarget,
    TargetRef,
    parse_kind,
    resolve_target,
)
from casefile.services.case_context_service import ContextRefs, load_case_context
from casefile.services.document_upsert_service import DocumentMetadata, upsert_document
from casefile.services.requirement_checklists import ChecklistRegistry

logger = logging.getLogger(__name__)

STORAGE_ERROR_CODE = "StorageError"


class OutcomeAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchItem:
    """One artifact of a submission, already stored at content_locator."""

    kind: str
    content_locator: str
    label: str | None = None
    file_name: str | None = None
    media_type: str | None = None
    size: int | None = None
    party_index: int | None = None
    # Client-side field name, echoed back so the submitter can match outcomes
    name: str | None = None


@dataclass
class ItemOutcome:
    index: int
    kind: str
    action: OutcomeAction
    name: str | None = None
    target_description: str | None = None
    document_id: UUID | None = None
    error_reason: str | None = None
    error_message: str | None = None


@dataclass
class BatchResult:
    outcomes: list[ItemOutcome] = field(default_factory=list)
    holder_statuses: dict[UUID, CompletionStatus] = field(default_factory=dict)
    property_statuses: dict[UUID, CompletionStatus] = field(default_factory=dict)

    def _count(self, action: OutcomeAction) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action == action)

    @property
    def created_count(self) -> int:
        return self._count(OutcomeAction.CREATED)

    @property
    def updated_count(self) -> int:
        return self._count(OutcomeAction.UPDATED)

    @property
    def failed_count(self) -> int:
        return self._count(OutcomeAction.FAILED)


def _touched_ids(
    target: TargetRef, context: CaseContext
) -> tuple[UUID | None, UUID | None]:
    """(holder id, property id) whose completion may change after writing to target."""
    if isinstance(target, (IndividualTarget, OrganizationTarget, CaseHolderTarget)):
        return context.case_holder_id, None
    if isinstance(target, PropertyTarget):
        # Insurance/bank documents on a property also count for whoever owns it
        return context.property_owner_id, target.id
    return None, None


def _apply_item(
    db: Session,
    index: int,
    item: BatchItem,
    context: CaseContext,
    uploaded_by_id: UUID | None,
    locks: HolderLockRegistry | None,
) -> tuple[ItemOutcome, TargetRef | None]:
    try:
        kind = parse_kind(item.kind)
        target = resolve_target(kind, context, item.party_index)
        metadata = DocumentMetadata(
            label=item.label,
            file_name=item.file_name,
            media_type=item.media_type,
            size=item.size,
            uploaded_by_id=uploaded_by_id,
        )
        with db.begin_nested():
            result = upsert_document(
                db,
                item.content_locator,
                kind,
                target,
                metadata,
                lock_key=context.case_holder_id,
                locks=locks,
            )
    except AttachmentError as e:
        return (
            ItemOutcome(
                index=index,
                kind=item.kind,
                name=item.name,
                action=OutcomeAction.FAILED,
                error_reason=e.code,
                error_message=str(e),
            ),
            None,
        )
    except SQLAlchemyError as e:
        logger.exception(
            "Document persistence failed",
            extra=build_log_context(case_holder_id=context.case_holder_id),
        )
        return (
            ItemOutcome(
                index=index,
                kind=item.kind,
                name=item.name,
                action=OutcomeAction.FAILED,
                error_reason=STORAGE_ERROR_CODE,
                error_message=e.__class__.__name__,
            ),
            None,
        )

    outcome = ItemOutcome(
        index=index,
        kind=kind.value,
        name=item.name,
        action=OutcomeAction.CREATED if result.created else OutcomeAction.UPDATED,
        target_description=target.describe(),
        document_id=result.document.id,
    )
    return outcome, target


def apply_batch(
    db: Session,
    refs: ContextRefs,
    items: Sequence[BatchItem],
    *,
    uploaded_by_id: UUID | None = None,
    locks: HolderLockRegistry | None = None,
    checklists: ChecklistRegistry | None = None,
) -> BatchResult:
    """
    Classify and persist a submission's artifacts, then refresh completion.

    Raises CaseHolderNotFoundError (nothing is written) when the holder does
    not exist. Everything else is reported per item.
    """
    context = load_case_context(db, refs)
    result = BatchResult()
    touched_holders: list[UUID] = []
    touched_properties: list[UUID] = []

    for index, item in enumerate(items):
        outcome, target = _apply_item(db, index, item, context, uploaded_by_id, locks)
        result.outcomes.append(outcome)
        if target is None:
            continue
        holder_id, property_id = _touched_ids(target, context)
        if holder_id is not None and holder_id not in touched_holders:
            touched_holders.append(holder_id)
        if property_id is not None and property_id not in touched_properties:
            touched_properties.append(property_id)

    # Requirements are evaluated only against fully committed batch writes
    db.commit()

    for holder_id in touched_holders:
        result.holder_statuses[holder_id] = completion_service.recompute_case_holder(
            db, holder_id, checklists
        )
    for property_id in touched_properties:
        result.property_statuses[property_id] = completion_service.recompute_property(
            db, property_id, checklists
        )
    db.commit()

    logger.info(
        f"Batch applied: {result.created_count} created, "
        f"{result.updated_count} updated, {result.failed_count} failed",
        extra=build_log_context(
            case_holder_id=context.case_holder_id,
            property_id=context.property_id,
            batch_size=len(items),
        ),
    )
    return result
