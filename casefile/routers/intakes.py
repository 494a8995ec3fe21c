"""Public intake endpoints: document submission through a tokenized link."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from casefile.core.cache import CacheStore
from casefile.core.config import settings
from casefile.core.deps import get_cache, get_db
from casefile.core.rate_limit import intake_submission_limit, intake_token_key, limiter
from casefile.core.structured_logging import build_log_context
from casefile.schemas.intake import (
    CompletionStatusRead,
    DocumentRead,
    IntakeDocumentOutcome,
    IntakeDocumentsRequest,
    IntakeDocumentsResponse,
)
from casefile.services import batch_service, intake_link_service
from casefile.services.case_context_service import CaseHolderNotFoundError, ContextRefs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/intakes", tags=["intakes"])


def _resolve_token(db: Session, token: str, cache: CacheStore) -> ContextRefs:
    try:
        return intake_link_service.resolve_intake_token(db, token, cache)
    except intake_link_service.IntakeLinkNotFoundError:
        raise HTTPException(status_code=404, detail="Intake link not found")
    except intake_link_service.IntakeLinkRevokedError:
        raise HTTPException(status_code=403, detail="Intake link has been revoked")


@router.post("/{token}/documents", response_model=IntakeDocumentsResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_WRITE}/minute")
@limiter.limit(intake_submission_limit, key_func=intake_token_key)
def submit_intake_documents(
    request: Request,
    token: str,
    body: IntakeDocumentsRequest,
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """
    Attach already-uploaded files to the case file behind an intake link.

    Partial success is normal: every file gets its own outcome and the
    request succeeds even when some of them failed.
    """
    refs = _resolve_token(db, token, cache)

    items = [batch_service.BatchItem(**doc.model_dump()) for doc in body.documents]
    try:
        result = batch_service.apply_batch(db, refs, items)
    except CaseHolderNotFoundError:
        logger.warning(
            "Intake link points to a missing case holder",
            extra=build_log_context(case_holder_id=refs.case_holder_id, route="intakes"),
        )
        raise HTTPException(status_code=404, detail="Case file not found")

    link = intake_link_service.get_link_by_token(db, token)
    if link is not None:
        intake_link_service.mark_submitted(db, link)
        db.commit()

    return IntakeDocumentsResponse(
        outcomes=[
            IntakeDocumentOutcome(
                index=outcome.index,
                kind=outcome.kind,
                name=outcome.name,
                action=outcome.action.value,
                target_description=outcome.target_description,
                document_id=outcome.document_id,
                error_reason=outcome.error_reason,
            )
            for outcome in result.outcomes
        ],
        created=result.created_count,
        updated=result.updated_count,
        failed=result.failed_count,
        case_holders=[
            CompletionStatusRead(id=holder_id, status=status.value)
            for holder_id, status in result.holder_statuses.items()
        ],
        properties=[
            CompletionStatusRead(id=property_id, status=status.value)
            for property_id, status in result.property_statuses.items()
        ],
    )


@router.get("/{token}/documents", response_model=list[DocumentRead])
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_READ}/minute")
def list_intake_documents(
    request: Request,
    token: str,
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """Documents already attached to the case file behind an intake link."""
    refs = _resolve_token(db, token, cache)
    return intake_link_service.list_case_documents(db, refs)
