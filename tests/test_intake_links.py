import pytest

from casefile.db.enums import DocumentKind, IntakeLinkStatus
from casefile.services import intake_link_service
from casefile.services.attachment_resolver import CaseHolderTarget, IndividualTarget, PropertyTarget
from casefile.services.case_context_service import ContextRefs, get_primary_individual
from casefile.services.document_upsert_service import upsert_document


def test_create_link_issues_unique_pending_tokens(db, owner, owned_property):
    first = intake_link_service.create_intake_link(db, owner, property_id=owned_property.id)
    second = intake_link_service.create_intake_link(db, owner)

    assert first.status == IntakeLinkStatus.PENDING.value
    assert first.token != second.token
    assert len(first.token) >= 32


def test_resolve_token_returns_context_refs(db, owner, owned_property, cache):
    link = intake_link_service.create_intake_link(db, owner, property_id=owned_property.id)
    db.commit()

    refs = intake_link_service.resolve_intake_token(db, link.token, cache)

    assert refs == ContextRefs(case_holder_id=owner.id, property_id=owned_property.id)


def test_resolve_token_is_served_from_cache(db, owner, cache):
    link = intake_link_service.create_intake_link(db, owner)
    db.commit()
    token = link.token
    intake_link_service.resolve_intake_token(db, token, cache)

    assert cache.get(f"intake-token:{token}") == {
        "case_holder_id": str(owner.id),
        "property_id": None,
        "lease_id": None,
    }
    db.delete(link)
    db.commit()

    refs = intake_link_service.resolve_intake_token(db, token, cache)
    assert refs.case_holder_id == owner.id


def test_unknown_token_is_rejected(db, cache):
    with pytest.raises(intake_link_service.IntakeLinkNotFoundError):
        intake_link_service.resolve_intake_token(db, "no-such-token", cache)


def test_revoking_drops_cached_resolution(db, owner, cache):
    link = intake_link_service.create_intake_link(db, owner)
    db.commit()
    intake_link_service.resolve_intake_token(db, link.token, cache)

    intake_link_service.revoke_intake_link(db, link, cache)
    db.commit()

    assert link.revoked_at is not None
    with pytest.raises(intake_link_service.IntakeLinkRevokedError):
        intake_link_service.resolve_intake_token(db, link.token, cache)


def test_regenerated_token_replaces_the_old_one(db, owner, cache):
    link = intake_link_service.create_intake_link(db, owner)
    db.commit()
    old_token = link.token
    intake_link_service.resolve_intake_token(db, old_token, cache)

    intake_link_service.regenerate_token(db, link, cache)
    db.commit()

    assert link.token != old_token
    with pytest.raises(intake_link_service.IntakeLinkNotFoundError):
        intake_link_service.resolve_intake_token(db, old_token, cache)
    assert intake_link_service.resolve_intake_token(db, link.token, cache).case_holder_id == owner.id


def test_mark_submitted_keeps_link_usable(db, owner, cache):
    link = intake_link_service.create_intake_link(db, owner)
    intake_link_service.mark_submitted(db, link)
    db.commit()

    assert link.status == IntakeLinkStatus.SUBMITTED.value
    assert link.submitted_at is not None
    assert intake_link_service.resolve_intake_token(db, link.token, cache).case_holder_id == owner.id


def test_list_case_documents_spans_the_case_graph(db, owner, owned_property, tenant):
    person = get_primary_individual(owner)
    upsert_document(db, "s3://docs/id.pdf", DocumentKind.ID_IDENTITY, IndividualTarget(id=person.id))
    upsert_document(db, "s3://docs/rib.pdf", DocumentKind.RIB, CaseHolderTarget(id=owner.id))
    upsert_document(db, "s3://docs/deed.pdf", DocumentKind.TITLE_DEED, PropertyTarget(id=owned_property.id))
    upsert_document(db, "s3://docs/other.pdf", DocumentKind.RIB, CaseHolderTarget(id=tenant.id))
    db.commit()

    with_property = intake_link_service.list_case_documents(
        db, ContextRefs(case_holder_id=owner.id, property_id=owned_property.id)
    )
    without_property = intake_link_service.list_case_documents(
        db, ContextRefs(case_holder_id=owner.id)
    )

    assert {doc.kind for doc in with_property} == {"ID_IDENTITY", "RIB", "TITLE_DEED"}
    assert {doc.kind for doc in without_property} == {"ID_IDENTITY", "RIB"}
