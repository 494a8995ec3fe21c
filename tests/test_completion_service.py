import uuid
from datetime import date

import pytest
from sqlalchemy import delete, select

from casefile.db.enums import (
    CompletionStatus,
    DocumentKind,
    FamilyStatus,
    HolderKind,
    HolderRole,
    PropertyLegalStatus,
)
from casefile.db.models import CompletionStatusChange, Document
from casefile.services import case_context_service, completion_service
from casefile.services.attachment_resolver import (
    CaseHolderTarget,
    IndividualTarget,
    OrganizationTarget,
    PropertyTarget,
)
from casefile.services.case_context_service import CaseHolderNotFoundError, PropertyNotFoundError
from casefile.services.completion_service import derive_status, reconcile_status
from casefile.services.document_upsert_service import upsert_document
from casefile.services.requirement_checklists import (
    Checklist,
    DocumentRequirement,
    DocumentScope,
)


PERSON_FIELDS = dict(
    first_name="Jean",
    last_name="Dupont",
    email="jean.dupont@example.com",
    phone="+33 6 12 34 56 78",
    full_address="3 place Bellecour, Lyon",
    nationality="FR",
    birth_date=date(1985, 4, 12),
    birth_place="Lyon",
)


def _attach(db, kind, target, name=None):
    upsert_document(db, f"s3://docs/{name or kind.value.lower()}-{target.id}.pdf", kind, target)


def _create_complete_tenant(db, **overrides):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.TENANT)
    fields = {**PERSON_FIELDS, "family_status": FamilyStatus.SINGLE.value, **overrides}
    person = case_context_service.add_individual(db, holder, is_primary=True, **fields)
    _attach(db, DocumentKind.ID_IDENTITY, IndividualTarget(id=person.id))
    _attach(db, DocumentKind.BIRTH_CERT, IndividualTarget(id=person.id))
    _attach(db, DocumentKind.INSURANCE, CaseHolderTarget(id=holder.id))
    _attach(db, DocumentKind.RIB, CaseHolderTarget(id=holder.id))
    db.commit()
    return holder, person


def _history(db, entity_id):
    rows = db.execute(
        select(CompletionStatusChange.old_status, CompletionStatusChange.new_status)
        .where(CompletionStatusChange.entity_id == entity_id)
        .order_by(CompletionStatusChange.changed_at)
    ).all()
    return [tuple(row) for row in rows]


# =============================================================================
# Derivation rules
# =============================================================================

@pytest.mark.parametrize(
    "satisfied,total,expected",
    [
        (0, 0, CompletionStatus.NOT_STARTED),
        (0, 5, CompletionStatus.NOT_STARTED),
        (3, 5, CompletionStatus.PARTIAL),
        (5, 5, CompletionStatus.PENDING_CHECK),
    ],
)
def test_derive_status(satisfied, total, expected):
    assert derive_status(satisfied, total) == expected


def test_completed_survives_only_while_requirements_hold():
    completed = CompletionStatus.COMPLETED
    assert reconcile_status(completed, CompletionStatus.PENDING_CHECK, True) == completed
    assert reconcile_status(completed, CompletionStatus.NOT_STARTED, True) == completed
    assert reconcile_status(completed, CompletionStatus.PARTIAL, False) == CompletionStatus.PARTIAL
    assert (
        reconcile_status(CompletionStatus.PARTIAL, CompletionStatus.PENDING_CHECK, True)
        == CompletionStatus.PENDING_CHECK
    )


# =============================================================================
# Case holders
# =============================================================================

def test_empty_individual_is_not_started(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.TENANT)
    case_context_service.add_individual(db, holder, is_primary=True)
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.NOT_STARTED


def test_lead_has_nothing_to_complete(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.LEAD)
    case_context_service.add_individual(db, holder, is_primary=True, **PERSON_FIELDS)
    db.commit()

    report = completion_service.evaluate_case_holder(db, holder)
    assert report.total_checks == 0
    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.NOT_STARTED


def test_completed_lead_stays_completed(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.LEAD)
    case_context_service.add_individual(db, holder, is_primary=True, **PERSON_FIELDS)
    holder.completion_status = CompletionStatus.COMPLETED.value
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.COMPLETED
    db.commit()

    assert holder.completion_status == CompletionStatus.COMPLETED.value
    assert _history(db, holder.id) == []


def test_partial_tenant_reports_missing_items(db, tenant):
    report = completion_service.evaluate_case_holder(db, tenant)

    assert report.status == CompletionStatus.PARTIAL
    assert "individual[0].email" in report.missing_fields
    assert "individual[1].birth_date" in report.missing_fields
    assert "individual[0].first_name" not in report.missing_fields
    assert "individual[1]:BIRTH_CERT" in report.missing_documents
    assert "case_holder:RIB" in report.missing_documents
    assert not report.has_all_documents


def test_complete_tenant_is_pending_check(db):
    holder, _ = _create_complete_tenant(db)

    status = completion_service.recompute_case_holder(db, holder.id)
    db.commit()

    assert status == CompletionStatus.PENDING_CHECK
    report = completion_service.evaluate_case_holder(db, holder)
    assert report.has_all_fields and report.has_all_documents
    assert holder.completion_status == CompletionStatus.PENDING_CHECK.value
    assert _history(db, holder.id) == [("not_started", "pending_check")]


def test_removing_a_document_demotes_status(db):
    holder, person = _create_complete_tenant(db)
    completion_service.recompute_case_holder(db, holder.id)
    db.commit()

    db.execute(delete(Document).where(Document.individual_id == person.id, Document.kind == "BIRTH_CERT"))
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.PARTIAL


def test_staff_completed_is_kept_then_demoted_on_regression(db):
    holder, person = _create_complete_tenant(db)
    holder.completion_status = CompletionStatus.COMPLETED.value
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.COMPLETED
    db.commit()
    assert _history(db, holder.id) == []

    person.phone = "  "
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.PARTIAL
    db.commit()
    assert _history(db, holder.id) == [("completed", "partial")]


def test_married_household_needs_regime_and_family_record(db):
    holder, person = _create_complete_tenant(db, family_status=FamilyStatus.MARRIED.value)

    report = completion_service.evaluate_case_holder(db, holder)
    assert "individual[0].matrimonial_regime" in report.missing_fields
    assert "case_holder:LIVRET_DE_FAMILLE" in report.missing_documents

    person.matrimonial_regime = "Communauté réduite aux acquêts"
    _attach(db, DocumentKind.LIVRET_DE_FAMILLE, CaseHolderTarget(id=holder.id))
    db.commit()

    assert completion_service.recompute_case_holder(db, holder.id) == CompletionStatus.PENDING_CHECK


def test_pacs_household_needs_pacs_contract(db):
    holder, _ = _create_complete_tenant(db, family_status=FamilyStatus.PACS.value)

    report = completion_service.evaluate_case_holder(db, holder)
    assert report.missing_documents == ["case_holder:CONTRAT_DE_PACS"]
    assert "individual[0].matrimonial_regime" not in report.missing_fields


def test_holder_without_individual_counts_as_missing(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.TENANT)
    db.commit()

    report = completion_service.evaluate_case_holder(db, holder)
    assert "individual.first_name" in report.missing_fields
    assert "individual:ID_IDENTITY" in report.missing_documents
    assert report.status == CompletionStatus.NOT_STARTED


def test_owner_insurance_on_owned_property_satisfies_holder(db, owner, owned_property):
    _attach(db, DocumentKind.INSURANCE, PropertyTarget(id=owned_property.id))
    db.commit()

    report = completion_service.evaluate_case_holder(db, owner)
    assert "case_holder:INSURANCE" not in report.missing_documents
    assert "case_holder:RIB" in report.missing_documents


def test_company_owner_checklist(db, company_owner):
    org = company_owner.organization
    _attach(db, DocumentKind.KBIS, OrganizationTarget(id=org.id))
    db.commit()

    report = completion_service.evaluate_case_holder(db, company_owner)
    assert "organization:KBIS" not in report.missing_documents
    assert "organization:STATUTES" in report.missing_documents
    assert "organization.registration" in report.missing_fields
    assert report.status == CompletionStatus.PARTIAL


def test_unknown_holder_raises(db):
    with pytest.raises(CaseHolderNotFoundError):
        completion_service.recompute_case_holder(db, uuid.uuid4())


# =============================================================================
# Properties
# =============================================================================

def test_property_with_address_only_is_partial(db, owned_property):
    assert completion_service.recompute_property(db, owned_property.id) == CompletionStatus.PARTIAL


def test_full_ownership_property_completes(db, owned_property):
    target = PropertyTarget(id=owned_property.id)
    _attach(db, DocumentKind.DIAGNOSTICS, target)
    _attach(db, DocumentKind.TITLE_DEED, target)
    db.commit()

    assert completion_service.recompute_property(db, owned_property.id) == CompletionStatus.PENDING_CHECK


@pytest.mark.parametrize(
    "legal_status,extra_kinds",
    [
        (PropertyLegalStatus.CO_OWNERSHIP, ["REGLEMENT_COPROPRIETE"]),
        (
            PropertyLegalStatus.SUBDIVISION,
            ["CAHIER_DE_CHARGE_LOTISSEMENT", "STATUT_DE_LASSOCIATION_SYNDICALE"],
        ),
    ],
)
def test_legal_status_adds_requirements(db, owned_property, legal_status, extra_kinds):
    owned_property.legal_status = legal_status.value
    target = PropertyTarget(id=owned_property.id)
    _attach(db, DocumentKind.DIAGNOSTICS, target)
    _attach(db, DocumentKind.TITLE_DEED, target)
    db.commit()

    report = completion_service.evaluate_property(db, owned_property)
    assert report.missing_documents == [f"property:{kind}" for kind in extra_kinds]
    assert report.status == CompletionStatus.PARTIAL


def test_unknown_property_raises(db):
    with pytest.raises(PropertyNotFoundError):
        completion_service.recompute_property(db, uuid.uuid4())


# =============================================================================
# Injected checklists
# =============================================================================

class _RibOnlyRegistry:
    def for_case_holder(self, holder, individuals):
        return Checklist(documents=(DocumentRequirement(DocumentKind.RIB, DocumentScope.CASE_HOLDER),))

    def for_property(self, prop):
        return Checklist()


def test_injected_registry_replaces_default_rules(db, tenant):
    registry = _RibOnlyRegistry()
    assert completion_service.recompute_case_holder(db, tenant.id, registry) == CompletionStatus.NOT_STARTED

    _attach(db, DocumentKind.RIB, CaseHolderTarget(id=tenant.id))
    db.commit()

    assert completion_service.recompute_case_holder(db, tenant.id, registry) == CompletionStatus.PENDING_CHECK
