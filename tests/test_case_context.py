import uuid

import pytest

from casefile.db.enums import HolderKind, HolderRole, LeasePartySide
from casefile.services import case_context_service
from casefile.services.case_context_service import (
    CaseHolderNotFoundError,
    ContextRefs,
    load_case_context,
)


def test_second_primary_is_demoted(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.TENANT)
    first = case_context_service.add_individual(db, holder, is_primary=True, first_name="A")
    second = case_context_service.add_individual(db, holder, is_primary=True, first_name="B")

    assert first.is_primary
    assert not second.is_primary
    assert second.position == 1


def test_primary_is_ordered_first_regardless_of_insertion(db):
    holder = case_context_service.create_case_holder(db, HolderKind.INDIVIDUAL, HolderRole.TENANT)
    spouse = case_context_service.add_individual(db, holder, first_name="Spouse")
    primary = case_context_service.add_individual(db, holder, is_primary=True, first_name="Main")
    db.commit()

    context = load_case_context(db, ContextRefs(case_holder_id=holder.id))

    assert context.individual_ids == (primary.id, spouse.id)
    assert case_context_service.get_primary_individual(holder).id == primary.id


def test_only_owners_can_own_properties(db, tenant):
    with pytest.raises(ValueError):
        case_context_service.add_property(db, tenant, label="Studio")


def test_lease_links_owner_and_tenants(db, owned_property, tenant):
    lease = case_context_service.create_lease(db, owned_property, tenants=[tenant])
    db.commit()

    sides = {party.case_holder_id: party.side for party in lease.parties}
    assert sides == {
        owned_property.owner_id: LeasePartySide.OWNER.value,
        tenant.id: LeasePartySide.TENANT.value,
    }


def test_load_context_for_owner_with_property(db, owner, owned_property):
    context = load_case_context(
        db, ContextRefs(case_holder_id=owner.id, property_id=owned_property.id)
    )

    assert context.role == HolderRole.OWNER
    assert context.property_id == owned_property.id
    assert context.property_owner_id == owner.id
    assert context.organization_id is None
    assert len(context.individual_ids) == 1


def test_load_context_for_company(db, company_owner):
    context = load_case_context(db, ContextRefs(case_holder_id=company_owner.id))
    assert context.organization_id == company_owner.organization.id
    assert context.individual_ids == ()


def test_unknown_property_and_lease_are_dropped(db, owner):
    context = load_case_context(
        db,
        ContextRefs(case_holder_id=owner.id, property_id=uuid.uuid4(), lease_id=uuid.uuid4()),
    )
    assert context.property_id is None
    assert context.lease_id is None


def test_unknown_holder_raises(db):
    with pytest.raises(CaseHolderNotFoundError) as exc_info:
        load_case_context(db, ContextRefs(case_holder_id=uuid.uuid4()))
    assert exc_info.value.code == "CaseHolderNotFound"


def test_set_organization_updates_in_place(db, company_owner):
    org = case_context_service.set_organization(db, company_owner, legal_name="SCI Les Tilleuls SARL")
    assert org.id == company_owner.organization.id
    assert org.name == "SCI Les Tilleuls"
    assert org.legal_name == "SCI Les Tilleuls SARL"
