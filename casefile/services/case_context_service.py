"""Case graph construction helpers and context loading for the attachment engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from casefile.core.structured_logging import build_log_context
from casefile.db.enums import HolderKind, HolderRole, LeasePartySide
from casefile.db.models import CaseHolder, Individual, Lease, LeaseParty, Organization, Property
from casefile.services.attachment_resolver import CaseContext

logger = logging.getLogger(__name__)


class CaseContextError(Exception):
    """Base exception for case context errors."""

    code = "CaseContextError"


class CaseHolderNotFoundError(CaseContextError):
    """The case holder id does not resolve; nothing can be attached."""

    code = "CaseHolderNotFound"


class PropertyNotFoundError(CaseContextError):
    """The property id does not resolve."""

    code = "PropertyNotFound"


@dataclass(frozen=True)
class ContextRefs:
    """Identifiers supplied by a submission channel for one case submission."""

    case_holder_id: UUID
    property_id: UUID | None = None
    lease_id: UUID | None = None


# =============================================================================
# Graph construction
# =============================================================================


def create_case_holder(db: Session, kind: HolderKind, role: HolderRole) -> CaseHolder:
    """Create an empty case holder."""
    holder = CaseHolder(kind=kind.value, role=role.value)
    db.add(holder)
    db.flush()
    return holder


def add_individual(
    db: Session,
    holder: CaseHolder,
    is_primary: bool = False,
    **fields,
) -> Individual:
    """
    Attach an individual to a holder, keeping at most one primary.

    If the holder already has a primary individual the new one is stored as
    non-primary: the first-created primary wins.
    """
    position = db.execute(
        select(func.count(Individual.id)).where(Individual.case_holder_id == holder.id)
    ).scalar_one()
    if is_primary:
        has_primary = db.execute(
            select(Individual.id).where(
                Individual.case_holder_id == holder.id,
                Individual.is_primary.is_(True),
            )
        ).first()
        is_primary = has_primary is None

    individual = Individual(
        case_holder_id=holder.id,
        is_primary=is_primary,
        position=position,
        **fields,
    )
    db.add(individual)
    db.flush()
    db.expire(holder, ["individuals"])
    return individual


def set_organization(db: Session, holder: CaseHolder, **fields) -> Organization:
    """Create or update the holder's single organization."""
    organization = db.execute(
        select(Organization).where(Organization.case_holder_id == holder.id)
    ).scalar_one_or_none()
    if organization is None:
        organization = Organization(case_holder_id=holder.id, **fields)
        db.add(organization)
    else:
        for name, value in fields.items():
            setattr(organization, name, value)
    db.flush()
    db.expire(holder, ["organization"])
    return organization


def add_property(db: Session, owner: CaseHolder, **fields) -> Property:
    """Register a property for an owner."""
    if owner.role != HolderRole.OWNER.value:
        raise ValueError("Only an owner case holder can own a property")
    prop = Property(owner_id=owner.id, **fields)
    db.add(prop)
    db.flush()
    return prop


def create_lease(
    db: Session,
    prop: Property,
    tenants: Iterable[CaseHolder] = (),
) -> Lease:
    """Create a lease on a property with the owner and the given tenants as parties."""
    lease = Lease(property_id=prop.id)
    db.add(lease)
    db.flush()
    db.add(LeaseParty(lease_id=lease.id, case_holder_id=prop.owner_id, side=LeasePartySide.OWNER.value))
    for tenant in tenants:
        db.add(LeaseParty(lease_id=lease.id, case_holder_id=tenant.id, side=LeasePartySide.TENANT.value))
    db.flush()
    return lease


# =============================================================================
# Lookups
# =============================================================================


def order_individuals(individuals: Iterable[Individual]) -> list[Individual]:
    """Primary first, then insertion order."""
    return sorted(
        individuals,
        key=lambda person: (not person.is_primary, person.position),
    )


def get_case_holder(db: Session, case_holder_id: UUID) -> CaseHolder | None:
    return db.execute(
        select(CaseHolder)
        .options(
            selectinload(CaseHolder.individuals),
            selectinload(CaseHolder.organization),
        )
        .where(CaseHolder.id == case_holder_id)
    ).scalar_one_or_none()


def get_primary_individual(holder: CaseHolder) -> Individual | None:
    ordered = order_individuals(holder.individuals)
    return ordered[0] if ordered else None


def load_case_context(db: Session, refs: ContextRefs) -> CaseContext:
    """
    Load everything the resolver needs for one submission.

    Raises CaseHolderNotFoundError when the holder does not exist. Unknown
    property or lease ids are dropped from the context so that only the
    items needing them fail.
    """
    holder = get_case_holder(db, refs.case_holder_id)
    if holder is None:
        raise CaseHolderNotFoundError(f"Case holder {refs.case_holder_id} not found")

    property_id = None
    property_owner_id = None
    if refs.property_id:
        prop = db.get(Property, refs.property_id)
        if prop is None:
            logger.warning(
                "Ignoring unknown property in case context",
                extra=build_log_context(
                    case_holder_id=holder.id, property_id=refs.property_id
                ),
            )
        else:
            property_id = prop.id
            property_owner_id = prop.owner_id

    lease_id = None
    if refs.lease_id:
        if db.get(Lease, refs.lease_id) is None:
            logger.warning(
                "Ignoring unknown lease in case context",
                extra=build_log_context(case_holder_id=holder.id, lease_id=refs.lease_id),
            )
        else:
            lease_id = refs.lease_id

    return CaseContext(
        case_holder_id=holder.id,
        role=HolderRole(holder.role),
        individual_ids=tuple(person.id for person in order_individuals(holder.individuals)),
        organization_id=holder.organization.id if holder.organization else None,
        property_id=property_id,
        property_owner_id=property_owner_id,
        lease_id=lease_id,
    )
