"""
Attachment resolver: decides which single entity of a case graph owns an artifact.

Pure decision code: no database access, no side effects. Every submission
entry point (public intake, staff upload, batch replay) goes through
resolve_target so that the kind-to-owner rules live in one place.

Rules, first match wins:
1. per-individual kinds   -> Individual at party_index (clamped to the first)
2. organization kinds     -> the holder's Organization
3. property-only kinds    -> the supplied Property
4. lease-only kinds       -> the supplied Lease
5. role-dependent kinds   -> Property for an OWNER with a Property, else the holder
6. everything else        -> the holder itself
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Union
from uuid import UUID

from casefile.db.enums import DocumentKind, HolderRole, OwnerType


class AttachmentError(Exception):
    """Base exception for per-artifact classification and persistence errors."""

    code = "AttachmentError"


class ResolutionError(AttachmentError):
    """No target can be computed from the supplied context."""

    code = "ResolutionError"


class NoIndividualAvailableError(ResolutionError):
    """Per-individual kind but the holder has no individual."""

    code = "NoIndividualAvailable"


class NoOrganizationAvailableError(ResolutionError):
    """Organization kind but the holder has no organization."""

    code = "NoOrganizationAvailable"


class NoPropertyInContextError(ResolutionError):
    """Property-only kind submitted without a property."""

    code = "NoPropertyInContext"


class NoLeaseInContextError(ResolutionError):
    """Lease-only kind submitted without a lease."""

    code = "NoLeaseInContext"


class UnknownKindError(AttachmentError):
    """Kind outside the closed DocumentKind set."""

    code = "UnknownKind"


PER_INDIVIDUAL_KINDS = frozenset({
    DocumentKind.ID_IDENTITY,
    DocumentKind.BIRTH_CERT,
})
ORGANIZATION_KINDS = frozenset({
    DocumentKind.KBIS,
    DocumentKind.STATUTES,
})
PROPERTY_KINDS = frozenset({
    DocumentKind.DIAGNOSTICS,
    DocumentKind.TITLE_DEED,
    DocumentKind.REGLEMENT_COPROPRIETE,
    DocumentKind.CAHIER_DE_CHARGE_LOTISSEMENT,
    DocumentKind.STATUT_DE_LASSOCIATION_SYNDICALE,
})
LEASE_KINDS = frozenset({
    DocumentKind.LEASE_CORRESPONDENCE,
})
ROLE_DEPENDENT_KINDS = frozenset({
    DocumentKind.INSURANCE,
    DocumentKind.RIB,
})


# =============================================================================
# Target references
# =============================================================================


@dataclass(frozen=True)
class _Target:
    id: UUID
    owner_type: ClassVar[OwnerType]

    @property
    def owner_column(self) -> str:
        """Name of the Document column this target populates."""
        return f"{self.owner_type.value}_id"

    @property
    def owner_key(self) -> str:
        return f"{self.owner_type.value}:{self.id}"

    def describe(self) -> str:
        return self.owner_key


@dataclass(frozen=True)
class IndividualTarget(_Target):
    owner_type: ClassVar[OwnerType] = OwnerType.INDIVIDUAL
    # Position in the primary-first ordering, for reporting only
    position: int | None = field(default=None, compare=False)

    def describe(self) -> str:
        if self.position is None:
            return self.owner_key
        return f"{self.owner_key}#{self.position}"


@dataclass(frozen=True)
class OrganizationTarget(_Target):
    owner_type: ClassVar[OwnerType] = OwnerType.ORGANIZATION


@dataclass(frozen=True)
class CaseHolderTarget(_Target):
    owner_type: ClassVar[OwnerType] = OwnerType.CASE_HOLDER


@dataclass(frozen=True)
class PropertyTarget(_Target):
    owner_type: ClassVar[OwnerType] = OwnerType.PROPERTY


@dataclass(frozen=True)
class LeaseTarget(_Target):
    owner_type: ClassVar[OwnerType] = OwnerType.LEASE


TargetRef = Union[
    IndividualTarget, OrganizationTarget, CaseHolderTarget, PropertyTarget, LeaseTarget
]


@dataclass(frozen=True)
class CaseContext:
    """
    Case graph snapshot handed to the resolver.

    individual_ids must already be ordered primary-first; property and lease
    are decided by the caller, the resolver never looks them up.
    """

    case_holder_id: UUID
    role: HolderRole
    individual_ids: tuple[UUID, ...] = ()
    organization_id: UUID | None = None
    property_id: UUID | None = None
    property_owner_id: UUID | None = None
    lease_id: UUID | None = None


# =============================================================================
# Resolution
# =============================================================================


def parse_kind(value: DocumentKind | str) -> DocumentKind:
    """Coerce a raw kind tag into the closed enum."""
    if isinstance(value, DocumentKind):
        return value
    try:
        return DocumentKind(str(value).strip().upper())
    except ValueError:
        raise UnknownKindError(f"Unknown document kind: {value!r}") from None


def _resolve_individual(context: CaseContext, party_index: int | None) -> IndividualTarget:
    if not context.individual_ids:
        raise NoIndividualAvailableError(
            f"Case holder {context.case_holder_id} has no individual"
        )
    index = 0 if party_index is None else party_index
    # Stale client-side indices fall back to the primary instead of failing
    if index < 0 or index >= len(context.individual_ids):
        index = 0
    return IndividualTarget(id=context.individual_ids[index], position=index)


def resolve_target(
    kind: DocumentKind | str,
    context: CaseContext,
    party_index: int | None = None,
) -> TargetRef:
    """Return the single entity that owns an artifact of this kind."""
    kind = parse_kind(kind)

    if kind in PER_INDIVIDUAL_KINDS:
        return _resolve_individual(context, party_index)

    if kind in ORGANIZATION_KINDS:
        if context.organization_id is None:
            raise NoOrganizationAvailableError(
                f"Case holder {context.case_holder_id} has no organization"
            )
        return OrganizationTarget(id=context.organization_id)

    if kind in PROPERTY_KINDS:
        if context.property_id is None:
            raise NoPropertyInContextError(f"{kind.value} requires a property")
        return PropertyTarget(id=context.property_id)

    if kind in LEASE_KINDS:
        if context.lease_id is None:
            raise NoLeaseInContextError(f"{kind.value} requires a lease")
        return LeaseTarget(id=context.lease_id)

    if kind in ROLE_DEPENDENT_KINDS:
        if context.role == HolderRole.OWNER and context.property_id is not None:
            return PropertyTarget(id=context.property_id)
        return CaseHolderTarget(id=context.case_holder_id)

    return CaseHolderTarget(id=context.case_holder_id)
