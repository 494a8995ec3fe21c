"""SQLAlchemy ORM models for the case graph: holders, parties, assets, documents."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric,
    String, Text, UniqueConstraint, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casefile.db.base import Base
from casefile.db.enums import (
    DEFAULT_COMPLETION_STATUS, DEFAULT_INTAKE_LINK_STATUS, DEFAULT_LEASE_STATUS,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Case holders and their parties
# =============================================================================

class CaseHolder(Base):
    """
    Root of a case file: one client (a person, a household or a company)
    acting as owner, tenant or lead.

    completion_status is derived by completion_service and must not be
    written by submission code.
    """
    __tablename__ = "case_holders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    completion_status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_COMPLETION_STATUS, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    individuals: Mapped[list["Individual"]] = relationship(
        back_populates="case_holder",
        cascade="all, delete-orphan",
        order_by=lambda: (
            Individual.is_primary.desc(), Individual.position, Individual.created_at
        ),
    )
    organization: Mapped["Organization | None"] = relationship(
        back_populates="case_holder",
        cascade="all, delete-orphan",
        uselist=False,
    )
    properties: Mapped[list["Property"]] = relationship(back_populates="owner")
    documents: Mapped[list["Document"]] = relationship(
        back_populates="case_holder", foreign_keys="Document.case_holder_id"
    )
    lease_parties: Mapped[list["LeaseParty"]] = relationship(back_populates="case_holder")


class Individual(Base):
    """A natural person attached to a case holder (household member or sole client)."""
    __tablename__ = "individuals"
    __table_args__ = (
        Index("idx_individuals_holder_order", "case_holder_id", "is_primary", "position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_holder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_holders.id", ondelete="CASCADE"), nullable=False
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    birth_place: Mapped[str | None] = mapped_column(String(255), nullable=True)
    family_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    matrimonial_regime: Mapped[str | None] = mapped_column(String(100), nullable=True)
    profession: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    case_holder: Mapped["CaseHolder"] = relationship(back_populates="individuals")
    documents: Mapped[list["Document"]] = relationship(back_populates="individual")


class Organization(Base):
    """Company side of a case holder (at most one per holder)."""
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    case_holder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("case_holders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    legal_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    registration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    case_holder: Mapped["CaseHolder"] = relationship(back_populates="organization")
    documents: Mapped[list["Document"]] = relationship(back_populates="organization")


# =============================================================================
# Properties and leases
# =============================================================================

class Property(Base):
    """A property owned by an OWNER case holder; carries its own completion status."""
    __tablename__ = "properties"
    __table_args__ = (
        Index("idx_properties_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_holders.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    surface_m2: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    property_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    legal_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    completion_status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_COMPLETION_STATUS, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    owner: Mapped["CaseHolder"] = relationship(back_populates="properties")
    leases: Mapped[list["Lease"]] = relationship(back_populates="property")
    documents: Mapped[list["Document"]] = relationship(back_populates="property")


class Lease(Base):
    """A lease on one property; parties are linked through lease_parties."""
    __tablename__ = "leases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default=DEFAULT_LEASE_STATUS, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    property: Mapped["Property"] = relationship(back_populates="leases")
    parties: Mapped[list["LeaseParty"]] = relationship(
        back_populates="lease", cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(back_populates="lease")


class LeaseParty(Base):
    """Many-to-many link between leases and case holders (owner or tenant side)."""
    __tablename__ = "lease_parties"
    __table_args__ = (
        UniqueConstraint("lease_id", "case_holder_id", name="uq_lease_parties_lease_holder"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lease_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("leases.id", ondelete="CASCADE"), nullable=False
    )
    case_holder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_holders.id", ondelete="CASCADE"), nullable=False
    )
    side: Mapped[str] = mapped_column(String(20), nullable=False)

    lease: Mapped["Lease"] = relationship(back_populates="parties")
    case_holder: Mapped["CaseHolder"] = relationship(back_populates="lease_parties")


# =============================================================================
# Documents
# =============================================================================

_OWNER_COLUMNS = ("individual_id", "organization_id", "case_holder_id", "property_id", "lease_id")
_EXACTLY_ONE_OWNER = " + ".join(
    f"(CASE WHEN {column} IS NULL THEN 0 ELSE 1 END)" for column in _OWNER_COLUMNS
) + " = 1"


class Document(Base):
    """
    A classified artifact attached to exactly one entity of the case graph.

    owner_key mirrors the populated owner reference ("<owner type>:<id>") so
    that the identity key (content_locator, kind, owner) can be enforced by a
    plain unique constraint; NULL owner columns would defeat one spanning the
    five foreign keys.
    """
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(_EXACTLY_ONE_OWNER, name="exactly_one_owner"),
        UniqueConstraint(
            "content_locator", "kind", "owner_key", name="uq_documents_identity"
        ),
        Index("idx_documents_individual", "individual_id"),
        Index("idx_documents_organization", "organization_id"),
        Index("idx_documents_case_holder", "case_holder_id"),
        Index("idx_documents_property", "property_id"),
        Index("idx_documents_lease", "lease_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    content_locator: Mapped[str] = mapped_column(String(1024), nullable=False)
    media_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Null for anonymous public intake submissions
    uploaded_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Exactly one of these is set
    individual_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("individuals.id", ondelete="CASCADE"), nullable=True
    )
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )
    case_holder_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("case_holders.id", ondelete="CASCADE"), nullable=True
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=True
    )
    lease_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("leases.id", ondelete="CASCADE"), nullable=True
    )
    owner_key: Mapped[str] = mapped_column(String(80), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    individual: Mapped["Individual | None"] = relationship(back_populates="documents")
    organization: Mapped["Organization | None"] = relationship(back_populates="documents")
    case_holder: Mapped["CaseHolder | None"] = relationship(
        back_populates="documents", foreign_keys=[case_holder_id]
    )
    property: Mapped["Property | None"] = relationship(back_populates="documents")
    lease: Mapped["Lease | None"] = relationship(back_populates="documents")


# =============================================================================
# Intake links and status history
# =============================================================================

class IntakeLink(Base):
    """Tokenized public link through which a client submits documents."""
    __tablename__ = "intake_links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    case_holder_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("case_holders.id", ondelete="CASCADE"), nullable=False
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="SET NULL"), nullable=True
    )
    lease_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("leases.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_INTAKE_LINK_STATUS, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    case_holder: Mapped["CaseHolder"] = relationship()


class CompletionStatusChange(Base):
    """Append-only history of derived completion status transitions."""
    __tablename__ = "completion_status_changes"
    __table_args__ = (
        Index("idx_completion_changes_entity", "entity_type", "entity_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)  # case_holder | property
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    old_status: Mapped[str] = mapped_column(String(20), nullable=False)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
