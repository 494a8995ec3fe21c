"""Enum definitions for case file constants."""

from enum import Enum


class HolderKind(str, Enum):
    """Legal nature of a case holder."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class HolderRole(str, Enum):
    """Role a case holder plays in the lease file."""

    OWNER = "owner"
    TENANT = "tenant"
    LEAD = "lead"


class CompletionStatus(str, Enum):
    """
    Derived readiness of a case holder or property.

    COMPLETED is only ever set by staff; the aggregator never produces it.
    """

    NOT_STARTED = "not_started"
    PARTIAL = "partial"
    PENDING_CHECK = "pending_check"
    COMPLETED = "completed"


class FamilyStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"
    PACS = "pacs"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class PropertyLegalStatus(str, Enum):
    FULL_OWNERSHIP = "full_ownership"
    CO_OWNERSHIP = "co_ownership"
    SUBDIVISION = "subdivision"


class LeaseStatus(str, Enum):
    DRAFT = "draft"
    PENDING_VALIDATION = "pending_validation"
    READY_FOR_NOTARY = "ready_for_notary"
    SIGNED = "signed"
    TERMINATED = "terminated"


class LeasePartySide(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"


class IntakeLinkStatus(str, Enum):
    """Lifecycle of a public intake link."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    REVOKED = "revoked"


class DocumentKind(str, Enum):
    """Closed set of artifact kinds accepted by the attachment engine."""

    ID_IDENTITY = "ID_IDENTITY"
    BIRTH_CERT = "BIRTH_CERT"
    KBIS = "KBIS"
    STATUTES = "STATUTES"
    DIAGNOSTICS = "DIAGNOSTICS"
    TITLE_DEED = "TITLE_DEED"
    REGLEMENT_COPROPRIETE = "REGLEMENT_COPROPRIETE"
    CAHIER_DE_CHARGE_LOTISSEMENT = "CAHIER_DE_CHARGE_LOTISSEMENT"
    STATUT_DE_LASSOCIATION_SYNDICALE = "STATUT_DE_LASSOCIATION_SYNDICALE"
    INSURANCE = "INSURANCE"
    RIB = "RIB"
    LIVRET_DE_FAMILLE = "LIVRET_DE_FAMILLE"
    CONTRAT_DE_PACS = "CONTRAT_DE_PACS"
    LEASE_CORRESPONDENCE = "LEASE_CORRESPONDENCE"
    OTHER = "OTHER"


class OwnerType(str, Enum):
    """Which of the five owner references a document row populates."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"
    CASE_HOLDER = "case_holder"
    PROPERTY = "property"
    LEASE = "lease"


DEFAULT_COMPLETION_STATUS = CompletionStatus.NOT_STARTED.value
DEFAULT_INTAKE_LINK_STATUS = IntakeLinkStatus.PENDING.value
DEFAULT_LEASE_STATUS = LeaseStatus.DRAFT.value
