"""
Requirement checklists feeding completion status derivation.

The checklist is configuration, not code the aggregator owns: callers may
inject any ChecklistRegistry. DefaultChecklistRegistry carries the rules the
notarial office applies today.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

from casefile.db.enums import (
    DocumentKind,
    FamilyStatus,
    HolderKind,
    HolderRole,
    PropertyLegalStatus,
)
from casefile.db.models import CaseHolder, Individual, Property


class FieldScope(str, Enum):
    PRIMARY_INDIVIDUAL = "primary_individual"
    EACH_INDIVIDUAL = "each_individual"
    ORGANIZATION = "organization"
    PROPERTY = "property"


class DocumentScope(str, Enum):
    EACH_INDIVIDUAL = "each_individual"
    ORGANIZATION = "organization"
    CASE_HOLDER = "case_holder"
    # Holder itself, or any property the holder owns (insurance, bank details)
    HOLDER_OR_OWNED_PROPERTY = "holder_or_owned_property"
    PROPERTY = "property"


@dataclass(frozen=True)
class FieldRequirement:
    field: str
    scope: FieldScope
    # Only individuals in this family status are checked
    family_status: FamilyStatus | None = None


@dataclass(frozen=True)
class DocumentRequirement:
    kind: DocumentKind
    scope: DocumentScope


@dataclass(frozen=True)
class Checklist:
    fields: tuple[FieldRequirement, ...] = ()
    documents: tuple[DocumentRequirement, ...] = ()


class ChecklistRegistry(Protocol):
    def for_case_holder(
        self, holder: CaseHolder, individuals: Sequence[Individual]
    ) -> Checklist: ...

    def for_property(self, prop: Property) -> Checklist: ...


INDIVIDUAL_IDENTITY_FIELDS = ("first_name", "last_name", "nationality", "birth_date", "birth_place")
ORGANIZATION_IDENTITY_FIELDS = ("email", "legal_name", "registration", "nationality")
CONTACT_FIELDS = ("phone", "full_address")
ROLES_WITH_CONTACT = frozenset({HolderRole.OWNER.value, HolderRole.TENANT.value})


class DefaultChecklistRegistry:
    """Per role and holder kind requirements."""

    def for_case_holder(
        self, holder: CaseHolder, individuals: Sequence[Individual]
    ) -> Checklist:
        if holder.role == HolderRole.LEAD.value:
            return Checklist()

        fields: list[FieldRequirement] = []
        documents: list[DocumentRequirement] = []
        with_contact = holder.role in ROLES_WITH_CONTACT

        if holder.kind == HolderKind.ORGANIZATION.value:
            fields += [FieldRequirement(name, FieldScope.ORGANIZATION) for name in ORGANIZATION_IDENTITY_FIELDS]
            if with_contact:
                fields += [FieldRequirement(name, FieldScope.ORGANIZATION) for name in CONTACT_FIELDS]
            documents += [
                DocumentRequirement(DocumentKind.KBIS, DocumentScope.ORGANIZATION),
                DocumentRequirement(DocumentKind.STATUTES, DocumentScope.ORGANIZATION),
            ]
        else:
            fields.append(FieldRequirement("email", FieldScope.PRIMARY_INDIVIDUAL))
            if with_contact:
                fields += [FieldRequirement(name, FieldScope.PRIMARY_INDIVIDUAL) for name in CONTACT_FIELDS]
            fields += [FieldRequirement(name, FieldScope.EACH_INDIVIDUAL) for name in INDIVIDUAL_IDENTITY_FIELDS]
            fields.append(
                FieldRequirement(
                    "matrimonial_regime", FieldScope.EACH_INDIVIDUAL, FamilyStatus.MARRIED
                )
            )
            documents += [
                DocumentRequirement(DocumentKind.BIRTH_CERT, DocumentScope.EACH_INDIVIDUAL),
                DocumentRequirement(DocumentKind.ID_IDENTITY, DocumentScope.EACH_INDIVIDUAL),
            ]
            primary_status = individuals[0].family_status if individuals else None
            if primary_status == FamilyStatus.MARRIED.value:
                documents.append(
                    DocumentRequirement(DocumentKind.LIVRET_DE_FAMILLE, DocumentScope.CASE_HOLDER)
                )
            elif primary_status == FamilyStatus.PACS.value:
                documents.append(
                    DocumentRequirement(DocumentKind.CONTRAT_DE_PACS, DocumentScope.CASE_HOLDER)
                )

        if with_contact:
            documents += [
                DocumentRequirement(DocumentKind.INSURANCE, DocumentScope.HOLDER_OR_OWNED_PROPERTY),
                DocumentRequirement(DocumentKind.RIB, DocumentScope.HOLDER_OR_OWNED_PROPERTY),
            ]

        return Checklist(fields=tuple(fields), documents=tuple(documents))

    def for_property(self, prop: Property) -> Checklist:
        documents = [
            DocumentRequirement(DocumentKind.DIAGNOSTICS, DocumentScope.PROPERTY),
            DocumentRequirement(DocumentKind.TITLE_DEED, DocumentScope.PROPERTY),
        ]
        if prop.legal_status == PropertyLegalStatus.CO_OWNERSHIP.value:
            documents.append(
                DocumentRequirement(DocumentKind.REGLEMENT_COPROPRIETE, DocumentScope.PROPERTY)
            )
        elif prop.legal_status == PropertyLegalStatus.SUBDIVISION.value:
            documents += [
                DocumentRequirement(DocumentKind.CAHIER_DE_CHARGE_LOTISSEMENT, DocumentScope.PROPERTY),
                DocumentRequirement(DocumentKind.STATUT_DE_LASSOCIATION_SYNDICALE, DocumentScope.PROPERTY),
            ]
        return Checklist(
            fields=(FieldRequirement("full_address", FieldScope.PROPERTY),),
            documents=tuple(documents),
        )


default_checklist_registry = DefaultChecklistRegistry()
