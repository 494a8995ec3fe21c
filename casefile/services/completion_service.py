"""
Completion status aggregation for case holders and properties.

Status is derived from the requirement checklist every time a document
changes:
- NOT_STARTED: no requirement satisfied (or nothing is required)
- PARTIAL: some requirements satisfied
- PENDING_CHECK: every requirement satisfied, ready for staff review

COMPLETED is set by staff only. It survives recomputation while the
requirements still hold and is demoted as soon as they regress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from casefile.core.structured_logging import build_log_context
from casefile.db.enums import CompletionStatus, HolderRole, OwnerType
from casefile.db.models import (
    CaseHolder,
    CompletionStatusChange,
    Document,
    Individual,
    Organization,
    Property,
)
from casefile.services.case_context_service import (
    CaseHolderNotFoundError,
    PropertyNotFoundError,
    get_case_holder,
    order_individuals,
)
from casefile.services.requirement_checklists import (
    Checklist,
    ChecklistRegistry,
    DocumentScope,
    FieldScope,
    default_checklist_registry,
)

logger = logging.getLogger(__name__)


@dataclass
class CompletionReport:
    """Checklist diff for one case holder or property."""

    entity_type: str
    entity_id: UUID
    total_checks: int = 0
    satisfied_checks: int = 0
    missing_fields: list[str] = field(default_factory=list)
    missing_documents: list[str] = field(default_factory=list)

    @property
    def has_all_fields(self) -> bool:
        return not self.missing_fields

    @property
    def has_all_documents(self) -> bool:
        return not self.missing_documents

    @property
    def requirements_met(self) -> bool:
        return self.satisfied_checks >= self.total_checks

    @property
    def status(self) -> CompletionStatus:
        return derive_status(self.satisfied_checks, self.total_checks)

    def _check(self, satisfied: bool, missing: list[str], label: str) -> None:
        self.total_checks += 1
        if satisfied:
            self.satisfied_checks += 1
        else:
            missing.append(label)

    def check_field(self, satisfied: bool, label: str) -> None:
        self._check(satisfied, self.missing_fields, label)

    def check_document(self, satisfied: bool, label: str) -> None:
        self._check(satisfied, self.missing_documents, label)


@dataclass
class _Subjects:
    """Entities a checklist is evaluated against."""

    individuals: Sequence[Individual] = ()
    organization: Organization | None = None
    case_holder_id: UUID | None = None
    property: Property | None = None
    owned_property_ids: Sequence[UUID] = ()
    present_documents: set[tuple[OwnerType, UUID, str]] = field(default_factory=set)

    def has_document(self, owner_type: OwnerType, owner_id: UUID | None, kind: str) -> bool:
        return owner_id is not None and (owner_type, owner_id, kind) in self.present_documents


# =============================================================================
# Derivation
# =============================================================================


def derive_status(satisfied: int, total: int) -> CompletionStatus:
    if total == 0 or satisfied == 0:
        return CompletionStatus.NOT_STARTED
    if satisfied >= total:
        return CompletionStatus.PENDING_CHECK
    return CompletionStatus.PARTIAL


def reconcile_status(
    current: CompletionStatus,
    derived: CompletionStatus,
    requirements_met: bool,
) -> CompletionStatus:
    """Keep a staff-set COMPLETED while the requirements still hold.

    An empty checklist always holds, so a COMPLETED lead stays COMPLETED.
    """
    if current == CompletionStatus.COMPLETED and requirements_met:
        return CompletionStatus.COMPLETED
    return derived


def is_field_present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _present_documents(db: Session, conditions: list) -> set[tuple[OwnerType, UUID, str]]:
    rows = db.execute(
        select(
            Document.individual_id,
            Document.organization_id,
            Document.case_holder_id,
            Document.property_id,
            Document.kind,
        ).where(or_(*conditions))
    ).all()

    present: set[tuple[OwnerType, UUID, str]] = set()
    for individual_id, organization_id, case_holder_id, property_id, kind in rows:
        if individual_id:
            present.add((OwnerType.INDIVIDUAL, individual_id, kind))
        elif organization_id:
            present.add((OwnerType.ORGANIZATION, organization_id, kind))
        elif case_holder_id:
            present.add((OwnerType.CASE_HOLDER, case_holder_id, kind))
        elif property_id:
            present.add((OwnerType.PROPERTY, property_id, kind))
    return present


def _evaluate_fields(report: CompletionReport, checklist: Checklist, subjects: _Subjects) -> None:
    for requirement in checklist.fields:
        name = requirement.field

        if requirement.scope in (FieldScope.PRIMARY_INDIVIDUAL, FieldScope.EACH_INDIVIDUAL):
            if not subjects.individuals:
                # Conditional requirements cannot apply to nobody
                if requirement.family_status is None:
                    report.check_field(False, f"individual.{name}")
                continue
            people = subjects.individuals
            if requirement.scope == FieldScope.PRIMARY_INDIVIDUAL:
                people = people[:1]
            for position, person in enumerate(people):
                if (
                    requirement.family_status is not None
                    and person.family_status != requirement.family_status.value
                ):
                    continue
                report.check_field(
                    is_field_present(getattr(person, name, None)),
                    f"individual[{position}].{name}",
                )

        elif requirement.scope == FieldScope.ORGANIZATION:
            value = getattr(subjects.organization, name, None) if subjects.organization else None
            report.check_field(is_field_present(value), f"organization.{name}")

        elif requirement.scope == FieldScope.PROPERTY and subjects.property is not None:
            report.check_field(
                is_field_present(getattr(subjects.property, name, None)),
                f"property.{name}",
            )


def _evaluate_documents(report: CompletionReport, checklist: Checklist, subjects: _Subjects) -> None:
    for requirement in checklist.documents:
        kind = requirement.kind.value

        if requirement.scope == DocumentScope.EACH_INDIVIDUAL:
            if not subjects.individuals:
                report.check_document(False, f"individual:{kind}")
                continue
            for position, person in enumerate(subjects.individuals):
                report.check_document(
                    subjects.has_document(OwnerType.INDIVIDUAL, person.id, kind),
                    f"individual[{position}]:{kind}",
                )

        elif requirement.scope == DocumentScope.ORGANIZATION:
            org_id = subjects.organization.id if subjects.organization else None
            report.check_document(
                subjects.has_document(OwnerType.ORGANIZATION, org_id, kind),
                f"organization:{kind}",
            )

        elif requirement.scope == DocumentScope.CASE_HOLDER:
            report.check_document(
                subjects.has_document(OwnerType.CASE_HOLDER, subjects.case_holder_id, kind),
                f"case_holder:{kind}",
            )

        elif requirement.scope == DocumentScope.HOLDER_OR_OWNED_PROPERTY:
            satisfied = subjects.has_document(
                OwnerType.CASE_HOLDER, subjects.case_holder_id, kind
            ) or any(
                subjects.has_document(OwnerType.PROPERTY, property_id, kind)
                for property_id in subjects.owned_property_ids
            )
            report.check_document(satisfied, f"case_holder:{kind}")

        elif requirement.scope == DocumentScope.PROPERTY and subjects.property is not None:
            report.check_document(
                subjects.has_document(OwnerType.PROPERTY, subjects.property.id, kind),
                f"property:{kind}",
            )


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_case_holder(
    db: Session,
    holder: CaseHolder,
    registry: ChecklistRegistry | None = None,
) -> CompletionReport:
    """Diff the holder's checklist against its current fields and documents."""
    registry = registry or default_checklist_registry
    individuals = order_individuals(holder.individuals)
    organization = holder.organization

    owned_property_ids: list[UUID] = []
    if holder.role == HolderRole.OWNER.value:
        owned_property_ids = list(
            db.execute(select(Property.id).where(Property.owner_id == holder.id)).scalars()
        )

    conditions = [Document.case_holder_id == holder.id]
    if individuals:
        conditions.append(Document.individual_id.in_([person.id for person in individuals]))
    if organization is not None:
        conditions.append(Document.organization_id == organization.id)
    if owned_property_ids:
        conditions.append(Document.property_id.in_(owned_property_ids))

    subjects = _Subjects(
        individuals=individuals,
        organization=organization,
        case_holder_id=holder.id,
        owned_property_ids=owned_property_ids,
        present_documents=_present_documents(db, conditions),
    )
    checklist = registry.for_case_holder(holder, individuals)

    report = CompletionReport(entity_type="case_holder", entity_id=holder.id)
    _evaluate_fields(report, checklist, subjects)
    _evaluate_documents(report, checklist, subjects)
    return report


def evaluate_property(
    db: Session,
    prop: Property,
    registry: ChecklistRegistry | None = None,
) -> CompletionReport:
    """Diff the property's checklist against its current fields and documents."""
    registry = registry or default_checklist_registry
    subjects = _Subjects(
        property=prop,
        present_documents=_present_documents(db, [Document.property_id == prop.id]),
    )
    checklist = registry.for_property(prop)

    report = CompletionReport(entity_type="property", entity_id=prop.id)
    _evaluate_fields(report, checklist, subjects)
    _evaluate_documents(report, checklist, subjects)
    return report


# =============================================================================
# Recomputation
# =============================================================================


def _store_status(
    db: Session,
    entity: CaseHolder | Property,
    entity_type: str,
    report: CompletionReport,
) -> CompletionStatus:
    current = CompletionStatus(entity.completion_status)
    new_status = reconcile_status(current, report.status, report.requirements_met)
    if new_status != current:
        entity.completion_status = new_status.value
        db.add(
            CompletionStatusChange(
                entity_type=entity_type,
                entity_id=entity.id,
                old_status=current.value,
                new_status=new_status.value,
            )
        )
        log_context = (
            build_log_context(case_holder_id=entity.id)
            if entity_type == "case_holder"
            else build_log_context(property_id=entity.id)
        )
        logger.info(
            f"Completion status {current.value} -> {new_status.value}",
            extra=log_context,
        )
    db.flush()
    return new_status


def recompute_case_holder(
    db: Session,
    case_holder_id: UUID,
    registry: ChecklistRegistry | None = None,
) -> CompletionStatus:
    """Recompute and persist a case holder's completion status."""
    holder = get_case_holder(db, case_holder_id)
    if holder is None:
        raise CaseHolderNotFoundError(f"Case holder {case_holder_id} not found")
    report = evaluate_case_holder(db, holder, registry)
    return _store_status(db, holder, "case_holder", report)


def recompute_property(
    db: Session,
    property_id: UUID,
    registry: ChecklistRegistry | None = None,
) -> CompletionStatus:
    """Recompute and persist a property's completion status."""
    prop = db.get(Property, property_id)
    if prop is None:
        raise PropertyNotFoundError(f"Property {property_id} not found")
    report = evaluate_property(db, prop, registry)
    return _store_status(db, prop, "property", report)
