"""Display labels for document kinds."""

from casefile.db.enums import DocumentKind

DOCUMENT_KIND_LABELS: dict[str, str] = {
    DocumentKind.KBIS.value: "KBIS",
    DocumentKind.STATUTES.value: "Statuts",
    DocumentKind.INSURANCE.value: "Assurance",
    DocumentKind.TITLE_DEED.value: "Titre de propriété",
    DocumentKind.BIRTH_CERT.value: "Acte de naissance",
    DocumentKind.ID_IDENTITY.value: "Pièce d'identité",
    DocumentKind.LIVRET_DE_FAMILLE.value: "Livret de famille",
    DocumentKind.CONTRAT_DE_PACS.value: "Contrat de PACS",
    DocumentKind.DIAGNOSTICS.value: "Diagnostics",
    DocumentKind.REGLEMENT_COPROPRIETE.value: "Règlement de copropriété",
    DocumentKind.CAHIER_DE_CHARGE_LOTISSEMENT.value: "Cahier des charges lotissement",
    DocumentKind.STATUT_DE_LASSOCIATION_SYNDICALE.value: "Statut de l'association syndicale",
    DocumentKind.RIB.value: "RIB",
    DocumentKind.LEASE_CORRESPONDENCE.value: "Correspondance du bail",
    DocumentKind.OTHER.value: "Autre document",
}


def label_for(kind: DocumentKind | str) -> str:
    """Label for a kind, or the raw kind when none is registered."""
    value = kind.value if isinstance(kind, DocumentKind) else kind
    return DOCUMENT_KIND_LABELS.get(value, value)
