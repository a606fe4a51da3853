"""Documents required for an SEIS/EIS Advance Assurance application."""

from dataclasses import dataclass

from .models import UploadedDocument


@dataclass(frozen=True)
class DocumentRequirement:
    type: str
    label: str
    description: str


REQUIRED_DOCUMENTS = (
    DocumentRequirement("business_plan", "Business Plan", "Detailed business plan (min 2 pages)"),
    DocumentRequirement("financial_forecast", "Financial Forecast", "3-year financial projections"),
    DocumentRequirement("articles_of_association", "Articles of Association", "Company articles"),
    DocumentRequirement("share_register", "Share Register", "Current shareholding structure"),
    DocumentRequirement("accounts", "Accounts", "Latest accounts or bank statement (12 months or less)"),
    DocumentRequirement("investor_list", "Investor Evidence", "Named investor list or platform letter"),
    DocumentRequirement("hmrc_checklist", "HMRC Checklist", "Completed HMRC checklist"),
    DocumentRequirement("cover_letter", "Cover Letter", "Application cover letter"),
    DocumentRequirement("authorisation_letter", "Authorisation Letter", "Signed agent authorisation"),
)

REQUIRED_DOCUMENT_TYPES = tuple(doc.type for doc in REQUIRED_DOCUMENTS)


def latest_by_type(documents: list[UploadedDocument]) -> dict[str, UploadedDocument]:
    """Keep the most recent upload of each document type (later entries win)."""
    latest = {}
    for doc in documents:
        latest[doc.document_type] = doc
    return latest


def missing_documents(documents: list[UploadedDocument]) -> list[DocumentRequirement]:
    uploaded = latest_by_type(documents)
    return [req for req in REQUIRED_DOCUMENTS if req.type not in uploaded]


def is_ready_to_submit(documents: list[UploadedDocument]) -> bool:
    """True once every required document type has been uploaded."""
    return not missing_documents(documents)


def completion_stats(documents: list[UploadedDocument]) -> dict:
    """Count uploaded and verified required documents.

    Only required types are counted, and each type counts once.
    """
    latest = latest_by_type(documents)
    required = [latest[t] for t in REQUIRED_DOCUMENT_TYPES if t in latest]
    return {
        "uploaded": len(required),
        "verified": sum(1 for doc in required if doc.is_verified),
        "total": len(REQUIRED_DOCUMENTS),
    }
