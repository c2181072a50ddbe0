"""
Documents Module (``ledger_modules.documents``).

Responsibility
--------------
Captured business papers: the document row, the extraction candidate
attached to it, the explicit review session, and the review lifecycle.

Architecture position
---------------------
**Modules layer** -- data definitions and the declarative
``DOCUMENT_WORKFLOW``.  State changes are driven by
``ledger_services.document_review.DocumentReviewService``.
"""

from ledger_modules.documents.models import (
    CandidateLineItem,
    Document,
    DocumentSource,
    DocumentStatus,
    DocumentType,
    ExpenseType,
    ExtractedCandidate,
    ReviewSession,
)
from ledger_modules.documents.workflows import DOCUMENT_WORKFLOW

__all__ = [
    "CandidateLineItem",
    "Document",
    "DocumentSource",
    "DocumentStatus",
    "DocumentType",
    "ExpenseType",
    "ExtractedCandidate",
    "ReviewSession",
    "DOCUMENT_WORKFLOW",
]
