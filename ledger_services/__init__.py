"""
ledger_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the ledger modules.  This is the layer that
    owns database transactions for the review workflow.

Architecture position:
    Services -- stateful orchestration over modules + engines + kernel.

    Dependency direction:
        ledger_services/ -> ledger_modules/ (allowed)
        ledger_modules/  -> ledger_services/ (FORBIDDEN)
        ledger_kernel/   -> ledger_services/ (FORBIDDEN)
"""

from ledger_services.document_review import (
    QUEUE_STATUS_ALL,
    ApprovalResult,
    DocumentReviewService,
)

__all__ = [
    "QUEUE_STATUS_ALL",
    "ApprovalResult",
    "DocumentReviewService",
]
