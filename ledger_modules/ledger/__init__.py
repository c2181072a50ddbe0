"""
Ledger Module (``ledger_modules.ledger``).

Responsibility
--------------
The records an approved document produces (invoices, payments and their
split legs, delivery notes, daily entries) and the ``LedgerMaterializer``
that creates them from a reviewer's approval payload.

Architecture position
---------------------
**Modules layer** -- the materializer writes through the review service's
session and never commits.  Installment, billing-cycle and VAT math comes
from ``ledger_engines``.
"""

from ledger_modules.ledger.attachments import AttachmentStore, SharedImageStore
from ledger_modules.ledger.materializer import LedgerMaterializer, payload_kind
from ledger_modules.ledger.models import (
    ApprovalPayload,
    CreditNoteApproval,
    DailyEntryApproval,
    DeliveryNoteApproval,
    InvoiceApproval,
    LineItem,
    MaterializationResult,
    PaymentApproval,
    PaymentMethodEntry,
    SummaryApproval,
)
from ledger_modules.ledger.payloads import parse_approval_payload

__all__ = [
    "AttachmentStore",
    "SharedImageStore",
    "LedgerMaterializer",
    "payload_kind",
    "ApprovalPayload",
    "CreditNoteApproval",
    "DailyEntryApproval",
    "DeliveryNoteApproval",
    "InvoiceApproval",
    "LineItem",
    "MaterializationResult",
    "PaymentApproval",
    "PaymentMethodEntry",
    "SummaryApproval",
    "parse_approval_payload",
]
