"""
Typed Exception Hierarchy for the document intake ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A reviewer action either materializes a document into the ledger or it does
not.  Callers (the review queue, the CLI, any future HTTP layer) must be able
to tell a validation failure from a concurrency conflict from a duplicate
daily entry without parsing message strings.  Therefore:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        review.approve(session, payload)
    except DuplicateDailyEntryError as e:
        show(f"An entry already exists for this date ({e.entry_date})")
    except ApprovalValidationError as e:
        show_generic_failure(e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- DocumentError
    |   +-- DocumentNotFoundError
    |   +-- InvalidDocumentTransitionError
    |   +-- DocumentAlreadyResolvedError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |   +-- DocumentClaimedError
    |
    +-- ApprovalValidationError
    |   +-- MissingRequiredFieldError
    |   +-- UnsupportedPayloadError
    |   +-- InstallmentMismatchError
    |   +-- SummaryTotalsMismatchError
    |
    +-- ConflictError
    |   +-- DuplicateDailyEntryError
    |
    +-- MaterializationError
    |
    +-- PricingError
        +-- SupplierItemNotFoundError
        +-- PriceAlertNotFoundError
        +-- InvalidAlertTransitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                         | When Raised
-------------|------------------------------|-----------------------------------
Document     | DOCUMENT_NOT_FOUND           | Document ID doesn't exist
             | INVALID_DOCUMENT_TRANSITION  | Illegal status edge
             | DOCUMENT_ALREADY_RESOLVED    | Action on approved/rejected doc
-------------|------------------------------|-----------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT     | Row version changed underneath us
             | DOCUMENT_CLAIMED             | Another reviewer holds the lease
-------------|------------------------------|-----------------------------------
Validation   | MISSING_REQUIRED_FIELD       | business/supplier/amount/date absent
             | UNSUPPORTED_PAYLOAD          | Payload is not an approval variant
             | INSTALLMENT_MISMATCH         | Overrides don't sum to method amount
             | SUMMARY_TOTALS_MISMATCH      | Closed summary children != total
-------------|------------------------------|-----------------------------------
Conflict     | DUPLICATE_DAILY_ENTRY        | (business, date) already recorded
-------------|------------------------------|-----------------------------------
Store        | MATERIALIZATION_FAILED       | Unexpected store failure mid-approval
-------------|------------------------------|-----------------------------------
Pricing      | SUPPLIER_ITEM_NOT_FOUND      | Catalog entry doesn't exist
             | PRICE_ALERT_NOT_FOUND        | Alert ID doesn't exist
             | INVALID_ALERT_TRANSITION     | e.g. dismissed -> read

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError.  Pure engines raise ValueError for
   bad arguments; domain errors are a separate, catchable group.

2. ``code`` is a class attribute: static per type, readable without an
   instance.

3. All context is stored as attributes so it survives structured logging
   (see ``StructuredFormatter``, which copies them as ``exc_*`` fields).

===============================================================================
"""


class LedgerKernelError(Exception):
    """
    Base exception for all document intake ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Document lifecycle exceptions


class DocumentError(LedgerKernelError):
    """Base exception for document lifecycle errors."""

    code: str = "DOCUMENT_ERROR"


class DocumentNotFoundError(DocumentError):
    """Document with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class InvalidDocumentTransitionError(DocumentError):
    """The requested action is not a legal edge from the current status."""

    code: str = "INVALID_DOCUMENT_TRANSITION"

    def __init__(self, document_id: str, current_status: str, action: str):
        self.document_id = document_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} document {document_id} in status '{current_status}'"
        )


class DocumentAlreadyResolvedError(DocumentError):
    """Document is approved or rejected; no further action is permitted."""

    code: str = "DOCUMENT_ALREADY_RESOLVED"

    def __init__(self, document_id: str, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(
            f"Document {document_id} is already {status}"
        )


# Concurrency exceptions


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class DocumentClaimedError(ConcurrencyError):
    """Another reviewer holds an unexpired claim on the document."""

    code: str = "DOCUMENT_CLAIMED"

    def __init__(self, document_id: str, claimed_by: str, claim_expires_at: str):
        self.document_id = document_id
        self.claimed_by = claimed_by
        self.claim_expires_at = claim_expires_at
        super().__init__(
            f"Document {document_id} is claimed by {claimed_by} "
            f"until {claim_expires_at}"
        )


# Approval payload validation exceptions


class ApprovalValidationError(LedgerKernelError):
    """Base exception for approvals rejected before any ledger write."""

    code: str = "APPROVAL_VALIDATION_ERROR"


class MissingRequiredFieldError(ApprovalValidationError):
    """An identifying field required for this document kind is absent."""

    code: str = "MISSING_REQUIRED_FIELD"

    def __init__(self, document_type: str, field_name: str):
        self.document_type = document_type
        self.field_name = field_name
        super().__init__(
            f"Cannot approve {document_type}: '{field_name}' is required"
        )


class UnsupportedPayloadError(ApprovalValidationError):
    """The approval payload is not one of the registered approval variants."""

    code: str = "UNSUPPORTED_PAYLOAD"

    def __init__(self, payload_type: str):
        self.payload_type = payload_type
        super().__init__(f"No materializer registered for payload {payload_type}")


class InstallmentMismatchError(ApprovalValidationError):
    """Explicit installment overrides do not sum to their method amount."""

    code: str = "INSTALLMENT_MISMATCH"

    def __init__(self, method: str, expected: str, actual: str):
        self.method = method
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Installments for {method} sum to {actual}, expected {expected}"
        )


class SummaryTotalsMismatchError(ApprovalValidationError):
    """A closed summary's delivery notes do not add up to its total."""

    code: str = "SUMMARY_TOTALS_MISMATCH"

    def __init__(self, summary_total: str, notes_total: str):
        self.summary_total = summary_total
        self.notes_total = notes_total
        super().__init__(
            f"Delivery notes total {notes_total} does not match "
            f"summary total {summary_total}"
        )


# Store conflict exceptions


class ConflictError(LedgerKernelError):
    """Base exception for uniqueness conflicts surfaced to the reviewer."""

    code: str = "CONFLICT"


class DuplicateDailyEntryError(ConflictError):
    """A daily entry for this business and date already exists."""

    code: str = "DUPLICATE_DAILY_ENTRY"

    def __init__(self, business_id: str, entry_date: str):
        self.business_id = business_id
        self.entry_date = entry_date
        super().__init__(f"Entry already exists for this date: {entry_date}")


class MaterializationError(LedgerKernelError):
    """The store failed while writing ledger records; nothing was kept."""

    code: str = "MATERIALIZATION_FAILED"

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(
            f"Failed to materialize document {document_id}: {reason}"
        )


# Price tracking exceptions


class PricingError(LedgerKernelError):
    """Base exception for supplier catalog and price alert errors."""

    code: str = "PRICING_ERROR"


class SupplierItemNotFoundError(PricingError):
    """Supplier catalog item with given ID was not found."""

    code: str = "SUPPLIER_ITEM_NOT_FOUND"

    def __init__(self, supplier_item_id: str):
        self.supplier_item_id = supplier_item_id
        super().__init__(f"Supplier item not found: {supplier_item_id}")


class PriceAlertNotFoundError(PricingError):
    """Price alert with given ID was not found."""

    code: str = "PRICE_ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Price alert not found: {alert_id}")


class InvalidAlertTransitionError(PricingError):
    """Price alert status change is not allowed."""

    code: str = "INVALID_ALERT_TRANSITION"

    def __init__(self, alert_id: str, from_status: str, to_status: str):
        self.alert_id = alert_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Price alert {alert_id} cannot move from {from_status} to {to_status}"
        )
