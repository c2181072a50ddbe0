"""
Document Review Workflow (``ledger_modules.documents.workflows``).

Responsibility
--------------
Declares the document lifecycle as a single frozen ``Workflow``.  The
review service looks every action up here; there is no other place that
decides which status changes are legal.

Architecture position
---------------------
**Modules layer** -- declarative workflow definitions.  Imports canonical
Guard, Transition, Workflow from ``ledger_kernel.domain.workflow``.

Invariants enforced
-------------------
* ``approved`` and ``rejected`` are terminal.
* ``reviewing -> approved`` is the only transition with
  ``materializes=True``.
* ``deleted`` is a pseudo-state: the row is removed, ledger records are
  left alone.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.documents.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

CLAIM_AVAILABLE = Guard(
    name="claim_available",
    description="Document is unclaimed, claimed by the same reviewer, or the claim expired",
)

REVIEWER_HOLDS_CLAIM = Guard(
    name="reviewer_holds_claim",
    description="Acting reviewer holds the document's claim",
)


# -----------------------------------------------------------------------------
# Document Workflow
# -----------------------------------------------------------------------------

DELETED_STATE = "deleted"

DOCUMENT_WORKFLOW = Workflow(
    name="document_review",
    description="Captured document from intake to ledger",
    initial_state="pending",
    states=("pending", "reviewing", "approved", "rejected", DELETED_STATE),
    transitions=(
        Transition("pending", "reviewing", action="select", guard=CLAIM_AVAILABLE),
        Transition("reviewing", "reviewing", action="select", guard=CLAIM_AVAILABLE),
        Transition("reviewing", "pending", action="skip", guard=REVIEWER_HOLDS_CLAIM),
        Transition(
            "reviewing",
            "approved",
            action="approve",
            guard=REVIEWER_HOLDS_CLAIM,
            materializes=True,
        ),
        Transition("reviewing", "rejected", action="reject", guard=REVIEWER_HOLDS_CLAIM),
        Transition("pending", DELETED_STATE, action="delete"),
        Transition("reviewing", DELETED_STATE, action="delete", guard=CLAIM_AVAILABLE),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info(
    "document_workflow_defined",
    extra={
        "workflow": DOCUMENT_WORKFLOW.name,
        "state_count": len(DOCUMENT_WORKFLOW.states),
        "transition_count": len(DOCUMENT_WORKFLOW.transitions),
    },
)
