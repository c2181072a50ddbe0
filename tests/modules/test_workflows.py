"""
Tests for the document review and price alert workflows.

Validates:
- Every legal document edge and its guard
- Terminal states have no outgoing edges
- Only reviewing -> approved materializes
- Price alerts only move forward
- Workflow construction rejects unknown states
"""

import pytest

from ledger_kernel.domain.workflow import Transition, Workflow
from ledger_modules.documents.models import DocumentStatus
from ledger_modules.documents.workflows import (
    CLAIM_AVAILABLE,
    DELETED_STATE,
    DOCUMENT_WORKFLOW,
    REVIEWER_HOLDS_CLAIM,
)
from ledger_modules.pricing.models import PriceAlertStatus
from ledger_modules.pricing.workflows import PRICE_ALERT_WORKFLOW


class TestDocumentWorkflow:

    def test_states_cover_persisted_statuses(self):
        persisted = {s.value for s in DocumentStatus}
        assert persisted | {DELETED_STATE} == set(DOCUMENT_WORKFLOW.states)

    def test_initial_state_is_pending(self):
        assert DOCUMENT_WORKFLOW.initial_state == "pending"

    @pytest.mark.parametrize(
        ("from_state", "action", "to_state", "guard"),
        [
            ("pending", "select", "reviewing", CLAIM_AVAILABLE),
            ("reviewing", "select", "reviewing", CLAIM_AVAILABLE),
            ("reviewing", "skip", "pending", REVIEWER_HOLDS_CLAIM),
            ("reviewing", "approve", "approved", REVIEWER_HOLDS_CLAIM),
            ("reviewing", "reject", "rejected", REVIEWER_HOLDS_CLAIM),
            ("pending", "delete", DELETED_STATE, None),
            ("reviewing", "delete", DELETED_STATE, CLAIM_AVAILABLE),
        ],
    )
    def test_legal_edges(self, from_state, action, to_state, guard):
        transition = DOCUMENT_WORKFLOW.find_transition(from_state, action)
        assert transition is not None
        assert transition.to_state == to_state
        assert transition.guard is guard

    @pytest.mark.parametrize(
        ("from_state", "action"),
        [
            ("pending", "approve"),
            ("pending", "reject"),
            ("pending", "skip"),
        ],
    )
    def test_decisions_require_reviewing(self, from_state, action):
        assert DOCUMENT_WORKFLOW.find_transition(from_state, action) is None

    @pytest.mark.parametrize("state", ["approved", "rejected"])
    def test_terminal_states_have_no_actions(self, state):
        assert DOCUMENT_WORKFLOW.is_terminal(state)
        assert DOCUMENT_WORKFLOW.actions_from(state) == ()

    def test_only_approval_materializes(self):
        materializing = [t for t in DOCUMENT_WORKFLOW.transitions if t.materializes]
        assert len(materializing) == 1
        assert (materializing[0].from_state, materializing[0].to_state) == ("reviewing", "approved")


class TestPriceAlertWorkflow:

    def test_states_match_enum(self):
        assert set(PRICE_ALERT_WORKFLOW.states) == {s.value for s in PriceAlertStatus}

    def test_forward_edges(self):
        assert PRICE_ALERT_WORKFLOW.find_transition("unread", "mark_read").to_state == "read"
        assert PRICE_ALERT_WORKFLOW.find_transition("unread", "dismiss").to_state == "dismissed"
        assert PRICE_ALERT_WORKFLOW.find_transition("read", "dismiss").to_state == "dismissed"

    def test_no_backwards_edges(self):
        assert PRICE_ALERT_WORKFLOW.find_transition("read", "mark_read") is None
        assert PRICE_ALERT_WORKFLOW.find_transition("dismissed", "mark_read") is None
        assert PRICE_ALERT_WORKFLOW.is_terminal("dismissed")


class TestWorkflowConstruction:

    def test_unknown_initial_state(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(
                name="w", description="", initial_state="x",
                states=("a",), transitions=(),
            )

    def test_transition_to_unknown_state(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="w", description="", initial_state="a",
                states=("a",), transitions=(Transition("a", "b", action="go"),),
            )

    def test_unknown_terminal_state(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="w", description="", initial_state="a",
                states=("a",), transitions=(), terminal_states=("z",),
            )
