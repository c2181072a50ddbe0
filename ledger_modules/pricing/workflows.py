"""
Price Alert Workflow (``ledger_modules.pricing.workflows``).

Alerts are created ``unread`` by the price tracker and only ever move
forward: a reviewer reads them and may dismiss them.
"""

from ledger_kernel.domain.workflow import Transition, Workflow

PRICE_ALERT_WORKFLOW = Workflow(
    name="price_alert",
    description="Reviewer handling of a price change alert",
    initial_state="unread",
    states=("unread", "read", "dismissed"),
    transitions=(
        Transition("unread", "read", action="mark_read"),
        Transition("unread", "dismissed", action="dismiss"),
        Transition("read", "dismissed", action="dismiss"),
    ),
    terminal_states=("dismissed",),
)
