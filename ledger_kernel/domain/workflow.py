"""
Canonical workflow types (``ledger_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for status state machines.  The document lifecycle and
the price alert lifecycle are both declared with these types so that legal
edges live in one table instead of in scattered ``if status == ...`` checks.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/`` or outer layers.

Invariants enforced
-------------------
* ``Workflow.__post_init__`` rejects transitions that reference unknown
  states and an ``initial_state`` outside ``states``.
* Terminal states have no outgoing transitions except those explicitly
  listed in the workflow.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.  The service that executes the
    transition evaluates the condition.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``materializes=True`` marks the single edge that writes ledger records.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    materializes: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state '{self.initial_state}' not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.action} "
                    f"{t.from_state}->{t.to_state} references unknown state"
                )
        for state in self.terminal_states:
            if state not in self.states:
                raise ValueError(f"{self.name}: terminal state '{state}' not in states")

    def find_transition(self, current_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` out of ``current_state``, if any."""
        for t in self.transitions:
            if t.from_state == current_state and t.action == action:
                return t
        return None

    def actions_from(self, current_state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == current_state)

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states
