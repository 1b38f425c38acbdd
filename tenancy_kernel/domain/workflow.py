"""
Canonical workflow types (``tenancy_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for record state machines, plus the verification
request, tenant stay and bill lifecycles themselves.  The registry and
the bill ledger consult these definitions instead of hard-coding
allowed transitions.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``terminal_states`` have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from tenancy_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a record lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``action`` out of ``from_state``, if legal."""
        for transition in self.transitions:
            if transition.from_state == from_state and transition.action == action:
                return transition
        return None

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states


VERIFICATION_REQUEST_WORKFLOW = Workflow(
    name="verification_request",
    description="Tenant verification request lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected", "moved_out"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
        Transition("approved", "moved_out", action="move_out"),
    ),
    terminal_states=("rejected", "moved_out"),
)


TENANT_STAY_WORKFLOW = Workflow(
    name="tenant_stay",
    description="Tenant stay lifecycle",
    initial_state="ACTIVE",
    states=("ACTIVE", "MOVED_OUT"),
    transitions=(
        Transition("ACTIVE", "MOVED_OUT", action="end"),
    ),
    terminal_states=("MOVED_OUT",),
)


BILL_WORKFLOW = Workflow(
    name="bill",
    description="Bill settlement lifecycle",
    initial_state="PENDING",
    states=("PENDING", "OVERDUE", "PAID"),
    transitions=(
        Transition("PENDING", "PAID", action="settle"),
        # OVERDUE is normally derived on read, but callers may store it
        Transition("OVERDUE", "PAID", action="settle"),
    ),
    terminal_states=("PAID",),
)


for _workflow in (VERIFICATION_REQUEST_WORKFLOW, TENANT_STAY_WORKFLOW, BILL_WORKFLOW):
    logger.debug(
        "workflow_registered",
        extra={
            "workflow_name": _workflow.name,
            "state_count": len(_workflow.states),
            "transition_count": len(_workflow.transitions),
        },
    )
