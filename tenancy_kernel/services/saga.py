"""
Saga -- ordered multi-step operation with partial-failure reporting.

Responsibility:
    Runs the steps of one orchestrator operation in order across
    independent records.  There is no rollback: when a step fails after an
    earlier step wrote something, the saga raises ``PartialFailureError``
    naming every completed step and the failed one so an operator can
    reconcile.

Architecture position:
    Kernel > Services.  Used by TenancyRegistry and BillLedger.

Invariants enforced:
    - A failure in the FIRST step propagates unchanged (nothing was written,
      so the caller sees the real Conflict / NotFound).
    - A failure in any later step becomes PartialFailureError.
    - ``notify`` is best-effort and never raises.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from tenancy_kernel.exceptions import PartialFailureError
from tenancy_kernel.logging_config import get_logger

logger = get_logger("services.saga")

T = TypeVar("T")


class Saga:
    """Step runner for one operation."""

    def __init__(self, operation: str):
        self.operation = operation
        self.completed_steps: list[str] = []

    def step(self, name: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` as the step called ``name`` and record its completion."""
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            if not self.completed_steps:
                raise
            logger.error(
                "saga_partial_failure",
                extra={
                    "saga": self.operation,
                    "completed_steps": list(self.completed_steps),
                    "failed_step": name,
                },
                exc_info=True,
            )
            raise PartialFailureError(
                operation=self.operation,
                completed_steps=self.completed_steps,
                failed_step=name,
                cause=exc,
            ) from exc

        self.completed_steps.append(name)
        logger.debug(
            "saga_step_completed",
            extra={"saga": self.operation, "step": name},
        )
        return result

    def notify(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Final best-effort step.  Failures are logged, never raised."""
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.warning(
                "saga_notification_failed",
                extra={"saga": self.operation, "step": name},
                exc_info=True,
            )
