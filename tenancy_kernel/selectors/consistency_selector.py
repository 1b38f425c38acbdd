"""
Module: tenancy_kernel.selectors.consistency_selector
Responsibility: Operator reconciliation.  Scans stored stays and properties
    for states the kernel invariants forbid, typically left behind by a
    PartialFailureError or by writes that bypassed the engine.
Architecture position: Kernel > Selectors.

The selector reports; it never repairs.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from uuid import UUID

from tenancy_kernel.domain.records import StayStatus
from tenancy_kernel.invariants import KernelInvariant
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.selectors.base import BaseSelector
from tenancy_kernel.store.base import RecordKind

logger = get_logger("selectors.consistency")


@dataclass(frozen=True)
class InvariantViolation:
    """One broken invariant on one subject (tenant or property)."""
    invariant: KernelInvariant
    subject_id: UUID
    detail: str


class ConsistencySelector(BaseSelector):
    """Finds stay and occupancy invariant violations in stored data."""

    def find_violations(self) -> list[InvariantViolation]:
        active_stays = self.store.query(RecordKind.STAY, status=StayStatus.ACTIVE)
        violations: list[InvariantViolation] = []

        per_tenant = Counter(stay.tenant_id for stay in active_stays)
        for tenant_id, count in per_tenant.items():
            if count > 1:
                violations.append(InvariantViolation(
                    invariant=KernelInvariant.SINGLE_ACTIVE_STAY,
                    subject_id=tenant_id,
                    detail=f"{count} ACTIVE stays",
                ))

        per_property = Counter(stay.property_id for stay in active_stays)
        for prop in self.store.query(RecordKind.PROPERTY):
            if not 0 <= prop.occupied_units <= prop.total_units:
                violations.append(InvariantViolation(
                    invariant=KernelInvariant.OCCUPANCY_BOUNDS,
                    subject_id=prop.id,
                    detail=f"occupied_units={prop.occupied_units} total_units={prop.total_units}",
                ))
            expected = per_property.get(prop.id, 0)
            if prop.occupied_units != expected:
                violations.append(InvariantViolation(
                    invariant=KernelInvariant.OCCUPANCY_MATCHES_STAYS,
                    subject_id=prop.id,
                    detail=f"occupied_units={prop.occupied_units} active_stays={expected}",
                ))

        if violations:
            logger.warning(
                "invariant_violations_found",
                extra={
                    "count": len(violations),
                    "invariants": sorted({v.invariant.value for v in violations}),
                },
            )
        return violations
