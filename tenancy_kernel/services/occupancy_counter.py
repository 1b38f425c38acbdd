"""
OccupancyCounter -- bounded per-property occupancy counter.

Responsibility:
    The only writer of ``Property.occupied_units``.  Every change is a
    single atomic store-level adjustment clamped to ``[0, total_units]``.

Architecture position:
    Kernel > Services.  Called by the registry's approve and end-stay sagas.

Invariants enforced:
    - 0 <= occupied_units <= total_units after every call.
    - Read-modify-write happens against the stored value inside the store,
      never against a snapshot held by the caller.

Failure modes:
    - PropertyNotFoundError for an unknown property.
    - Saturation (increment at capacity, decrement at zero) never raises;
      it is logged at WARNING because it indicates counter drift.
"""

from uuid import UUID

from tenancy_kernel.domain.records import PropertyOccupancy
from tenancy_kernel.exceptions import PropertyNotFoundError
from tenancy_kernel.invariants import KernelInvariant
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.store.base import RecordKind

logger = get_logger("services.occupancy_counter")


class OccupancyCounter(BaseService):
    """Atomic, clamped occupancy counter."""

    def increment(self, property_id: UUID) -> int:
        """Occupy one unit; returns the new occupied count."""
        return self._adjust(property_id, 1)

    def decrement(self, property_id: UUID) -> int:
        """Free one unit; returns the new occupied count."""
        return self._adjust(property_id, -1)

    def current(self, property_id: UUID) -> PropertyOccupancy:
        prop = self.store.get(RecordKind.PROPERTY, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        return PropertyOccupancy(
            property_id=prop.id,
            total_units=prop.total_units,
            occupied_units=prop.occupied_units,
        )

    def _adjust(self, property_id: UUID, delta: int) -> int:
        update = self.store.adjust_counter(property_id, delta)
        if update.saturated:
            logger.warning(
                "occupancy_saturated",
                extra={
                    "invariant": KernelInvariant.OCCUPANCY_BOUNDS.value,
                    "property_id": str(property_id),
                    "delta": delta,
                    "occupied_units": update.value,
                    "total_units": update.total_units,
                },
            )
        else:
            logger.info(
                "occupancy_adjusted",
                extra={
                    "property_id": str(property_id),
                    "delta": delta,
                    "occupied_units": update.value,
                },
            )
        return update.value
