"""
Kernel Invariants Contract.

These invariants are structural law for the tenancy kernel. No
configuration value may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across TenancyRegistry, OccupancyCounter,
BillLedger, LedgerStore, the store implementations and
db/immutability. ConsistencySelector reports violations found in
stored data.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    SINGLE_ACTIVE_STAY = "single_active_stay"
    """A tenant has at most one ACTIVE stay. Checked by TenancyRegistry
    and re-checked at creation by a store-level unique constraint."""

    SINGLE_PENDING_REQUEST = "single_pending_request"
    """A tenant has at most one pending verification request. Checked by
    submit_request and backed by a store-level unique constraint."""

    OCCUPANCY_BOUNDS = "occupancy_bounds"
    """0 <= occupied_units <= total_units for every property. Enforced by
    the atomic clamped counter update in the store."""

    OCCUPANCY_MATCHES_STAYS = "occupancy_matches_stays"
    """Every ACTIVE stay holds exactly one unit on its property. Maintained
    by the approve / end_stay sagas."""

    SINGLE_SETTLEMENT = "single_settlement"
    """A bill moves PENDING -> PAID exactly once. Enforced by a store
    compare-and-set on the bill status."""

    LEDGER_APPEND_ONLY = "ledger_append_only"
    """History entries are never updated or deleted. Enforced by the store
    and by ORM listeners (tenancy_kernel.db.immutability)."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "fastapi",
    "flask",
    "jwt",
)
