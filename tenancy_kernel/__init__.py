"""
Tenancy Kernel

The tenancy lifecycle and billing ledger engine of the rental portal:
- Verification requests with a landlord-owned state machine
- At most one ACTIVE stay per tenant
- Clamp-safe property occupancy counters
- Bills with idempotent settlement
- Append-only per-tenant history ledger
- Saga-style orchestration with explicit partial-failure reporting
"""

__version__ = "0.1.0"
