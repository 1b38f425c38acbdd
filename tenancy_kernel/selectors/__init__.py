"""Read-only selectors over the record store."""

from tenancy_kernel.selectors.base import BaseSelector
from tenancy_kernel.selectors.consistency_selector import ConsistencySelector, InvariantViolation
from tenancy_kernel.selectors.tenancy_selector import TenancySelector

__all__ = [
    "BaseSelector",
    "ConsistencySelector",
    "InvariantViolation",
    "TenancySelector",
]
