"""
Module: tenancy_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.  Selectors
    form the "Q" side of the kernel, providing structured read access to
    stays, bills, history and occupancy without mutation capability.
Architecture position: Kernel > Selectors.  May import from store/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors call only ``get`` and ``query`` on the
      store, never ``put``, ``delete``, ``compare_and_set`` or
      ``adjust_counter``.
    - Return convention: frozen domain records or read-side views.
"""

from abc import ABC

from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.store.base import RecordStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Non-goals:
        - BaseSelector does NOT define any query methods; subclasses
          implement the tenancy and consistency queries.
    """

    def __init__(self, store: RecordStore, clock: Clock | None = None):
        """
        Args:
            store: Record store to read from.
            clock: Clock used for read-time derivations (OVERDUE).
        """
        self.store = store
        self._clock = clock or SystemClock()
