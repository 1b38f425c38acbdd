"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor for every service in the kernel layer.
    Services receive a ``RecordStore`` and a ``Clock``; they never open
    sessions or transactions themselves.

Architecture position:
    Kernel > Services -- imperative shell over the pure domain layer.

Invariants enforced:
    - Every store call is individually atomic.  Services that issue more
      than one mutating call do so through a ``Saga`` so partial progress
      is reported, never hidden.
    - Timestamps come from the injected clock, never ``datetime.now()``.
"""

from abc import ABC

from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.store.base import RecordStore


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT provide read-side listings; those belong in
          ``tenancy_kernel/selectors/``.
    """

    def __init__(self, store: RecordStore, clock: Clock | None = None):
        """
        Args:
            store: Record store holding every engine record.
            clock: Clock for timestamps. Defaults to SystemClock.
        """
        self.store = store
        self._clock = clock or SystemClock()
