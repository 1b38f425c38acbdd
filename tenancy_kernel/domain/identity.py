"""
Actor identity handed to the kernel by the (external) auth layer.

The kernel never authenticates.  It receives an already-verified
``Actor`` and performs role and ownership checks against it.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from tenancy_kernel.domain.records import Role
from tenancy_kernel.exceptions import RoleNotPermittedError, UnauthorizedError


@dataclass(frozen=True)
class Actor:
    """An authenticated (actor_id, role) pair."""
    actor_id: UUID
    role: Role

    @property
    def is_landlord(self) -> bool:
        return self.role == Role.LANDLORD

    @property
    def is_tenant(self) -> bool:
        return self.role == Role.TENANT


def require_actor(actor: Actor | None, operation: str, role: Role | None = None) -> Actor:
    """
    Return ``actor`` if it may run ``operation``.

    Raises:
        UnauthorizedError: No actor was supplied.
        RoleNotPermittedError: ``role`` is given and the actor holds another.
    """
    if actor is None:
        raise UnauthorizedError(operation)
    if role is not None and actor.role != role:
        raise RoleNotPermittedError(operation, actor.role.value, role.value)
    return actor
