"""
Typed Exception Hierarchy for the Tenancy Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Route handlers sitting on top of the kernel must map every failure to a
response without parsing message strings. Every exception therefore:
  1. Has its own class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (tenant_id, bill_id, ...)

Example:
    try:
        orchestrator.settle_bill(actor, bill_id)
    except BillAlreadyPaidError as e:
        return {"error": e.code, "bill_id": str(e.bill_id)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TenancyKernelError (base)
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- StayNotFoundError
    |   +-- PropertyNotFoundError
    |   +-- BillNotFoundError
    |   +-- UserNotFoundError
    |   +-- NotificationNotFoundError
    |
    +-- UnauthorizedError
    |
    +-- ForbiddenError
    |   +-- NotOwnerError
    |   +-- RoleNotPermittedError
    |   +-- AccountRevokedError
    |
    +-- ConflictError
    |   +-- DuplicatePendingRequestError
    |   +-- ActiveStayExistsError
    |   +-- NoActiveStayError
    |   +-- StayNotActiveError
    |   +-- BillAlreadyPaidError
    |   +-- InvalidTransitionError
    |
    +-- ValidationError
    |
    +-- PartialFailureError
    |
    +-- ImmutabilityViolationError
    |
    +-- StoreError
        +-- UniqueConstraintError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|------------------------------------------
Not found    | REQUEST_NOT_FOUND         | Verification request id doesn't exist
             | STAY_NOT_FOUND            | Tenant stay id doesn't exist
             | PROPERTY_NOT_FOUND        | Property id doesn't exist
             | BILL_NOT_FOUND            | Bill id doesn't exist
             | USER_NOT_FOUND            | User id doesn't exist
             | NOTIFICATION_NOT_FOUND    | Notification id doesn't exist
-------------|---------------------------|------------------------------------------
Auth         | UNAUTHORIZED              | No authenticated actor supplied
             | NOT_OWNER                 | Actor does not own the record
             | ROLE_NOT_PERMITTED        | Actor's role cannot run the operation
             | ACCOUNT_REVOKED           | Tenant account was removed
-------------|---------------------------|------------------------------------------
Conflict     | DUPLICATE_PENDING_REQUEST | Tenant already has a pending request
             | ACTIVE_STAY_EXISTS        | Tenant already has an ACTIVE stay
             | NO_ACTIVE_STAY            | Move-out with nothing to end
             | STAY_NOT_ACTIVE           | Stay already MOVED_OUT
             | BILL_ALREADY_PAID         | Second settlement of a bill
             | INVALID_TRANSITION        | Illegal request state transition
-------------|---------------------------|------------------------------------------
Validation   | VALIDATION_ERROR          | Missing or malformed input
-------------|---------------------------|------------------------------------------
Saga         | PARTIAL_FAILURE           | A later step failed after earlier writes
-------------|---------------------------|------------------------------------------
Ledger       | IMMUTABILITY_VIOLATION    | Update/delete of an append-only record
-------------|---------------------------|------------------------------------------
Store        | STORE_ERROR               | Backend failure
             | UNIQUE_CONSTRAINT         | Store-level uniqueness rule violated

===============================================================================
"""

from __future__ import annotations

from typing import Any


class TenancyKernelError(Exception):
    """
    Base exception for all tenancy kernel errors.

    All subclasses define a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TENANCY_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(TenancyKernelError):
    """Base exception for a referenced entity that is absent."""

    code: str = "NOT_FOUND"

    entity_type: str = "Record"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class RequestNotFoundError(NotFoundError):
    """Verification request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"
    entity_type = "VerificationRequest"


class StayNotFoundError(NotFoundError):
    """Tenant stay with given ID was not found."""

    code: str = "STAY_NOT_FOUND"
    entity_type = "TenantStay"


class PropertyNotFoundError(NotFoundError):
    """Property with given ID was not found."""

    code: str = "PROPERTY_NOT_FOUND"
    entity_type = "Property"


class BillNotFoundError(NotFoundError):
    """Bill with given ID was not found."""

    code: str = "BILL_NOT_FOUND"
    entity_type = "Bill"


class UserNotFoundError(NotFoundError):
    """User with given ID was not found."""

    code: str = "USER_NOT_FOUND"
    entity_type = "User"


class NotificationNotFoundError(NotFoundError):
    """Notification with given ID was not found."""

    code: str = "NOTIFICATION_NOT_FOUND"
    entity_type = "Notification"


# Authentication / authorization exceptions


class UnauthorizedError(TenancyKernelError):
    """No authenticated actor was supplied to the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Authentication required for {operation}")


class ForbiddenError(TenancyKernelError):
    """Base exception for an authenticated actor that may not act."""

    code: str = "FORBIDDEN"


class NotOwnerError(ForbiddenError):
    """
    Actor is authenticated but does not own the record.

    Raised before any mutation; no partial state is created.
    """

    code: str = "NOT_OWNER"

    def __init__(self, entity_type: str, entity_id: Any, actor_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.actor_id = actor_id
        super().__init__(
            f"Actor {actor_id} does not own {entity_type} {entity_id}"
        )


class RoleNotPermittedError(ForbiddenError):
    """Actor's role may not run the operation."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, operation: str, role: str, required_role: str):
        self.operation = operation
        self.role = role
        self.required_role = required_role
        super().__init__(
            f"Role '{role}' cannot run {operation} (requires '{required_role}')"
        )


class AccountRevokedError(ForbiddenError):
    """Tenant's platform access was revoked by a stay termination."""

    code: str = "ACCOUNT_REVOKED"

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(f"Account {user_id} has been removed from the platform")


# Conflict (invariant violation) exceptions


class ConflictError(TenancyKernelError):
    """Base exception for invariant violations."""

    code: str = "CONFLICT"


class DuplicatePendingRequestError(ConflictError):
    """Tenant already has a pending verification request."""

    code: str = "DUPLICATE_PENDING_REQUEST"

    def __init__(self, tenant_id: Any, existing_request_id: Any = None):
        self.tenant_id = tenant_id
        self.existing_request_id = existing_request_id
        super().__init__(
            f"Tenant {tenant_id} already has a pending verification request"
        )


class ActiveStayExistsError(ConflictError):
    """Tenant already has an ACTIVE stay; they must move out first."""

    code: str = "ACTIVE_STAY_EXISTS"

    def __init__(self, tenant_id: Any, stay_id: Any = None):
        self.tenant_id = tenant_id
        self.stay_id = stay_id
        super().__init__(
            f"Tenant {tenant_id} already has an active tenancy. "
            "They must move out first."
        )


class NoActiveStayError(ConflictError):
    """Tenant has no ACTIVE stay to end."""

    code: str = "NO_ACTIVE_STAY"

    def __init__(self, tenant_id: Any):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} has no active stay")


class StayNotActiveError(ConflictError):
    """Stay exists but is already MOVED_OUT."""

    code: str = "STAY_NOT_ACTIVE"

    def __init__(self, stay_id: Any, status: str):
        self.stay_id = stay_id
        self.status = status
        super().__init__(f"Stay {stay_id} is not active (status: {status})")


class BillAlreadyPaidError(ConflictError):
    """Bill was already settled; settlement is not repeated."""

    code: str = "BILL_ALREADY_PAID"

    def __init__(self, bill_id: Any, paid_at: Any = None):
        self.bill_id = bill_id
        self.paid_at = paid_at
        super().__init__(f"Bill {bill_id} is already paid")


class InvalidTransitionError(ConflictError):
    """Requested state transition is not allowed by the workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: Any, from_state: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state '{from_state}'"
        )


# Validation


class ValidationError(TenancyKernelError):
    """
    Malformed or missing input.

    field_errors is a list of {"field": ..., "message": ...} dicts.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, field_errors: list[dict[str, str]]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Validation failed: {fields}")


# Saga


class PartialFailureError(TenancyKernelError):
    """
    A multi-step operation failed after at least one write succeeded.

    Earlier writes are NOT rolled back. completed_steps names every step
    that finished so an operator can reconcile.
    """

    code: str = "PARTIAL_FAILURE"

    def __init__(
        self,
        operation: str,
        completed_steps: list[str],
        failed_step: str,
        cause: BaseException,
    ):
        self.operation = operation
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.cause = cause
        done = ", ".join(completed_steps)
        super().__init__(
            f"{operation} partially applied: completed [{done}] "
            f"but '{failed_step}' failed: {cause}"
        )


# Ledger immutability


class ImmutabilityViolationError(TenancyKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Store


class StoreError(TenancyKernelError):
    """Base exception for storage backend failures."""

    code: str = "STORE_ERROR"


class UniqueConstraintError(StoreError):
    """A store-level uniqueness rule rejected the write."""

    code: str = "UNIQUE_CONSTRAINT"

    def __init__(self, kind: str, constraint: str, record_id: Any):
        self.kind = kind
        self.constraint = constraint
        self.record_id = record_id
        super().__init__(
            f"Unique constraint {constraint} violated by {kind} {record_id}"
        )
