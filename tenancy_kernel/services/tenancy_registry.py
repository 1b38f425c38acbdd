"""
TenancyRegistry -- verification requests and tenant stays.

Responsibility:
    Applies tenant submissions and landlord decisions to verification
    requests, creates a TenantStay on approval and ends stays through one
    termination path.  Each mutating operation is an explicit ``Saga``:

        approve:   create_stay -> increment_occupancy -> approve_request
                   -> append_joined -> notify
        reject:    reject_request -> notify
        move_out:  end_stay -> decrement_occupancy -> append_move_out
                   -> move_out_request -> notify
        end_stay:  end_stay -> decrement_occupancy [-> revoke_access]
                   -> append_move_out -> notify

Architecture position:
    Kernel > Services.  Called by TenancyOrchestrator.

Invariants enforced:
    - SINGLE_ACTIVE_STAY: checked before the saga starts and re-checked at
      the point of creation by the store's unique rule; the loser of a race
      gets ActiveStayExistsError with nothing written.
    - SINGLE_PENDING_REQUEST: query-then-insert in submit_request, backed by
      the store's unique rule.
    - Ownership and state checks run before the first write.
    - OCCUPANCY_MATCHES_STAYS: every ACTIVE/MOVED_OUT transition moves
      exactly one unit and appends exactly one ledger entry.

Failure modes:
    - NotFoundError, ForbiddenError, ConflictError, ValidationError before
      any mutation.
    - PartialFailureError when a step after the first write fails.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from tenancy_kernel.config import EngineConfig, load_config
from tenancy_kernel.domain.clock import Clock
from tenancy_kernel.domain.identity import Actor, require_actor
from tenancy_kernel.domain.records import (
    Decision,
    HistoryType,
    PaymentDetails,
    RequestStatus,
    Role,
    StayStatus,
    TenantIdentity,
    TenantStay,
    UserStatus,
    VerificationRequest,
)
from tenancy_kernel.domain.validation import aware_datetime_field, decimal_field, enum_field
from tenancy_kernel.domain.workflow import (
    TENANT_STAY_WORKFLOW,
    VERIFICATION_REQUEST_WORKFLOW,
    Transition,
)
from tenancy_kernel.exceptions import (
    AccountRevokedError,
    ActiveStayExistsError,
    DuplicatePendingRequestError,
    InvalidTransitionError,
    NoActiveStayError,
    NotOwnerError,
    PropertyNotFoundError,
    RequestNotFoundError,
    StayNotActiveError,
    StayNotFoundError,
    UniqueConstraintError,
    ValidationError,
)
from tenancy_kernel.invariants import KernelInvariant
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.services.ledger_store import LedgerStore
from tenancy_kernel.services.notifier import Notifier, StoreNotifier, notify_from_template
from tenancy_kernel.services.occupancy_counter import OccupancyCounter
from tenancy_kernel.services.saga import Saga
from tenancy_kernel.store.base import RecordKind, RecordStore

logger = get_logger("services.tenancy_registry")

# Landlord-supplied fields a decision may carry onto the request.
DECISION_EXTRA_FIELDS = frozenset({"rent_notes", "utility_details"})

JOINED_DESCRIPTION = "Tenant verified and joined the property."
MOVED_OUT_DESCRIPTION = "Tenant has moved out from the property."
TERMINATED_DESCRIPTION = "Resident moved out from {property_name}. Stay finalized."


class TenancyRegistry(BaseService):
    """
    Verification request and stay lifecycle.

    Contract:
        Every public method either raises before writing anything, completes
        every step, or raises PartialFailureError naming the completed steps.
        Notification is always last and never fails the operation.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        occupancy: OccupancyCounter | None = None,
        ledger: LedgerStore | None = None,
        notifier: Notifier | None = None,
        config: EngineConfig | None = None,
    ):
        super().__init__(store, clock)
        self._occupancy = occupancy or OccupancyCounter(store, self._clock)
        self._ledger = ledger or LedgerStore(store, self._clock)
        self._notifier = notifier or StoreNotifier(store, self._clock)
        self._config = config or load_config()

    # ------------------------------------------------------------------
    # Reads used by the write paths
    # ------------------------------------------------------------------

    def get_active_stay(self, tenant_id: UUID) -> TenantStay | None:
        return self.store.first(RecordKind.STAY, tenant_id=tenant_id, status=StayStatus.ACTIVE)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_request(
        self,
        actor: Actor,
        property_id: UUID,
        identity: TenantIdentity,
        payment: PaymentDetails | None = None,
        remarks: str | None = None,
    ) -> VerificationRequest:
        """
        Store a new pending verification request for the acting tenant.

        Raises:
            UnauthorizedError / RoleNotPermittedError: actor missing or not a tenant.
            ValidationError: an identity field is missing or blank.
            PropertyNotFoundError: property does not exist.
            AccountRevokedError: the tenant's account was removed.
            DuplicatePendingRequestError: the tenant already has a pending request.
        """
        actor = require_actor(actor, "submit_request", Role.TENANT)
        payment = payment or PaymentDetails()

        errors = identity.field_errors()
        decimal_field(errors, "payment_amount", payment.payment_amount, required=False)
        if errors:
            raise ValidationError(errors)

        prop = self.store.get(RecordKind.PROPERTY, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)

        user = self.store.get(RecordKind.USER, actor.actor_id)
        if user is not None and user.status == UserStatus.REMOVED:
            raise AccountRevokedError(actor.actor_id)

        existing = self.store.first(
            RecordKind.REQUEST,
            tenant_id=actor.actor_id,
            status=RequestStatus.PENDING,
        )
        if existing is not None:
            raise DuplicatePendingRequestError(actor.actor_id, existing.id)

        request = VerificationRequest(
            id=uuid4(),
            tenant_id=actor.actor_id,
            landlord_id=prop.landlord_id,
            property_id=prop.id,
            full_name=identity.full_name,
            mobile=identity.mobile,
            id_proof_type=identity.id_proof_type,
            id_proof_number=identity.id_proof_number,
            city=identity.city,
            status=RequestStatus.PENDING,
            submitted_at=self._clock.now(),
            remarks=remarks,
            payment_status=payment.payment_status or "pending",
            payment_amount=payment.payment_amount,
            transaction_id=payment.transaction_id,
        )
        try:
            stored = self.store.put(RecordKind.REQUEST, request)
        except UniqueConstraintError as exc:
            # Lost a concurrent submission race
            raise DuplicatePendingRequestError(actor.actor_id) from exc

        logger.info(
            "verification_request_submitted",
            extra={
                "request_id": str(stored.id),
                "tenant_id": str(stored.tenant_id),
                "landlord_id": str(stored.landlord_id),
                "property_id": str(stored.property_id),
            },
        )
        return stored

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def decide_request(
        self,
        actor: Actor,
        request_id: UUID,
        decision: Decision | str,
        remarks: str | None = None,
        joining_date: datetime | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> VerificationRequest:
        """
        Apply a landlord decision (approve, reject, move_out) to a request.

        Raises:
            RequestNotFoundError: no such request.
            NotOwnerError: the actor is not the request's landlord.
            ValidationError: unknown decision, naive joining_date or
                unsupported extra fields.
            InvalidTransitionError: the decision is not legal from the
                request's current state.
            ActiveStayExistsError: approve while the tenant has an ACTIVE stay.
            NoActiveStayError: move_out with no ACTIVE stay to end.
            PartialFailureError: a step after the first write failed.
        """
        actor = require_actor(actor, "decide_request")
        request = self.store.get(RecordKind.REQUEST, request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        if request.landlord_id != actor.actor_id:
            raise NotOwnerError("VerificationRequest", request_id, actor.actor_id)

        errors: list[dict[str, str]] = []
        decision = enum_field(errors, "decision", Decision, decision)
        joining_date = aware_datetime_field(errors, "joining_date", joining_date)
        extra = dict(extra or {})
        for key in sorted(set(extra) - DECISION_EXTRA_FIELDS):
            errors.append({"field": key, "message": "is not a supported decision field"})
        if errors:
            raise ValidationError(errors)

        changes: dict[str, Any] = {
            k: v for k, v in extra.items() if v is not None
        }
        if remarks is not None:
            changes["remarks"] = remarks

        if decision == Decision.MOVE_OUT:
            return self._move_out(actor, request, changes)

        self._require_transition(request, decision)
        if decision == Decision.APPROVE:
            return self._approve(actor, request, joining_date, changes)
        return self._reject(request, remarks, changes)

    def _require_transition(self, request: VerificationRequest, decision: Decision) -> Transition:
        transition = VERIFICATION_REQUEST_WORKFLOW.find_transition(
            request.status.value, decision.value
        )
        if transition is None:
            raise InvalidTransitionError(
                "VerificationRequest", request.id, request.status.value, decision.value
            )
        return transition

    def _approve(
        self,
        actor: Actor,
        request: VerificationRequest,
        joining_date: datetime | None,
        changes: dict[str, Any],
    ) -> VerificationRequest:
        active = self.get_active_stay(request.tenant_id)
        if active is not None:
            raise ActiveStayExistsError(request.tenant_id, active.id)

        now = self._clock.now()
        stay = TenantStay(
            id=uuid4(),
            tenant_id=request.tenant_id,
            landlord_id=request.landlord_id,
            property_id=request.property_id,
            join_date=joining_date or now,
            request_id=request.id,
        )
        changes.update(
            status=RequestStatus.APPROVED,
            updated_at=now,
            verified_at=request.verified_at or now,
            joining_date=stay.join_date,
        )

        saga = Saga("approve_request")
        saga.step("create_stay", self._create_stay, stay)
        saga.step("increment_occupancy", self._occupancy.increment, request.property_id)
        approved = saga.step(
            "approve_request",
            self._transition_request,
            request,
            RequestStatus.PENDING,
            Decision.APPROVE,
            changes,
        )
        saga.step(
            "append_joined",
            self._ledger.record,
            request.tenant_id,
            HistoryType.JOINED,
            JOINED_DESCRIPTION,
            actor.actor_id,
            occurred_at=now,
        )
        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            self._config.template("request_approved"),
            request.tenant_id,
            Role.TENANT,
        )

        logger.info(
            "verification_request_approved",
            extra={
                "request_id": str(request.id),
                "stay_id": str(stay.id),
                "tenant_id": str(request.tenant_id),
                "property_id": str(request.property_id),
            },
        )
        return approved

    def _reject(
        self,
        request: VerificationRequest,
        remarks: str | None,
        changes: dict[str, Any],
    ) -> VerificationRequest:
        changes.update(status=RequestStatus.REJECTED, updated_at=self._clock.now())

        saga = Saga("reject_request")
        rejected = saga.step(
            "reject_request",
            self._transition_request,
            request,
            RequestStatus.PENDING,
            Decision.REJECT,
            changes,
        )
        template = "request_rejected_with_reason" if remarks else "request_rejected"
        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            self._config.template(template),
            request.tenant_id,
            Role.TENANT,
            remarks=remarks,
        )

        logger.info(
            "verification_request_rejected",
            extra={"request_id": str(request.id), "tenant_id": str(request.tenant_id)},
        )
        return rejected

    def _move_out(
        self,
        actor: Actor,
        request: VerificationRequest,
        changes: dict[str, Any],
    ) -> VerificationRequest:
        stay = self.get_active_stay(request.tenant_id)
        if (
            stay is None
            or stay.landlord_id != request.landlord_id
            or stay.request_id not in (None, request.id)
        ):
            # no ACTIVE stay that this request created
            raise NoActiveStayError(request.tenant_id)
        self._require_transition(request, Decision.MOVE_OUT)

        saga = Saga("move_out_request")
        self._end_stay_steps(saga, actor, stay, revoke_access=False)
        changes.update(status=RequestStatus.MOVED_OUT, updated_at=self._clock.now())
        moved_out = saga.step(
            "move_out_request",
            self._transition_request,
            request,
            RequestStatus.APPROVED,
            Decision.MOVE_OUT,
            changes,
        )
        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            self._config.template("stay_moved_out"),
            request.tenant_id,
            Role.TENANT,
        )
        return moved_out

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def end_stay(self, actor: Actor, stay_id: UUID, revoke_access: bool = False) -> TenantStay:
        """
        End an ACTIVE stay owned by the acting landlord.

        ``revoke_access`` additionally marks the tenant's account removed.

        Raises:
            StayNotFoundError, NotOwnerError, StayNotActiveError,
            PartialFailureError.
        """
        actor = require_actor(actor, "end_stay")
        stay = self.store.get(RecordKind.STAY, stay_id)
        if stay is None:
            raise StayNotFoundError(stay_id)
        if stay.landlord_id != actor.actor_id:
            raise NotOwnerError("TenantStay", stay_id, actor.actor_id)
        if not stay.is_active:
            raise StayNotActiveError(stay.id, stay.status.value)

        saga = Saga("end_stay")
        ended = self._end_stay_steps(saga, actor, stay, revoke_access)
        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            self._config.template("stay_terminated" if revoke_access else "stay_moved_out"),
            stay.tenant_id,
            Role.TENANT,
        )
        return ended

    def end_stay_direct(self, actor: Actor, stay_id: UUID) -> TenantStay:
        """Administrative termination: ends the stay and revokes platform access."""
        return self.end_stay(actor, stay_id, revoke_access=True)

    def _end_stay_steps(
        self,
        saga: Saga,
        actor: Actor,
        stay: TenantStay,
        revoke_access: bool,
    ) -> TenantStay:
        now = self._clock.now()
        if revoke_access:
            prop = self.store.get(RecordKind.PROPERTY, stay.property_id)
            description = TERMINATED_DESCRIPTION.format(
                property_name=prop.name if prop is not None else "the property"
            )
        else:
            description = MOVED_OUT_DESCRIPTION

        ended = saga.step("end_stay", self._mark_moved_out, stay, now)
        saga.step("decrement_occupancy", self._occupancy.decrement, stay.property_id)
        if revoke_access:
            saga.step("revoke_access", self._revoke_access, stay.tenant_id)
        saga.step(
            "append_move_out",
            self._ledger.record,
            stay.tenant_id,
            HistoryType.MOVE_OUT,
            description,
            actor.actor_id,
            occurred_at=now,
        )

        logger.info(
            "stay_ended",
            extra={
                "stay_id": str(stay.id),
                "tenant_id": str(stay.tenant_id),
                "property_id": str(stay.property_id),
                "revoke_access": revoke_access,
            },
        )
        return ended

    # ------------------------------------------------------------------
    # Single-record steps
    # ------------------------------------------------------------------

    def _create_stay(self, stay: TenantStay) -> TenantStay:
        try:
            created = self.store.put(RecordKind.STAY, stay)
        except UniqueConstraintError as exc:
            logger.warning(
                "active_stay_race_lost",
                extra={
                    "invariant": KernelInvariant.SINGLE_ACTIVE_STAY.value,
                    "tenant_id": str(stay.tenant_id),
                },
            )
            raise ActiveStayExistsError(stay.tenant_id) from exc
        logger.info(
            "stay_created",
            extra={"stay_id": str(created.id), "tenant_id": str(created.tenant_id)},
        )
        return created

    def _mark_moved_out(self, stay: TenantStay, now: datetime) -> TenantStay:
        if TENANT_STAY_WORKFLOW.find_transition(stay.status.value, "end") is None:
            raise StayNotActiveError(stay.id, stay.status.value)
        ended = self.store.compare_and_set(
            RecordKind.STAY,
            stay.id,
            {"status": stay.status},
            {"status": StayStatus.MOVED_OUT, "move_out_date": now},
        )
        if ended is None:
            current = self.store.get(RecordKind.STAY, stay.id)
            if current is None:
                raise StayNotFoundError(stay.id)
            raise StayNotActiveError(stay.id, current.status.value)
        return ended

    def _transition_request(
        self,
        request: VerificationRequest,
        expected: RequestStatus,
        decision: Decision,
        changes: dict[str, Any],
    ) -> VerificationRequest:
        updated = self.store.compare_and_set(
            RecordKind.REQUEST, request.id, {"status": expected}, changes
        )
        if updated is None:
            current = self.store.get(RecordKind.REQUEST, request.id)
            if current is None:
                raise RequestNotFoundError(request.id)
            raise InvalidTransitionError(
                "VerificationRequest", request.id, current.status.value, decision.value
            )
        return updated

    def _revoke_access(self, tenant_id: UUID) -> None:
        user = self.store.get(RecordKind.USER, tenant_id)
        if user is None:
            logger.warning("revoke_access_user_missing", extra={"tenant_id": str(tenant_id)})
            return
        self.store.compare_and_set(
            RecordKind.USER, tenant_id, {}, {"status": UserStatus.REMOVED}
        )
        logger.info("tenant_access_revoked", extra={"tenant_id": str(tenant_id)})
