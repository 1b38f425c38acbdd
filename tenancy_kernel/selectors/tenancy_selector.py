"""
Module: tenancy_kernel.selectors.tenancy_selector
Responsibility: Read accessors exposed by the orchestrator: active stay,
    occupancy, history, bills (with OVERDUE derived at read time) and the
    landlord's current tenants hydrated with display fields.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - OVERDUE is computed from ``due_date < today`` for PENDING bills on
      every read and never written back.
    - History is returned in insertion order.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from tenancy_kernel.domain.records import (
    Bill,
    HistoryEntry,
    LandlordTenantView,
    PropertyOccupancy,
    StayStatus,
    TenantStay,
    VerificationRequest,
)
from tenancy_kernel.exceptions import PropertyNotFoundError, ValidationError
from tenancy_kernel.selectors.base import BaseSelector
from tenancy_kernel.store.base import RecordKind


class TenancySelector(BaseSelector):
    """Read side for stays, occupancy, history and bills."""

    def get_active_stay(self, tenant_id: UUID) -> TenantStay | None:
        return self.store.first(RecordKind.STAY, tenant_id=tenant_id, status=StayStatus.ACTIVE)

    def get_request(self, request_id: UUID) -> VerificationRequest | None:
        return self.store.get(RecordKind.REQUEST, request_id)

    def get_occupancy(self, property_id: UUID) -> PropertyOccupancy:
        prop = self.store.get(RecordKind.PROPERTY, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        return PropertyOccupancy(
            property_id=prop.id,
            total_units=prop.total_units,
            occupied_units=prop.occupied_units,
        )

    def list_history(self, tenant_id: UUID) -> list[HistoryEntry]:
        """Tenant ledger in insertion order."""
        return self.store.query(RecordKind.HISTORY, order_by="sequence", tenant_id=tenant_id)

    def list_bills(
        self,
        tenant_id: UUID | None = None,
        landlord_id: UUID | None = None,
        today: date | None = None,
    ) -> list[Bill]:
        """
        Bills for a tenant and/or landlord, newest first, with OVERDUE derived.

        Raises:
            ValidationError: neither tenant_id nor landlord_id given.
        """
        filters = {}
        if tenant_id is not None:
            filters["tenant_id"] = tenant_id
        if landlord_id is not None:
            filters["landlord_id"] = landlord_id
        if not filters:
            raise ValidationError([
                {"field": "tenant_id", "message": "tenant_id or landlord_id is required"},
            ])
        today = today or self._clock.today()
        bills = self.store.query(
            RecordKind.BILL, order_by="created_at", descending=True, **filters
        )
        return [bill.as_of(today) for bill in bills]

    def list_requests(self, landlord_id: UUID) -> list[VerificationRequest]:
        return self.store.query(
            RecordKind.REQUEST, order_by="submitted_at", descending=True, landlord_id=landlord_id
        )

    def list_landlord_tenants(self, landlord_id: UUID) -> list[LandlordTenantView]:
        """
        The landlord's ACTIVE stays hydrated with tenant and property names.

        The tenant name comes from the user record, falling back to the name
        on the request that created the stay.
        """
        stays = self.store.query(
            RecordKind.STAY,
            order_by="join_date",
            landlord_id=landlord_id,
            status=StayStatus.ACTIVE,
        )
        views = []
        for stay in stays:
            user = self.store.get(RecordKind.USER, stay.tenant_id)
            request = (
                self.store.get(RecordKind.REQUEST, stay.request_id)
                if stay.request_id is not None
                else None
            )
            prop = self.store.get(RecordKind.PROPERTY, stay.property_id)
            if user is not None:
                tenant_name = user.name
            elif request is not None:
                tenant_name = request.full_name
            else:
                tenant_name = "Unknown"
            views.append(
                LandlordTenantView(
                    stay=stay,
                    tenant_name=tenant_name,
                    property_name=prop.name if prop is not None else "Unknown",
                    property_address=prop.address if prop is not None else None,
                )
            )
        return views
