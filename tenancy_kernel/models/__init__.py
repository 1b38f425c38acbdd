"""
ORM models for the SQL-backed record store.

Importing this package registers every table on ``Base.metadata``.
"""

from tenancy_kernel.models.bill import BillModel
from tenancy_kernel.models.history import HistoryEntryModel
from tenancy_kernel.models.notification import NotificationModel
from tenancy_kernel.models.property import PropertyModel
from tenancy_kernel.models.sequence import SequenceCounter
from tenancy_kernel.models.tenant_stay import TenantStayModel
from tenancy_kernel.models.user import UserModel
from tenancy_kernel.models.verification_request import VerificationRequestModel

__all__ = [
    "BillModel",
    "HistoryEntryModel",
    "NotificationModel",
    "PropertyModel",
    "SequenceCounter",
    "TenantStayModel",
    "UserModel",
    "VerificationRequestModel",
]
