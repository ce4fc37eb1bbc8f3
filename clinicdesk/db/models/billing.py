"""Billing bookkeeping models.

OrphanedBillingResource rows record processor customers/subscriptions
that were created remotely but whose local workspace could not be
written. A reconciliation job outside this service resolves them.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Field

from clinicdesk.db.models.base import UUIDModel, TimestampMixin


class OrphanedBillingResource(UUIDModel, TimestampMixin, table=True):
    """Remote billing resources left without a local workspace."""

    __tablename__ = "orphaned_billing_resources"

    user_id: UUID = Field(index=True)
    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, index=True)
    reason: str
    resolved: bool = Field(default=False, index=True)
