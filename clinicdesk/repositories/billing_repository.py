"""Repository for orphaned billing resources."""

from typing import Optional
from uuid import UUID

from sqlmodel import Session

from clinicdesk.db.models import OrphanedBillingResource


class OrphanedBillingResourceRepository:
    """Repository for OrphanedBillingResource operations."""

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        user_id: UUID,
        reason: str,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
    ) -> OrphanedBillingResource:
        """Record remote resources left without a workspace."""
        orphan = OrphanedBillingResource(
            user_id=user_id,
            reason=reason,
            stripe_customer_id=stripe_customer_id,
            stripe_subscription_id=stripe_subscription_id,
        )
        self.session.add(orphan)
        self.session.commit()
        self.session.refresh(orphan)
        return orphan
