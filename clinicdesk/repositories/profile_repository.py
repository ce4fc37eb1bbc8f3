"""Repository for Profile reads and the two fields this service writes."""

from typing import Optional
from uuid import UUID

from sqlmodel import Session

from clinicdesk.db.models import Profile, utcnow


class ProfileRepository:
    """Repository for Profile operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: UUID) -> Optional[Profile]:
        """Get a profile by ID."""
        return self.session.get(Profile, user_id)

    def mark_trial_used(self, profile: Profile) -> Profile:
        """Set trial_used. Setting it on an already-used profile is a no-op."""
        if profile.trial_used:
            return profile
        profile.trial_used = True
        profile.updated_at = utcnow()
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def set_stripe_customer(self, profile: Profile, customer_id: str) -> Profile:
        """Remember the processor customer for this profile."""
        profile.stripe_customer_id = customer_id
        profile.updated_at = utcnow()
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile
