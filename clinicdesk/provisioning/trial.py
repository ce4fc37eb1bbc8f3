"""Trial eligibility.

A user gets one trial, ever. The flag on the profile only moves from
false to true, so marking it twice is harmless.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from clinicdesk.config import TRIAL_DAYS
from clinicdesk.db.models import Profile, utcnow
from clinicdesk.logging import get_logger
from clinicdesk.provisioning.errors import ProfileNotFoundError
from clinicdesk.repositories import ProfileRepository

logger = get_logger(__name__)


def trial_end(trial: bool, now: Optional[datetime] = None) -> datetime:
    """trial_ends_at for a new workspace: now + TRIAL_DAYS with a trial, else now."""
    now = now or utcnow()
    return now + timedelta(days=TRIAL_DAYS) if trial else now


class TrialEligibilityGuard:
    """Reads and consumes the per-user trial."""

    def __init__(self, session: Session):
        self.profiles = ProfileRepository(session)

    def _profile(self, user_id: UUID) -> Profile:
        profile = self.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)
        return profile

    def can_use_trial(self, user_id: UUID) -> bool:
        """True while the user has never consumed a trial.

        Raises:
            ProfileNotFoundError: If the user has no profile.
        """
        return not self._profile(user_id).trial_used

    def trial_status(self, user_id: UUID) -> dict:
        profile = self._profile(user_id)
        return {"trial_used": profile.trial_used, "trial_days": TRIAL_DAYS}

    def mark_trial_consumed(self, user_id: UUID) -> None:
        """Set trial_used. No-op when already set."""
        profile = self._profile(user_id)
        if profile.trial_used:
            return
        self.profiles.mark_trial_used(profile)
        logger.info("trial_consumed", user_id=str(user_id))
