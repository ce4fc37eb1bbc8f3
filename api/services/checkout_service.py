"""Service for hosted checkout sessions.

Starts the deferred creation path: the workspace request is packed into a
ProvisioningIntent and stored in the session metadata. The workspace is
created later, when checkout.session.completed arrives.
"""

from sqlmodel import Session

from api.auth.dependencies import CurrentUser
from api.exceptions import DownstreamError, NotFoundError, ValidationError
from clinicdesk.billing import plans
from clinicdesk.billing.gateway import CheckoutSessionRef, GatewayError, StripeGateway
from clinicdesk.billing.intent import (
    IntentTooLargeError,
    ProvisioningIntent,
    SettingsData,
    WorkspaceData,
)
from clinicdesk.config import APP_URL, TRIAL_DAYS
from clinicdesk.logging import get_logger
from clinicdesk.provisioning import TrialEligibilityGuard, WorkspaceProvisioner
from clinicdesk.repositories import ProfileRepository

logger = get_logger(__name__)

# {CHECKOUT_SESSION_ID} is filled in by Stripe
SUCCESS_URL = f"{APP_URL}/workspace/new/success?session_id={{CHECKOUT_SESSION_ID}}"
CANCEL_URL = f"{APP_URL}/workspace/new"


class CheckoutService:
    """Creates Stripe checkout sessions for new workspaces."""

    def __init__(self, session: Session, gateway: StripeGateway):
        self.session = session
        self.gateway = gateway
        self.profiles = ProfileRepository(session)
        self.trial_guard = TrialEligibilityGuard(session)
        self.provisioner = WorkspaceProvisioner(session, gateway)

    def create_session(
        self,
        current_user: CurrentUser,
        plan_type: str,
        workspace_data: WorkspaceData,
        settings_data: SettingsData,
        trial_available: bool,
    ) -> CheckoutSessionRef:
        """Create a checkout session carrying the provisioning intent.

        The trial is granted only when requested and the caller has not
        used one yet.

        Raises:
            ValidationError: Unknown plan, or workspace data too large for
                the session metadata
            NotFoundError: Caller has no profile
            DownstreamError: Stripe call failed
        """
        plan = plans.resolve(plan_type)
        if plan is None:
            raise ValidationError("Invalid plan type", error_code="INVALID_PLAN")

        profile = self.profiles.get(current_user.user_id)
        if profile is None:
            raise NotFoundError("Profile not found", error_code="PROFILE_NOT_FOUND")

        trial = trial_available and self.trial_guard.can_use_trial(profile.id)
        intent = ProvisioningIntent(
            user_id=profile.id,
            plan_type=plan.id,
            trial=trial,
            workspace=workspace_data,
            settings=settings_data,
        )
        try:
            metadata = intent.to_metadata()
        except IntentTooLargeError as e:
            raise ValidationError(str(e), error_code="METADATA_TOO_LARGE") from e

        try:
            customer = self.provisioner.customer_for(profile, workspace_data.name)
            checkout = self.gateway.create_checkout_session(
                customer.id,
                plan.stripe_price_id,
                success_url=SUCCESS_URL,
                cancel_url=CANCEL_URL,
                trial_days=TRIAL_DAYS if trial else 0,
                metadata=metadata,
            )
        except GatewayError as e:
            raise DownstreamError(
                "Failed to create checkout session", error_code="CHECKOUT_CREATE_FAILED"
            ) from e

        logger.info(
            "checkout_session_created",
            session_id=checkout.id,
            user_id=str(profile.id),
            plan_type=plan.id,
            trial=trial,
        )
        return checkout
