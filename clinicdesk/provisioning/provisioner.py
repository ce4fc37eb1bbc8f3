"""Workspace provisioning.

Creates a workspace, its settings and its owner membership as one logical
unit. The three rows are separate commits; a failed insert is undone by
deleting the rows written before it. Remote Stripe resources are never
rolled back. Direct creation records them as orphans instead.

Two entry points share the local steps:
- provision_direct: the caller is present, plan and settings are known,
  customer and subscription are created here.
- provision_from_checkout: hosted checkout already created the customer and
  subscription; the request arrives as a ProvisioningIntent.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from clinicdesk.billing import plans
from clinicdesk.billing.gateway import CustomerRef, StripeGateway
from clinicdesk.billing.intent import ProvisioningIntent, SettingsData, WorkspaceData
from clinicdesk.billing.plans import PlanConfig
from clinicdesk.config import TRIAL_DAYS
from clinicdesk.db.models import (
    PlanType,
    Profile,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceSettings,
    WorkspaceStatus,
)
from clinicdesk.logging import get_logger
from clinicdesk.provisioning.errors import (
    InvalidPlanError,
    ProfileNotFoundError,
    ProvisioningError,
)
from clinicdesk.provisioning.trial import TrialEligibilityGuard, trial_end
from clinicdesk.repositories import (
    OrphanedBillingResourceRepository,
    ProfileRepository,
    WorkspaceMemberRepository,
    WorkspaceRepository,
    WorkspaceSettingsRepository,
)

logger = get_logger(__name__)


@dataclass
class ProvisionedWorkspace:
    """The rows written for one workspace."""

    workspace: Workspace
    settings: WorkspaceSettings
    member: WorkspaceMember


class WorkspaceProvisioner:
    """Creates workspace bundles for both creation paths."""

    def __init__(self, session: Session, gateway: StripeGateway):
        self.session = session
        self.gateway = gateway
        self.trial_guard = TrialEligibilityGuard(session)
        self.profiles = ProfileRepository(session)
        self.workspaces = WorkspaceRepository(session)
        self.settings = WorkspaceSettingsRepository(session)
        self.members = WorkspaceMemberRepository(session)
        self.orphans = OrphanedBillingResourceRepository(session)

    # =========================================================================
    # Path A: direct creation
    # =========================================================================

    def provision_direct(
        self,
        user_id: UUID,
        plan_type: str,
        workspace_data: WorkspaceData,
        settings_data: Optional[SettingsData] = None,
    ) -> ProvisionedWorkspace:
        """Create customer, subscription and the local workspace bundle.

        Args:
            user_id: Profile ID of the caller, who becomes the owner.
            plan_type: Catalog plan identifier.
            workspace_data: Name, tax id and address.
            settings_data: Initial settings. Defaults apply when omitted.

        Returns:
            ProvisionedWorkspace with the three created rows

        Raises:
            InvalidPlanError: Unknown plan, before any remote call.
            ProfileNotFoundError: Caller has no profile.
            GatewayError: Customer or subscription creation failed.
            ProvisioningError: A local insert failed after the remote
                subscription was created.
        """
        plan = plans.resolve(plan_type)
        if plan is None:
            raise InvalidPlanError(plan_type)

        profile = self.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)

        trial = self.trial_guard.can_use_trial(user_id)
        trial_days = TRIAL_DAYS if trial else 0

        customer = self.customer_for(profile, workspace_data.name)

        subscription = self.gateway.create_subscription(
            customer.id,
            plan.stripe_price_id,
            trial_days=trial_days,
            metadata={
                "userId": str(user_id),
                "workspaceName": workspace_data.name,
                "planType": plan.id,
            },
        )

        status = WorkspaceStatus.trial if trial else WorkspaceStatus.payment_pending
        try:
            bundle = self._write_bundle(
                user_id=user_id,
                plan=plan,
                workspace_data=workspace_data,
                settings_data=settings_data or SettingsData(),
                status=status,
                trial_ends_at=trial_end(trial),
                subscription_ends_at=subscription.current_period_end,
                customer_id=customer.id,
                subscription_id=subscription.id,
            )
        except ProvisioningError as e:
            self._record_orphan(user_id, customer.id, subscription.id, e)
            raise

        if trial:
            self._consume_trial(user_id)

        logger.info(
            "workspace_provisioned",
            path="direct",
            workspace_id=str(bundle.workspace.id),
            user_id=str(user_id),
            plan_type=plan.id,
            status=status.value,
            trial=trial,
        )
        return bundle

    # =========================================================================
    # Path B: checkout-deferred creation
    # =========================================================================

    def provision_from_checkout(
        self,
        intent: ProvisioningIntent,
        customer_id: Optional[str],
        subscription_id: str,
        status: WorkspaceStatus,
        subscription_ends_at: Optional[datetime] = None,
    ) -> ProvisionedWorkspace:
        """Write the bundle for a completed hosted checkout.

        The trial flag comes from the intent; eligibility was decided when
        the checkout session was created.

        Raises:
            InvalidPlanError: Intent names a plan not in the catalog.
            ProfileNotFoundError: Intent names a user with no profile.
            ProvisioningError: A local insert failed.
        """
        plan = plans.resolve(intent.plan_type)
        if plan is None:
            raise InvalidPlanError(intent.plan_type)
        if self.profiles.get(intent.user_id) is None:
            raise ProfileNotFoundError(intent.user_id)

        bundle = self._write_bundle(
            user_id=intent.user_id,
            plan=plan,
            workspace_data=intent.workspace,
            settings_data=intent.settings,
            status=status,
            trial_ends_at=trial_end(intent.trial),
            subscription_ends_at=subscription_ends_at,
            customer_id=customer_id,
            subscription_id=subscription_id,
        )

        if intent.trial:
            self._consume_trial(intent.user_id)

        logger.info(
            "workspace_provisioned",
            path="checkout",
            workspace_id=str(bundle.workspace.id),
            user_id=str(intent.user_id),
            plan_type=plan.id,
            status=status.value,
            trial=intent.trial,
        )
        return bundle

    # =========================================================================
    # Shared steps
    # =========================================================================

    def _write_bundle(
        self,
        user_id: UUID,
        plan: PlanConfig,
        workspace_data: WorkspaceData,
        settings_data: SettingsData,
        status: WorkspaceStatus,
        trial_ends_at: datetime,
        subscription_ends_at: Optional[datetime],
        customer_id: Optional[str],
        subscription_id: Optional[str],
    ) -> ProvisionedWorkspace:
        try:
            workspace = self.workspaces.create(
                Workspace(
                    **workspace_data.model_dump(),
                    status=status,
                    plan_type=PlanType(plan.id),
                    stripe_customer_id=customer_id,
                    stripe_subscription_id=subscription_id,
                    trial_ends_at=trial_ends_at,
                    subscription_ends_at=subscription_ends_at,
                    max_patients=plan.max_patients,
                    max_members=plan.max_members,
                )
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("workspace_insert_failed", user_id=str(user_id), error=str(e))
            raise ProvisioningError("workspace", "Failed to create workspace") from e

        workspace_id = workspace.id

        try:
            settings = self.settings.create(
                WorkspaceSettings(workspace_id=workspace_id, **settings_data.model_dump())
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "workspace_settings_insert_failed",
                workspace_id=str(workspace_id),
                error=str(e),
            )
            self._compensate("workspace", workspace_id, self.workspaces.delete)
            raise ProvisioningError(
                "settings", "Failed to create workspace settings", workspace_id
            ) from e

        try:
            member = self.members.create(
                WorkspaceMember(
                    workspace_id=workspace_id,
                    user_id=user_id,
                    role=WorkspaceRole.owner,
                    is_active=True,
                )
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "workspace_member_insert_failed",
                workspace_id=str(workspace_id),
                error=str(e),
            )
            self._compensate("settings", workspace_id, self.settings.delete)
            self._compensate("workspace", workspace_id, self.workspaces.delete)
            raise ProvisioningError(
                "member", "Failed to create workspace member", workspace_id
            ) from e

        return ProvisionedWorkspace(workspace=workspace, settings=settings, member=member)

    def _compensate(
        self, row: str, workspace_id: UUID, delete: Callable[[UUID], bool]
    ) -> None:
        """Run one compensating delete. Failures are left to the orphan sweep."""
        try:
            delete(workspace_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "provisioning_compensation_failed",
                row=row,
                workspace_id=str(workspace_id),
                error=str(e),
            )

    def customer_for(self, profile: Profile, workspace_name: str) -> CustomerRef:
        """Reuse the profile's Stripe customer or create one and remember it.

        Saving the new id on the profile is best-effort; a failure only costs
        a duplicate customer on the next attempt.

        Raises:
            GatewayError: Customer creation failed.
        """
        customer = self.gateway.get_or_create_customer(
            profile.stripe_customer_id,
            email=profile.email,
            name=profile.full_name or workspace_name,
            metadata={"userId": str(profile.id), "workspaceName": workspace_name},
        )
        if customer.id != profile.stripe_customer_id:
            self._remember_customer(profile, customer.id)
        return customer

    def _remember_customer(self, profile: Profile, customer_id: str) -> None:
        try:
            self.profiles.set_stripe_customer(profile, customer_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning(
                "profile_customer_save_failed",
                user_id=str(profile.id),
                customer_id=customer_id,
                error=str(e),
            )

    def _consume_trial(self, user_id: UUID) -> None:
        # The workspace already exists; a failure here must not undo it
        try:
            self.trial_guard.mark_trial_consumed(user_id)
        except (SQLAlchemyError, ProfileNotFoundError) as e:
            self.session.rollback()
            logger.error("trial_consume_failed", user_id=str(user_id), error=str(e))

    def _record_orphan(
        self,
        user_id: UUID,
        customer_id: str,
        subscription_id: str,
        error: ProvisioningError,
    ) -> None:
        try:
            self.orphans.record(
                user_id=user_id,
                reason=f"{error.step}_insert_failed",
                stripe_customer_id=customer_id,
                stripe_subscription_id=subscription_id,
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "orphan_record_failed",
                user_id=str(user_id),
                subscription_id=subscription_id,
                error=str(e),
            )
            return
        logger.warning(
            "stripe_resources_orphaned",
            user_id=str(user_id),
            customer_id=customer_id,
            subscription_id=subscription_id,
            step=error.step,
        )
