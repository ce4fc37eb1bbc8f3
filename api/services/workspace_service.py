"""Service for workspace management operations.

Wraps provisioning, plan changes and soft deletion with the API's error
taxonomy. Domain errors from clinicdesk/ are translated here; nothing below
this layer knows about HTTP.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from api.exceptions import DownstreamError, NotFoundError, ValidationError
from clinicdesk.billing import plans
from clinicdesk.billing.gateway import GatewayError, StripeGateway
from clinicdesk.billing.intent import SettingsData, WorkspaceData
from clinicdesk.db.models import (
    PlanType,
    Workspace,
    WorkspaceMember,
    WorkspaceSettings,
    WorkspaceStatus,
)
from clinicdesk.logging import get_logger
from clinicdesk.provisioning import (
    InvalidPlanError,
    ProfileNotFoundError,
    ProvisionedWorkspace,
    ProvisioningError,
    WorkspaceProvisioner,
)
from clinicdesk.repositories import WorkspaceRepository, WorkspaceSettingsRepository

logger = get_logger(__name__)

_GATEWAY_FAILURES = {
    "create_customer": ("CUSTOMER_CREATE_FAILED", "Failed to create customer"),
    "create_subscription": ("SUBSCRIPTION_CREATE_FAILED", "Failed to create subscription"),
}


class WorkspaceService:
    """Workspace lifecycle operations for authenticated callers.

    Args:
        session: Database session
        gateway: Stripe adapter
    """

    def __init__(self, session: Session, gateway: StripeGateway):
        self.session = session
        self.gateway = gateway
        self.workspaces = WorkspaceRepository(session)
        self.settings = WorkspaceSettingsRepository(session)
        self.provisioner = WorkspaceProvisioner(session, gateway)

    # =========================================================================
    # Creation
    # =========================================================================

    def create_workspace(
        self,
        user_id: UUID,
        plan_type: str,
        workspace_data: WorkspaceData,
        settings_data: Optional[SettingsData] = None,
    ) -> ProvisionedWorkspace:
        """Create a workspace with its subscription, settings and owner.

        Raises:
            ValidationError: Unknown plan type
            NotFoundError: Caller has no profile
            DownstreamError: Stripe call or local insert failed
        """
        try:
            return self.provisioner.provision_direct(
                user_id, plan_type, workspace_data, settings_data
            )
        except InvalidPlanError as e:
            raise ValidationError("Invalid plan type", error_code="INVALID_PLAN") from e
        except ProfileNotFoundError as e:
            raise NotFoundError("Profile not found", error_code="PROFILE_NOT_FOUND") from e
        except GatewayError as e:
            code, message = _GATEWAY_FAILURES.get(
                e.operation, ("PAYMENT_PROVIDER_ERROR", "Payment provider request failed")
            )
            raise DownstreamError(message, error_code=code) from e
        except ProvisioningError as e:
            raise DownstreamError(
                e.message, error_code=f"{e.step.upper()}_CREATE_FAILED"
            ) from e

    # =========================================================================
    # Reads and owner edits
    # =========================================================================

    def list_workspaces(
        self, user_id: UUID
    ) -> list[tuple[WorkspaceMember, Workspace, Optional[WorkspaceSettings]]]:
        """The caller's active memberships with their workspaces and settings."""
        return [
            (member, workspace, self.settings.get(workspace.id))
            for member, workspace in self.workspaces.list_by_member(user_id)
        ]

    def get_settings(self, workspace: Workspace) -> Optional[WorkspaceSettings]:
        return self.settings.get(workspace.id)

    def update_workspace(self, workspace: Workspace, changes: dict[str, Any]) -> Workspace:
        """Apply owner edits to name, tax id and address fields."""
        if not changes:
            raise ValidationError("No fields to update")
        try:
            return self.workspaces.update(workspace, **changes)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DownstreamError(
                "Failed to update workspace", error_code="WORKSPACE_UPDATE_FAILED"
            ) from e

    def update_settings(
        self, workspace: Workspace, changes: dict[str, Any]
    ) -> WorkspaceSettings:
        """Apply owner edits to appointment duration and reminder lead time."""
        if not changes:
            raise ValidationError("No fields to update")
        settings = self.settings.get(workspace.id)
        if settings is None:
            raise NotFoundError("Workspace settings not found")
        try:
            return self.settings.update(settings, **changes)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DownstreamError(
                "Failed to update settings", error_code="SETTINGS_UPDATE_FAILED"
            ) from e

    # =========================================================================
    # Plan change
    # =========================================================================

    def change_plan(self, workspace: Workspace, new_plan_type: str) -> Workspace:
        """Move a workspace to another plan.

        The Stripe subscription is updated first (prorated); local plan and
        limits are only written once that succeeded.

        Raises:
            ValidationError: Unknown plan, same plan, or no subscription
            DownstreamError: Stripe update or local write failed
        """
        plan = plans.resolve(new_plan_type)
        if plan is None:
            raise ValidationError("Invalid plan type", error_code="INVALID_PLAN")
        if plan.id == PlanType(workspace.plan_type).value:
            raise ValidationError(
                "Workspace is already on this plan", error_code="SAME_PLAN"
            )
        if not workspace.stripe_subscription_id:
            raise ValidationError(
                "No active subscription found", error_code="NO_SUBSCRIPTION"
            )

        try:
            self.gateway.update_subscription(
                workspace.stripe_subscription_id,
                price_id=plan.stripe_price_id,
                metadata={"planType": plan.id},
            )
        except GatewayError as e:
            raise DownstreamError(
                "Failed to update subscription", error_code="SUBSCRIPTION_UPDATE_FAILED"
            ) from e

        previous = PlanType(workspace.plan_type).value
        try:
            workspace = self.workspaces.update(
                workspace,
                plan_type=PlanType(plan.id),
                max_patients=plan.max_patients,
                max_members=plan.max_members,
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "plan_change_local_write_failed",
                workspace_id=str(workspace.id),
                subscription_id=workspace.stripe_subscription_id,
                new_plan_type=plan.id,
                error=str(e),
            )
            raise DownstreamError(
                "Failed to update workspace", error_code="WORKSPACE_UPDATE_FAILED"
            ) from e

        logger.info(
            "workspace_plan_changed",
            workspace_id=str(workspace.id),
            previous_plan_type=previous,
            new_plan_type=plan.id,
        )
        return workspace

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_workspace(self, workspace: Workspace) -> Workspace:
        """Soft delete: cancel the subscription now, mark the workspace cancelled.

        A Stripe cancellation failure is logged and does not block the
        local status change.
        """
        if workspace.stripe_subscription_id:
            try:
                self.gateway.cancel_subscription(
                    workspace.stripe_subscription_id, at_period_end=False
                )
            except GatewayError as e:
                logger.warning(
                    "workspace_delete_cancel_failed",
                    workspace_id=str(workspace.id),
                    subscription_id=workspace.stripe_subscription_id,
                    error=str(e),
                )

        try:
            workspace = self.workspaces.update(workspace, status=WorkspaceStatus.cancelled)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DownstreamError(
                "Failed to delete workspace", error_code="WORKSPACE_DELETE_FAILED"
            ) from e

        logger.info("workspace_cancelled", workspace_id=str(workspace.id))
        return workspace
