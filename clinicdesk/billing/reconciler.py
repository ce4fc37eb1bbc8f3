"""Subscription event reconciler.

Applies verified Stripe events to workspace rows. Every transition is an
absolute assignment, so replaying an event leaves the same end state.
Events that cannot be acted on (unknown type, no matching workspace, bad
metadata) are logged and reported as ignored; the webhook still
acknowledges them so Stripe stops redelivering.

With RECONCILER_ORDERING_GUARD enabled, events created before the last
event applied to a workspace are skipped. Otherwise the last write wins.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Session

from clinicdesk import config
from clinicdesk.billing.events import (
    BillingEvent,
    CheckoutSessionCompletedEvent,
    InvoiceEvent,
    SubscriptionDeletedEvent,
    SubscriptionEvent,
    UnknownEvent,
)
from clinicdesk.billing.gateway import GatewayError, StripeGateway
from clinicdesk.billing.intent import MalformedIntentError, ProvisioningIntent
from clinicdesk.db.models import Workspace, WorkspaceStatus
from clinicdesk.logging import get_logger
from clinicdesk.provisioning.errors import InvalidPlanError, ProfileNotFoundError
from clinicdesk.provisioning.provisioner import WorkspaceProvisioner
from clinicdesk.repositories import WorkspaceRepository

logger = get_logger(__name__)


# Stripe subscription status -> local workspace status
STATUS_MAP: dict[str, WorkspaceStatus] = {
    "active": WorkspaceStatus.active,
    "trialing": WorkspaceStatus.trial,
    "past_due": WorkspaceStatus.payment_pending,
    "incomplete": WorkspaceStatus.payment_pending,
    "incomplete_expired": WorkspaceStatus.payment_pending,
    "canceled": WorkspaceStatus.cancelled,
    "unpaid": WorkspaceStatus.cancelled,
}


def map_subscription_status(remote_status: Optional[str]) -> WorkspaceStatus:
    """Total mapping; anything unrecognized is inactive."""
    return STATUS_MAP.get(remote_status or "", WorkspaceStatus.inactive)


class SubscriptionEventReconciler:
    """Applies one event at a time to local state.

    Args:
        session: Database session
        gateway: Stripe adapter, used to read the remote subscription of a
            completed checkout
        ordering_guard: Skip events older than the last applied one.
            Defaults to RECONCILER_ORDERING_GUARD.
    """

    def __init__(
        self,
        session: Session,
        gateway: StripeGateway,
        ordering_guard: Optional[bool] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.workspaces = WorkspaceRepository(session)
        self.provisioner = WorkspaceProvisioner(session, gateway)
        self.ordering_guard = (
            config.RECONCILER_ORDERING_GUARD if ordering_guard is None else ordering_guard
        )

    def handle(self, event: BillingEvent) -> dict:
        """Dispatch an event to its handler.

        Returns:
            Dict describing what happened, for logging

        Raises:
            ProvisioningError: Path B could not write the workspace bundle;
                the webhook fails so Stripe redelivers the event.
        """
        if isinstance(event, SubscriptionEvent):
            return self._handle_subscription_changed(event)
        if isinstance(event, SubscriptionDeletedEvent):
            return self._handle_subscription_deleted(event)
        if isinstance(event, InvoiceEvent):
            return self._handle_invoice(event)
        if isinstance(event, CheckoutSessionCompletedEvent):
            return self._handle_checkout_completed(event)
        return self._handle_unknown(event)

    # =========================================================================
    # Subscription events
    # =========================================================================

    def _handle_subscription_changed(self, event: SubscriptionEvent) -> dict:
        subscription = event.subscription
        workspace = self._locate(event, subscription.id)
        if workspace is None:
            return {"status": "ignored", "reason": "workspace_not_found"}
        if self._is_stale(workspace, event):
            return {"status": "ignored", "reason": "stale_event"}

        status = map_subscription_status(subscription.status)
        self._apply(
            workspace,
            event,
            status=status,
            subscription_ends_at=subscription.period_end,
        )
        return {
            "status": "updated",
            "workspace_id": str(workspace.id),
            "new_status": status.value,
        }

    def _handle_subscription_deleted(self, event: SubscriptionDeletedEvent) -> dict:
        workspace = self._locate(event, event.subscription.id)
        if workspace is None:
            return {"status": "ignored", "reason": "workspace_not_found"}
        if self._is_stale(workspace, event):
            return {"status": "ignored", "reason": "stale_event"}

        self._apply(workspace, event, status=WorkspaceStatus.cancelled)
        return {"status": "cancelled", "workspace_id": str(workspace.id)}

    # =========================================================================
    # Invoice events
    # =========================================================================

    def _handle_invoice(self, event: InvoiceEvent) -> dict:
        subscription_id = event.invoice.subscription_id
        if not subscription_id:
            logger.info(
                "invoice_without_subscription", event_id=event.id, event_type=event.type
            )
            return {"status": "ignored", "reason": "no_subscription"}

        workspace = self._locate(event, subscription_id)
        if workspace is None:
            return {"status": "ignored", "reason": "workspace_not_found"}
        if self._is_stale(workspace, event):
            return {"status": "ignored", "reason": "stale_event"}

        if event.type == "invoice.payment_succeeded":
            status = WorkspaceStatus.active
        else:
            status = WorkspaceStatus.payment_pending
        self._apply(workspace, event, status=status)
        return {
            "status": "updated",
            "workspace_id": str(workspace.id),
            "new_status": status.value,
        }

    # =========================================================================
    # Checkout events
    # =========================================================================

    def _handle_checkout_completed(self, event: CheckoutSessionCompletedEvent) -> dict:
        checkout = event.session
        if not checkout.subscription:
            logger.warning(
                "checkout_without_subscription", event_id=event.id, session_id=checkout.id
            )
            return {"status": "ignored", "reason": "no_subscription"}

        try:
            intent = ProvisioningIntent.from_metadata(checkout.metadata)
        except MalformedIntentError as e:
            logger.error(
                "checkout_metadata_malformed",
                event_id=event.id,
                session_id=checkout.id,
                error=str(e),
            )
            return {"status": "ignored", "reason": "malformed_metadata"}

        if intent is None:
            return self._attach_subscription(event)
        return self._provision_from_checkout(event, intent)

    def _attach_subscription(self, event: CheckoutSessionCompletedEvent) -> dict:
        """Bind the new subscription to the customer's existing workspace."""
        checkout = event.session
        workspace = None
        if checkout.customer:
            workspace = self.workspaces.get_by_customer(checkout.customer)
        if workspace is None:
            logger.warning(
                "checkout_workspace_not_found",
                event_id=event.id,
                customer_id=checkout.customer,
            )
            return {"status": "ignored", "reason": "workspace_not_found"}
        if self._is_stale(workspace, event):
            return {"status": "ignored", "reason": "stale_event"}

        self._apply(workspace, event, stripe_subscription_id=checkout.subscription)
        return {"status": "attached", "workspace_id": str(workspace.id)}

    def _provision_from_checkout(
        self, event: CheckoutSessionCompletedEvent, intent: ProvisioningIntent
    ) -> dict:
        checkout = event.session
        existing = self.workspaces.get_by_subscription(checkout.subscription)
        if existing is not None:
            logger.info(
                "checkout_already_provisioned",
                event_id=event.id,
                workspace_id=str(existing.id),
            )
            return {"status": "ignored", "reason": "already_provisioned"}

        status, period_end = self._checkout_status(
            checkout.subscription, checkout.payment_status, intent.trial
        )
        try:
            bundle = self.provisioner.provision_from_checkout(
                intent,
                customer_id=checkout.customer,
                subscription_id=checkout.subscription,
                status=status,
                subscription_ends_at=period_end,
            )
        except InvalidPlanError:
            logger.error(
                "checkout_plan_invalid",
                event_id=event.id,
                plan_type=intent.plan_type,
            )
            return {"status": "ignored", "reason": "invalid_plan"}
        except ProfileNotFoundError:
            logger.error(
                "checkout_profile_missing",
                event_id=event.id,
                user_id=str(intent.user_id),
                subscription_id=checkout.subscription,
            )
            return {"status": "ignored", "reason": "profile_not_found"}

        if event.created_at:
            self.workspaces.update(bundle.workspace, last_event_at=event.created_at)
        return {"status": "provisioned", "workspace_id": str(bundle.workspace.id)}

    def _checkout_status(
        self, subscription_id: str, payment_status: Optional[str], trial: bool
    ) -> tuple[WorkspaceStatus, Optional[datetime]]:
        """Status for a checkout-created workspace, from the remote subscription."""
        try:
            subscription = self.gateway.retrieve_subscription(subscription_id)
        except GatewayError as e:
            logger.warning(
                "checkout_subscription_retrieve_failed",
                subscription_id=subscription_id,
                error=str(e),
            )
            if trial:
                return WorkspaceStatus.trial, None
            if payment_status == "paid":
                return WorkspaceStatus.active, None
            return WorkspaceStatus.payment_pending, None
        return map_subscription_status(subscription.status), subscription.current_period_end

    # =========================================================================
    # Helpers
    # =========================================================================

    def _handle_unknown(self, event: UnknownEvent) -> dict:
        logger.info(
            "webhook_event_ignored",
            event_id=event.id,
            event_type=event.type,
            reason=event.reason,
        )
        return {"status": "ignored", "reason": event.reason}

    def _locate(self, event: BillingEvent, subscription_id: str) -> Optional[Workspace]:
        workspace = self.workspaces.get_by_subscription(subscription_id)
        if workspace is None:
            logger.warning(
                "webhook_workspace_not_found",
                event_id=event.id,
                event_type=event.type,
                subscription_id=subscription_id,
            )
        return workspace

    def _is_stale(self, workspace: Workspace, event: BillingEvent) -> bool:
        if not self.ordering_guard:
            return False
        created_at = event.created_at
        if created_at is None or workspace.last_event_at is None:
            return False
        if created_at < workspace.last_event_at:
            logger.info(
                "webhook_event_stale",
                event_id=event.id,
                event_type=event.type,
                workspace_id=str(workspace.id),
            )
            return True
        return False

    def _apply(self, workspace: Workspace, event: BillingEvent, **fields) -> None:
        created_at = event.created_at
        if created_at and (
            workspace.last_event_at is None or created_at > workspace.last_event_at
        ):
            fields["last_event_at"] = created_at
        self.workspaces.update(workspace, **fields)
        logger.info(
            "workspace_reconciled",
            event_id=event.id,
            event_type=event.type,
            workspace_id=str(workspace.id),
            **{k: getattr(v, "value", v) for k, v in fields.items() if k != "last_event_at"},
        )
