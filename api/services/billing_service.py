"""Service for inbound Stripe webhooks.

Verifies the raw payload, then hands the typed event to the reconciler.
Only a failed signature check is reported to Stripe as a client error;
events the reconciler cannot act on are acknowledged. A failed local write
answers 500 so Stripe redelivers the event.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from api.exceptions import DownstreamError, ValidationError
from clinicdesk.billing.gateway import SignatureVerificationFailed, StripeGateway
from clinicdesk.billing.reconciler import SubscriptionEventReconciler
from clinicdesk.logging import get_logger
from clinicdesk.provisioning import ProvisioningError

logger = get_logger(__name__)


class BillingService:
    """Webhook entry point for subscription lifecycle events."""

    def __init__(self, session: Session, gateway: StripeGateway):
        self.session = session
        self.gateway = gateway
        self.reconciler = SubscriptionEventReconciler(session, gateway)

    def handle_webhook(self, payload: bytes, signature: str | None) -> dict:
        """Verify and apply one webhook delivery.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Reconciler result dict (for logging)

        Raises:
            ValidationError: Signature missing or invalid
            DownstreamError: The event could not be written locally
        """
        try:
            event = self.gateway.verify_event_signature(payload, signature)
        except SignatureVerificationFailed as e:
            logger.warning("webhook_signature_invalid", error=str(e))
            raise ValidationError(
                "Invalid webhook signature", error_code="INVALID_SIGNATURE"
            ) from e

        logger.info("webhook_received", event_id=event.id, event_type=event.type)

        try:
            result = self.reconciler.handle(event)
        except ProvisioningError as e:
            raise DownstreamError(
                e.message, error_code="WEBHOOK_PROCESSING_FAILED"
            ) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                "webhook_storage_failed",
                event_id=event.id,
                event_type=event.type,
                error=str(e),
            )
            raise DownstreamError(
                "Failed to apply event", error_code="WEBHOOK_PROCESSING_FAILED"
            ) from e

        logger.info("webhook_processed", event_id=event.id, event_type=event.type, **result)
        return result
