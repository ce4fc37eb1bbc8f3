"""Stripe gateway adapter.

Wraps the Stripe calls the provisioning and reconciliation code needs and
returns small typed references instead of SDK objects. Every Stripe error
is re-raised as GatewayError; webhook signature problems are raised as
SignatureVerificationFailed.

Create/update calls are not idempotent at the transport level. Callers
must not retry them blindly.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import stripe

from clinicdesk import config
from clinicdesk.billing.events import BillingEvent, parse_event
from clinicdesk.db.models import from_unix
from clinicdesk.logging import get_logger

logger = get_logger(__name__)

# Initialize Stripe with API key from environment
stripe.api_key = config.STRIPE_SECRET_KEY


class GatewayError(Exception):
    """A Stripe call failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class SignatureVerificationFailed(Exception):
    """Inbound webhook payload could not be verified."""


@dataclass(frozen=True)
class CustomerRef:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRef:
    id: str
    status: str
    customer_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


@dataclass(frozen=True)
class CheckoutSessionRef:
    id: str
    url: Optional[str]


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a StripeObject or plain dict."""
    if obj is None:
        return default
    try:
        value = obj[name]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


def _first_item(subscription: Any) -> Any:
    items = _field(_field(subscription, "items"), "data", [])
    return items[0] if items else None


def _period_end(subscription: Any) -> Optional[datetime]:
    # Newer API versions moved current_period_end onto the subscription items
    value = _field(subscription, "current_period_end")
    if value is None:
        value = _field(_first_item(subscription), "current_period_end")
    return from_unix(value)


def _customer_id(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


def _to_subscription_ref(subscription: Any) -> SubscriptionRef:
    return SubscriptionRef(
        id=_field(subscription, "id"),
        status=_field(subscription, "status", ""),
        customer_id=_customer_id(_field(subscription, "customer")),
        current_period_end=_period_end(subscription),
        cancel_at_period_end=bool(_field(subscription, "cancel_at_period_end", False)),
    )


class StripeGateway:
    """Adapter over the stripe SDK.

    Args:
        webhook_secret: Signing secret for inbound events. Defaults to
            STRIPE_WEBHOOK_SECRET.
    """

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else config.STRIPE_WEBHOOK_SECRET
        )

    # =========================================================================
    # Customers
    # =========================================================================

    def create_customer(
        self, email: str, name: Optional[str], metadata: Optional[dict] = None
    ) -> CustomerRef:
        """Always creates a new remote customer."""
        try:
            customer = stripe.Customer.create(
                email=email,
                name=name,
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            logger.error("stripe_customer_create_failed", error=str(e))
            raise GatewayError("create_customer", str(e)) from e

        logger.info("stripe_customer_created", customer_id=_field(customer, "id"))
        return CustomerRef(id=_field(customer, "id"), email=_field(customer, "email"))

    def get_or_create_customer(
        self,
        existing_id: Optional[str],
        email: str,
        name: Optional[str],
        metadata: Optional[dict] = None,
    ) -> CustomerRef:
        """Reuse an existing customer or create a new one.

        A deleted or unreachable existing customer falls through to creation,
        so a transient retrieval failure can produce a duplicate customer.
        """
        if existing_id:
            try:
                customer = stripe.Customer.retrieve(existing_id)
                if not _field(customer, "deleted", False):
                    return CustomerRef(
                        id=_field(customer, "id"), email=_field(customer, "email")
                    )
                logger.info("stripe_customer_deleted", customer_id=existing_id)
            except stripe.StripeError as e:
                logger.warning(
                    "stripe_customer_retrieve_failed",
                    customer_id=existing_id,
                    error=str(e),
                )

        return self.create_customer(email, name, metadata)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionRef:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as e:
            raise GatewayError("retrieve_subscription", str(e)) from e
        return _to_subscription_ref(subscription)

    def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        trial_days: int = 0,
        metadata: Optional[dict] = None,
    ) -> SubscriptionRef:
        """Create a subscription that stays incomplete until paid.

        trial_days=0 means no trial period.
        """
        params: dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "payment_behavior": "default_incomplete",
            "payment_settings": {"save_default_payment_method": "on_subscription"},
            "metadata": metadata or {},
        }
        if trial_days > 0:
            params["trial_period_days"] = trial_days

        try:
            subscription = stripe.Subscription.create(**params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_subscription_create_failed",
                customer_id=customer_id,
                error=str(e),
            )
            raise GatewayError("create_subscription", str(e)) from e

        ref = _to_subscription_ref(subscription)
        logger.info(
            "stripe_subscription_created",
            subscription_id=ref.id,
            customer_id=customer_id,
            status=ref.status,
        )
        return ref

    def update_subscription(
        self,
        subscription_id: str,
        price_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> SubscriptionRef:
        """Swap the first line item's price with prorated billing."""
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as e:
            raise GatewayError("update_subscription", str(e)) from e

        params: dict[str, Any] = {}
        if price_id:
            item = _first_item(subscription)
            if item is None:
                raise GatewayError("update_subscription", "subscription has no items")
            params["items"] = [{"id": _field(item, "id"), "price": price_id}]
            params["proration_behavior"] = "create_prorations"
        if metadata:
            params["metadata"] = metadata

        try:
            updated = stripe.Subscription.modify(subscription_id, **params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_subscription_update_failed",
                subscription_id=subscription_id,
                error=str(e),
            )
            raise GatewayError("update_subscription", str(e)) from e

        logger.info("stripe_subscription_updated", subscription_id=subscription_id)
        return _to_subscription_ref(updated)

    def cancel_subscription(
        self, subscription_id: str, at_period_end: bool = True
    ) -> SubscriptionRef:
        """Cancel now, or schedule cancellation at the period boundary."""
        try:
            if at_period_end:
                subscription = stripe.Subscription.modify(
                    subscription_id, cancel_at_period_end=True
                )
            else:
                subscription = stripe.Subscription.cancel(subscription_id)
        except stripe.StripeError as e:
            logger.error(
                "stripe_subscription_cancel_failed",
                subscription_id=subscription_id,
                error=str(e),
            )
            raise GatewayError("cancel_subscription", str(e)) from e

        logger.info(
            "stripe_subscription_cancelled",
            subscription_id=subscription_id,
            at_period_end=at_period_end,
        )
        return _to_subscription_ref(subscription)

    # =========================================================================
    # Checkout
    # =========================================================================

    def create_checkout_session(
        self,
        customer_id: Optional[str],
        price_id: str,
        success_url: str,
        cancel_url: str,
        trial_days: int = 0,
        metadata: Optional[dict] = None,
        customer_email: Optional[str] = None,
    ) -> CheckoutSessionRef:
        """Create a hosted checkout session in subscription mode.

        The metadata is set on both the session and the subscription it
        creates, so it survives the redirect round-trip.
        """
        subscription_data: dict[str, Any] = {"metadata": metadata or {}}
        if trial_days > 0:
            subscription_data["trial_period_days"] = trial_days

        checkout_params: dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata or {},
            "subscription_data": subscription_data,
        }
        if customer_id:
            checkout_params["customer"] = customer_id
        elif customer_email:
            checkout_params["customer_email"] = customer_email

        try:
            checkout_session = stripe.checkout.Session.create(**checkout_params)
        except stripe.StripeError as e:
            logger.error("stripe_checkout_create_failed", error=str(e))
            raise GatewayError("create_checkout_session", str(e)) from e

        return CheckoutSessionRef(
            id=_field(checkout_session, "id"), url=_field(checkout_session, "url")
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_event_signature(
        self, payload: bytes, signature: Optional[str]
    ) -> BillingEvent:
        """Verify the raw body against the signing secret, then parse it.

        Raises:
            SignatureVerificationFailed: Missing secret, missing header, bad
                signature, stale timestamp or a body that is not JSON.
        """
        if not self.webhook_secret:
            raise SignatureVerificationFailed("Webhook secret not configured")
        if not signature:
            raise SignatureVerificationFailed("Missing signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            raw_event = json.loads(body)
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationFailed(str(e)) from e
        except (UnicodeDecodeError, ValueError) as e:
            raise SignatureVerificationFailed("Invalid payload") from e

        if not isinstance(raw_event, dict):
            raise SignatureVerificationFailed("Invalid payload")
        return parse_event(raw_event)
