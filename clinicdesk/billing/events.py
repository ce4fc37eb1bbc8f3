"""Inbound processor events as a closed tagged union.

parse_event() turns a verified event envelope into exactly one of the
variants below. Unrecognized types, and recognized types whose payload does
not validate, become UnknownEvent so the webhook can still acknowledge them.
"""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clinicdesk.db.models import from_unix


def _ref_id(value: Any) -> Any:
    # Expandable references arrive as an id string or an expanded object
    if isinstance(value, dict):
        return value.get("id")
    return value


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Payloads
# =============================================================================


class SubscriptionPayload(_Payload):
    id: str
    status: str = ""
    customer: Optional[str] = None
    current_period_end: Optional[int] = None
    items: Optional[dict] = None

    @field_validator("customer", mode="before")
    @classmethod
    def _customer_id(cls, value: Any) -> Any:
        return _ref_id(value)

    @property
    def period_end(self) -> Optional[datetime]:
        value = self.current_period_end
        if value is None and self.items:
            data = self.items.get("data") or []
            if data:
                value = data[0].get("current_period_end")
        return from_unix(value)


class InvoicePayload(_Payload):
    id: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    parent: Optional[dict] = None

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def _reference_ids(cls, value: Any) -> Any:
        return _ref_id(value)

    @property
    def subscription_id(self) -> Optional[str]:
        """Subscription reference, from either invoice layout."""
        if self.subscription:
            return self.subscription
        details = (self.parent or {}).get("subscription_details") or {}
        return _ref_id(details.get("subscription"))


class CheckoutSessionPayload(_Payload):
    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    payment_status: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def _reference_ids(cls, value: Any) -> Any:
        return _ref_id(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value: Any) -> Any:
        return value or {}


# =============================================================================
# Events
# =============================================================================


class _Event(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    created: int = 0

    @property
    def created_at(self) -> Optional[datetime]:
        return from_unix(self.created) if self.created else None


class SubscriptionEvent(_Event):
    type: Literal["customer.subscription.created", "customer.subscription.updated"]
    subscription: SubscriptionPayload


class SubscriptionDeletedEvent(_Event):
    type: Literal["customer.subscription.deleted"]
    subscription: SubscriptionPayload


class InvoiceEvent(_Event):
    type: Literal["invoice.payment_succeeded", "invoice.payment_failed"]
    invoice: InvoicePayload


class CheckoutSessionCompletedEvent(_Event):
    type: Literal["checkout.session.completed"]
    session: CheckoutSessionPayload


class UnknownEvent(_Event):
    type: str
    reason: str = "unrecognized_type"


BillingEvent = Union[
    SubscriptionEvent,
    SubscriptionDeletedEvent,
    InvoiceEvent,
    CheckoutSessionCompletedEvent,
    UnknownEvent,
]

# event type -> (variant, name of the payload field)
EVENT_TYPES: dict[str, tuple[type[_Event], str]] = {
    "customer.subscription.created": (SubscriptionEvent, "subscription"),
    "customer.subscription.updated": (SubscriptionEvent, "subscription"),
    "customer.subscription.deleted": (SubscriptionDeletedEvent, "subscription"),
    "invoice.payment_succeeded": (InvoiceEvent, "invoice"),
    "invoice.payment_failed": (InvoiceEvent, "invoice"),
    "checkout.session.completed": (CheckoutSessionCompletedEvent, "session"),
}


def parse_event(raw: dict) -> BillingEvent:
    """Build the typed variant for a raw Stripe event envelope."""
    event_id = str(raw.get("id") or "")
    event_type = str(raw.get("type") or "")
    created = raw.get("created")
    if not isinstance(created, int):
        created = 0

    entry = EVENT_TYPES.get(event_type)
    if entry is None:
        return UnknownEvent(id=event_id, type=event_type, created=created)

    model, payload_field = entry
    data = raw.get("data") or {}
    try:
        return model.model_validate(
            {
                "id": event_id,
                "type": event_type,
                "created": created,
                payload_field: data.get("object"),
            }
        )
    except ValidationError:
        return UnknownEvent(
            id=event_id, type=event_type, created=created, reason="malformed_payload"
        )
