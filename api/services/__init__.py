"""API services module."""

from api.services.workspace_service import WorkspaceService
from api.services.checkout_service import CheckoutService
from api.services.billing_service import BillingService

__all__ = [
    "WorkspaceService",
    "CheckoutService",
    "BillingService",
]
