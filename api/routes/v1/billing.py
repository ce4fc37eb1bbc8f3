"""Billing routes: plan catalog, hosted checkout and the Stripe webhook."""

from typing import Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, ConfigDict, Field

from api.auth.dependencies import CurrentUserDep
from api.responses import ERROR_RESPONSES, ApiResponse, ErrorResponse, WebhookAck
from api.routes.v1.dependencies import GatewayDep, SessionDep
from api.services.billing_service import BillingService
from api.services.checkout_service import CheckoutService
from clinicdesk.billing import plans
from clinicdesk.billing.intent import SettingsData, WorkspaceData
from clinicdesk.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["billing"], responses=ERROR_RESPONSES)
webhook_router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


# =============================================================================
# Request/Response Models
# =============================================================================


class CheckoutWorkspaceData(WorkspaceData):
    """Workspace fields plus initial settings, as sent by the wizard."""

    settings: SettingsData = Field(default_factory=SettingsData)


class CreateCheckoutRequest(BaseModel):
    """Request to start hosted checkout for a new workspace.

    The wizard posts camelCase keys; snake_case is accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    workspace_data: CheckoutWorkspaceData = Field(alias="workspaceData")
    plan_type: str = Field(alias="planType")
    trial_available: bool = Field(default=False, alias="trialAvailable")


class CheckoutResponse(BaseModel):
    """Response with checkout session URL."""

    url: Optional[str]
    session_id: str


class PlanSummary(BaseModel):
    id: str
    name: str
    description: str
    price: int
    max_patients: int
    max_members: int
    features: list[str]
    popular: bool


# =============================================================================
# Plans
# =============================================================================


@router.get("/plans", response_model=ApiResponse[list[PlanSummary]])
async def list_plans():
    """Public plan catalog. No authentication required."""
    return ApiResponse(
        data=[
            PlanSummary(**plan.model_dump(exclude={"stripe_price_id"}))
            for plan in plans.list_plans()
        ]
    )


# =============================================================================
# Checkout
# =============================================================================


@router.post("/checkout/sessions", response_model=ApiResponse[CheckoutResponse])
async def create_checkout_session(
    request: CreateCheckoutRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    gateway: GatewayDep,
):
    """Create a Stripe checkout session for a new workspace.

    The workspace is created when Stripe reports the session completed.
    """
    service = CheckoutService(session, gateway)
    checkout = service.create_session(
        current_user,
        plan_type=request.plan_type,
        workspace_data=WorkspaceData.model_validate(
            request.workspace_data.model_dump(exclude={"settings"})
        ),
        settings_data=request.workspace_data.settings,
        trial_available=request.trial_available,
    )
    return ApiResponse(data=CheckoutResponse(url=checkout.url, session_id=checkout.id))


# =============================================================================
# Webhooks
# =============================================================================


@webhook_router.post(
    "/stripe",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def stripe_webhook(
    request: Request,
    session: SessionDep,
    gateway: GatewayDep,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    """Handle incoming Stripe webhooks.

    Verifies the signature on the raw body and applies the event.
    Unrecognized or unmatched events are still acknowledged.
    """
    payload = await request.body()
    BillingService(session, gateway).handle_webhook(payload, stripe_signature)
    return WebhookAck()
