"""Workspace routes.

Creation (direct path), listing, owner edits, plan change and soft delete.
"""

from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator

from api.auth.dependencies import CurrentUserDep
from api.responses import ERROR_RESPONSES, ApiResponse
from api.routes.v1.dependencies import GatewayDep, OwnerCtx, SessionDep, WorkspaceCtx
from api.services.workspace_service import WorkspaceService
from clinicdesk.billing.intent import SettingsData, WorkspaceData
from clinicdesk.db.models import (
    Workspace,
    WorkspaceMember,
    WorkspaceMemberRead,
    WorkspaceRead,
    WorkspaceSettings,
    WorkspaceSettingsRead,
)


router = APIRouter(prefix="/v1", tags=["workspaces"], responses=ERROR_RESPONSES)


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateWorkspaceRequest(WorkspaceData):
    """Request to create a workspace and its subscription."""

    plan_type: str
    settings: SettingsData = Field(default_factory=SettingsData)


class UpdateWorkspaceRequest(BaseModel):
    """Owner-editable workspace fields. Status and plan are not editable here."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    cpf_cnpj: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=200)
    number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=2)
    zip_code: Optional[str] = Field(None, max_length=10)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("name cannot be cleared")
        return v


class UpdateSettingsRequest(BaseModel):
    """Owner-editable settings."""

    appointment_duration: Optional[int] = Field(None, gt=0, le=480)
    reminder_hours_before: Optional[int] = Field(None, ge=0, le=168)


class ChangePlanRequest(BaseModel):
    new_plan_type: str


class WorkspaceBundle(BaseModel):
    """A workspace with its settings and the caller's membership."""

    workspace: WorkspaceRead
    settings: Optional[WorkspaceSettingsRead] = None
    member: Optional[WorkspaceMemberRead] = None


def _bundle(
    workspace: Workspace,
    settings: Optional[WorkspaceSettings] = None,
    member: Optional[WorkspaceMember] = None,
) -> WorkspaceBundle:
    return WorkspaceBundle(
        workspace=WorkspaceRead.model_validate(workspace),
        settings=WorkspaceSettingsRead.model_validate(settings) if settings else None,
        member=WorkspaceMemberRead.model_validate(member) if member else None,
    )


# =============================================================================
# Caller's workspaces
# =============================================================================


@router.get("/workspaces", response_model=ApiResponse[list[WorkspaceBundle]])
async def list_my_workspaces(
    current_user: CurrentUserDep,
    session: SessionDep,
    gateway: GatewayDep,
):
    """List the workspaces the caller is an active member of."""
    service = WorkspaceService(session, gateway)
    rows = service.list_workspaces(current_user.user_id)
    return ApiResponse(
        data=[_bundle(workspace, settings, member) for member, workspace, settings in rows]
    )


@router.post(
    "/workspaces",
    response_model=ApiResponse[WorkspaceBundle],
    status_code=status.HTTP_201_CREATED,
)
async def create_workspace(
    request: CreateWorkspaceRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    gateway: GatewayDep,
):
    """Create a workspace with a Stripe subscription.

    The caller becomes the owner. A first workspace starts a 7-day trial;
    later ones start as payment_pending.
    """
    service = WorkspaceService(session, gateway)
    bundle = service.create_workspace(
        user_id=current_user.user_id,
        plan_type=request.plan_type,
        workspace_data=WorkspaceData.model_validate(
            request.model_dump(exclude={"plan_type", "settings"})
        ),
        settings_data=request.settings,
    )
    return ApiResponse(data=_bundle(bundle.workspace, bundle.settings, bundle.member))


# =============================================================================
# Single workspace
# =============================================================================


@router.get("/workspaces/{workspace_id}", response_model=ApiResponse[WorkspaceBundle])
async def get_workspace(ctx: WorkspaceCtx, session: SessionDep, gateway: GatewayDep):
    """Workspace details with settings and the caller's membership."""
    service = WorkspaceService(session, gateway)
    settings = service.get_settings(ctx.workspace)
    return ApiResponse(data=_bundle(ctx.workspace, settings, ctx.membership))


@router.patch("/workspaces/{workspace_id}", response_model=ApiResponse[WorkspaceRead])
async def update_workspace(
    request: UpdateWorkspaceRequest,
    ctx: OwnerCtx,
    session: SessionDep,
    gateway: GatewayDep,
):
    """Edit name, tax id and address. Owner only."""
    service = WorkspaceService(session, gateway)
    workspace = service.update_workspace(
        ctx.workspace, request.model_dump(exclude_unset=True)
    )
    return ApiResponse(data=WorkspaceRead.model_validate(workspace))


@router.patch(
    "/workspaces/{workspace_id}/settings",
    response_model=ApiResponse[WorkspaceSettingsRead],
)
async def update_workspace_settings(
    request: UpdateSettingsRequest,
    ctx: OwnerCtx,
    session: SessionDep,
    gateway: GatewayDep,
):
    """Edit appointment duration and reminder lead time. Owner only."""
    service = WorkspaceService(session, gateway)
    settings = service.update_settings(
        ctx.workspace, request.model_dump(exclude_unset=True, exclude_none=True)
    )
    return ApiResponse(data=WorkspaceSettingsRead.model_validate(settings))


@router.post(
    "/workspaces/{workspace_id}/change-plan",
    response_model=ApiResponse[WorkspaceRead],
)
async def change_plan(
    request: ChangePlanRequest,
    ctx: OwnerCtx,
    session: SessionDep,
    gateway: GatewayDep,
):
    """Switch plan with prorated billing. Owner only."""
    service = WorkspaceService(session, gateway)
    workspace = service.change_plan(ctx.workspace, request.new_plan_type)
    return ApiResponse(data=WorkspaceRead.model_validate(workspace))


@router.delete("/workspaces/{workspace_id}", response_model=ApiResponse[WorkspaceRead])
async def delete_workspace(ctx: OwnerCtx, session: SessionDep, gateway: GatewayDep):
    """Soft delete: cancel the subscription and mark the workspace cancelled."""
    service = WorkspaceService(session, gateway)
    workspace = service.delete_workspace(ctx.workspace)
    return ApiResponse(data=WorkspaceRead.model_validate(workspace))
