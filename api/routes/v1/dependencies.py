"""Dependencies for workspace-scoped routes.

Provides FastAPI dependencies to:
- Resolve the Stripe gateway (overridable in tests)
- Load the workspace from the URL and verify the caller's membership
- Restrict owner-only actions
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Path, status
from sqlmodel import Session

from api.auth.dependencies import CurrentUser, get_current_user
from clinicdesk.billing.gateway import StripeGateway
from clinicdesk.db.engine import get_session_dependency
from clinicdesk.db.models import Workspace, WorkspaceMember
from clinicdesk.logging import bind_context
from clinicdesk.repositories import WorkspaceMemberRepository, WorkspaceRepository


_gateway = StripeGateway()


def get_gateway() -> StripeGateway:
    """The process-wide Stripe gateway."""
    return _gateway


SessionDep = Annotated[Session, Depends(get_session_dependency)]
GatewayDep = Annotated[StripeGateway, Depends(get_gateway)]


class WorkspaceContext:
    """Workspace, the caller's membership and the caller."""

    def __init__(
        self,
        workspace: Workspace,
        membership: WorkspaceMember,
        current_user: CurrentUser,
    ):
        self.workspace = workspace
        self.membership = membership
        self.current_user = current_user

    @property
    def workspace_id(self) -> UUID:
        return self.workspace.id

    @property
    def user_id(self) -> UUID:
        return self.current_user.user_id

    @property
    def is_owner(self) -> bool:
        return self.membership.is_active_owner


async def get_workspace_context(
    workspace_id: Annotated[UUID, Path(description="Workspace UUID")],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: SessionDep,
) -> WorkspaceContext:
    """Load the workspace from the path and check membership.

    Raises:
        HTTPException 404: Workspace not found
        HTTPException 403: Caller is not an active member
    """
    workspace = WorkspaceRepository(session).get(workspace_id)
    if not workspace:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workspace not found",
        )

    membership = WorkspaceMemberRepository(session).get_active(
        workspace_id, current_user.user_id
    )
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this workspace",
        )

    bind_context(workspace_id=workspace_id)
    return WorkspaceContext(
        workspace=workspace,
        membership=membership,
        current_user=current_user,
    )


async def require_owner(
    ctx: Annotated[WorkspaceContext, Depends(get_workspace_context)],
) -> WorkspaceContext:
    """Like get_workspace_context, but only for the active owner.

    Raises:
        HTTPException 403: Caller is a member but not the owner
    """
    if not ctx.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the workspace owner can perform this action",
        )
    return ctx


WorkspaceCtx = Annotated[WorkspaceContext, Depends(get_workspace_context)]
OwnerCtx = Annotated[WorkspaceContext, Depends(require_owner)]
