"""v1 API routes.

Workspace-scoped routes use /api/v1/workspaces/{workspace_id}/...
User-level routes use /api/v1/users/me/...
"""

from api.routes.v1.workspaces import router as workspaces_router
from api.routes.v1.billing import router as billing_router, webhook_router
from api.routes.v1.users import router as users_router

__all__ = [
    "workspaces_router",
    "billing_router",
    "webhook_router",
    "users_router",
]
