"""Repository classes for Workspace, WorkspaceSettings and WorkspaceMember.

Each write commits immediately. Provisioning relies on that: the
workspace, settings and owner rows are separate commits undone by
compensating deletes rather than one database transaction.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from clinicdesk.db.models import (
    Workspace,
    WorkspaceSettings,
    WorkspaceMember,
    utcnow,
)


# =============================================================================
# Workspace Repository
# =============================================================================


class WorkspaceRepository:
    """Repository for Workspace operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, workspace: Workspace) -> Workspace:
        """Insert a new workspace row."""
        self.session.add(workspace)
        self.session.commit()
        self.session.refresh(workspace)
        return workspace

    def get(self, workspace_id: UUID) -> Optional[Workspace]:
        """Get a workspace by ID."""
        return self.session.get(Workspace, workspace_id)

    def get_by_subscription(self, subscription_id: str) -> Optional[Workspace]:
        """Get the workspace bound to a processor subscription."""
        statement = select(Workspace).where(
            Workspace.stripe_subscription_id == subscription_id
        )
        return self.session.exec(statement).first()

    def get_by_customer(self, customer_id: str) -> Optional[Workspace]:
        """Get the most recently created workspace for a processor customer."""
        statement = (
            select(Workspace)
            .where(Workspace.stripe_customer_id == customer_id)
            .order_by(Workspace.created_at.desc())
        )
        return self.session.exec(statement).first()

    def list_by_member(self, user_id: UUID) -> list[tuple[WorkspaceMember, Workspace]]:
        """List (membership, workspace) pairs for a user's active memberships."""
        statement = (
            select(WorkspaceMember, Workspace)
            .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
            .where(
                WorkspaceMember.user_id == user_id,
                WorkspaceMember.is_active == True,  # noqa: E712
            )
            .order_by(Workspace.created_at)
        )
        return list(self.session.exec(statement).all())

    def update(self, workspace: Workspace, **fields) -> Workspace:
        """Assign fields on a workspace and commit.

        Nothing is written when every field already holds its value, so
        replayed events leave updated_at alone too.
        """
        changed = {
            key: value for key, value in fields.items() if getattr(workspace, key) != value
        }
        if not changed:
            return workspace
        for key, value in changed.items():
            setattr(workspace, key, value)
        workspace.updated_at = utcnow()
        self.session.add(workspace)
        self.session.commit()
        self.session.refresh(workspace)
        return workspace

    def delete(self, workspace_id: UUID) -> bool:
        """Hard delete a workspace row. Only used for provisioning rollback."""
        workspace = self.get(workspace_id)
        if workspace:
            self.session.delete(workspace)
            self.session.commit()
            return True
        return False


# =============================================================================
# Workspace Settings Repository
# =============================================================================


class WorkspaceSettingsRepository:
    """Repository for WorkspaceSettings operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, settings: WorkspaceSettings) -> WorkspaceSettings:
        """Insert a settings row."""
        self.session.add(settings)
        self.session.commit()
        self.session.refresh(settings)
        return settings

    def get(self, workspace_id: UUID) -> Optional[WorkspaceSettings]:
        """Get the settings of a workspace."""
        return self.session.get(WorkspaceSettings, workspace_id)

    def update(self, settings: WorkspaceSettings, **fields) -> WorkspaceSettings:
        """Assign fields on a settings row and commit."""
        for key, value in fields.items():
            setattr(settings, key, value)
        settings.updated_at = utcnow()
        self.session.add(settings)
        self.session.commit()
        self.session.refresh(settings)
        return settings

    def delete(self, workspace_id: UUID) -> bool:
        """Delete the settings of a workspace. Returns True if deleted."""
        settings = self.get(workspace_id)
        if settings:
            self.session.delete(settings)
            self.session.commit()
            return True
        return False


# =============================================================================
# Workspace Member Repository
# =============================================================================


class WorkspaceMemberRepository:
    """Repository for WorkspaceMember operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, member: WorkspaceMember) -> WorkspaceMember:
        """Insert a membership row."""
        self.session.add(member)
        self.session.commit()
        self.session.refresh(member)
        return member

    def get_active(self, workspace_id: UUID, user_id: UUID) -> Optional[WorkspaceMember]:
        """Get a user's active membership in a workspace."""
        statement = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.is_active == True,  # noqa: E712
        )
        return self.session.exec(statement).first()
