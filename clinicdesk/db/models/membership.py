"""Workspace membership model.

Links a user profile to a workspace. Exactly one owner membership is
created when a workspace is provisioned; only an active owner may change
the workspace, its settings or its plan.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from clinicdesk.db.models.base import UTCDateTime, UUIDModel, TimestampMixin, utcnow


class WorkspaceRole(str, Enum):
    """Role enum for workspace memberships.

    - owner: billing owner, may edit, change plan and delete
    - member: uses the workspace, no administrative rights
    """

    owner = "owner"
    member = "member"


class WorkspaceMemberBase(SQLModel):
    """Base membership fields."""

    role: WorkspaceRole = Field(default=WorkspaceRole.member)
    is_active: bool = Field(default=True)


class WorkspaceMember(UUIDModel, WorkspaceMemberBase, TimestampMixin, table=True):
    """Workspace membership table."""

    __tablename__ = "workspace_members"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    user_id: UUID = Field(foreign_key="profiles.id", index=True)
    joined_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    @property
    def is_active_owner(self) -> bool:
        return self.is_active and self.role == WorkspaceRole.owner


class WorkspaceMemberRead(WorkspaceMemberBase):
    """Schema for reading membership data."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    joined_at: datetime
    created_at: datetime
    updated_at: Optional[datetime]
