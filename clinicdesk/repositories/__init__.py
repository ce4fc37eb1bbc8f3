"""Repositories wrapping SQLModel sessions per aggregate."""

from clinicdesk.repositories.workspace_repository import (
    WorkspaceRepository,
    WorkspaceSettingsRepository,
    WorkspaceMemberRepository,
)
from clinicdesk.repositories.profile_repository import ProfileRepository
from clinicdesk.repositories.billing_repository import OrphanedBillingResourceRepository

__all__ = [
    "WorkspaceRepository",
    "WorkspaceSettingsRepository",
    "WorkspaceMemberRepository",
    "ProfileRepository",
    "OrphanedBillingResourceRepository",
]
