"""SQLModel table definitions.

Model Categories:
- Tenancy: Workspace, WorkspaceSettings, WorkspaceMember
- Identity: Profile
- Billing: OrphanedBillingResource
"""

# Base class
from clinicdesk.db.models.base import UTCDateTime, UUIDModel, TimestampMixin, utcnow, from_unix

# Tenancy models
from clinicdesk.db.models.workspace import (
    Workspace, WorkspaceRead, WorkspaceProfileFields,
    WorkspaceSettings, WorkspaceSettingsBase, WorkspaceSettingsRead,
    WorkspaceStatus, PlanType,
    DEFAULT_APPOINTMENT_DURATION, DEFAULT_REMINDER_HOURS_BEFORE,
)
from clinicdesk.db.models.membership import (
    WorkspaceMember, WorkspaceMemberRead, WorkspaceRole,
)

# Identity models
from clinicdesk.db.models.profile import Profile, ProfileRead

# Billing models
from clinicdesk.db.models.billing import OrphanedBillingResource

__all__ = [
    "UTCDateTime",
    "UUIDModel",
    "TimestampMixin",
    "utcnow",
    "from_unix",
    "Workspace",
    "WorkspaceRead",
    "WorkspaceProfileFields",
    "WorkspaceSettings",
    "WorkspaceSettingsBase",
    "WorkspaceSettingsRead",
    "WorkspaceStatus",
    "PlanType",
    "DEFAULT_APPOINTMENT_DURATION",
    "DEFAULT_REMINDER_HOURS_BEFORE",
    "WorkspaceMember",
    "WorkspaceMemberRead",
    "WorkspaceRole",
    "Profile",
    "ProfileRead",
    "OrphanedBillingResource",
]
