"""Workspace and workspace settings models.

A workspace is the tenant unit (one clinic). Its plan limits are a
denormalized copy of the plan catalog entry and must be rewritten on
every plan change. Status only moves through the subscription state
machine in clinicdesk.billing.reconciler.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from clinicdesk.db.models.base import UTCDateTime, UUIDModel, TimestampMixin, utcnow


class WorkspaceStatus(str, Enum):
    """Local billing state of a workspace.

    inactive is the fallback for any remote subscription status the
    mapping does not recognize.
    """

    trial = "trial"
    active = "active"
    inactive = "inactive"
    payment_pending = "payment_pending"
    cancelled = "cancelled"
    suspended = "suspended"


class PlanType(str, Enum):
    """Catalog plan identifiers."""

    individual = "individual"
    fono_plus = "fono_plus"
    pro = "pro"


class WorkspaceProfileFields(SQLModel):
    """Identity and postal address fields editable by the owner."""

    name: str = Field(index=True)
    cpf_cnpj: Optional[str] = None
    address: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class Workspace(UUIDModel, WorkspaceProfileFields, TimestampMixin, table=True):
    """Workspace table - the tenant boundary.

    Never hard-deleted by the API: deletion is a transition to cancelled.
    """

    __tablename__ = "workspaces"

    status: WorkspaceStatus = Field(default=WorkspaceStatus.payment_pending, index=True)
    plan_type: PlanType

    # Processor references
    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, index=True)

    trial_ends_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    subscription_ends_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    # Denormalized plan limits, -1 = unlimited
    max_patients: int
    max_members: int

    # Creation time of the newest processor event applied to this row
    last_event_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class WorkspaceRead(WorkspaceProfileFields):
    """Schema for reading workspace data."""

    id: UUID
    status: WorkspaceStatus
    plan_type: PlanType
    stripe_customer_id: Optional[str]
    stripe_subscription_id: Optional[str]
    trial_ends_at: datetime
    subscription_ends_at: Optional[datetime]
    max_patients: int
    max_members: int
    created_at: datetime
    updated_at: Optional[datetime]


# =============================================================================
# Workspace Settings
# =============================================================================


DEFAULT_APPOINTMENT_DURATION = 50
DEFAULT_REMINDER_HOURS_BEFORE = 24


class WorkspaceSettingsBase(SQLModel):
    """Scheduling preferences of a workspace."""

    appointment_duration: int = Field(default=DEFAULT_APPOINTMENT_DURATION)
    reminder_hours_before: int = Field(default=DEFAULT_REMINDER_HOURS_BEFORE)
    allow_online_booking: bool = Field(default=False)


class WorkspaceSettings(WorkspaceSettingsBase, TimestampMixin, table=True):
    """Workspace settings table, 1:1 with workspaces."""

    __tablename__ = "workspace_settings"

    workspace_id: UUID = Field(foreign_key="workspaces.id", primary_key=True)


class WorkspaceSettingsRead(WorkspaceSettingsBase):
    """Schema for reading workspace settings."""

    workspace_id: UUID
    created_at: datetime
    updated_at: Optional[datetime]
