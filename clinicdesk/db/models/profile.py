"""User profile model.

Profiles are owned by the identity provider; this service only reads
them and flips trial_used / stripe_customer_id.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from clinicdesk.db.models.base import UUIDModel, TimestampMixin


class ProfileBase(SQLModel):
    """Base profile fields."""

    full_name: str
    email: str = Field(unique=True, index=True)
    whatsapp: Optional[str] = None


class Profile(UUIDModel, ProfileBase, TimestampMixin, table=True):
    """Profile table - global user identity."""

    __tablename__ = "profiles"

    # Reused across workspaces so one person maps to one processor customer
    stripe_customer_id: Optional[str] = Field(default=None, index=True)

    # Monotonic: false -> true, never reset
    trial_used: bool = Field(default=False)


class ProfileRead(ProfileBase):
    """Schema for reading profile data."""

    id: UUID
    stripe_customer_id: Optional[str]
    trial_used: bool
    created_at: datetime
