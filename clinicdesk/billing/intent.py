"""Pending provisioning intent carried through hosted checkout.

A checkout session is created before its workspace exists, so the whole
creation request rides in the session metadata until the
checkout.session.completed event arrives. The value is a versioned JSON
document under a single metadata key. Sessions created with the older flat
layout (userId / planType / workspaceData / isFirstWorkspace) still decode.
"""

import json
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from clinicdesk.db.models import DEFAULT_APPOINTMENT_DURATION, DEFAULT_REMINDER_HOURS_BEFORE

INTENT_METADATA_KEY = "provisioning_intent"
INTENT_VERSION = 1

# Stripe rejects metadata values longer than this
METADATA_VALUE_LIMIT = 500

_LEGACY_KEYS = ("userId", "workspaceData")


class IntentTooLargeError(ValueError):
    """Serialized intent does not fit in one metadata value."""


class MalformedIntentError(ValueError):
    """Metadata carries an intent that cannot be decoded."""


class WorkspaceData(BaseModel):
    """Identity and address fields of a workspace being created."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=100)
    cpf_cnpj: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=200)
    number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=2)
    zip_code: Optional[str] = Field(None, max_length=10)


class SettingsData(BaseModel):
    """Initial scheduling settings of a workspace being created."""

    model_config = ConfigDict(extra="ignore")

    appointment_duration: int = Field(DEFAULT_APPOINTMENT_DURATION, gt=0, le=480)
    reminder_hours_before: int = Field(DEFAULT_REMINDER_HOURS_BEFORE, ge=0, le=168)


class ProvisioningIntent(BaseModel):
    """Everything Path B needs to create the workspace bundle."""

    v: int = INTENT_VERSION
    user_id: UUID
    plan_type: str
    trial: bool = False
    workspace: WorkspaceData
    settings: SettingsData = Field(default_factory=SettingsData)

    def to_metadata(self) -> dict[str, str]:
        """Encode for checkout session metadata.

        Raises:
            IntentTooLargeError: If the encoded value exceeds the metadata
                value limit.
        """
        value = self.model_dump_json(exclude_none=True)
        if len(value) > METADATA_VALUE_LIMIT:
            raise IntentTooLargeError(
                f"Workspace data too large for checkout "
                f"({len(value)} > {METADATA_VALUE_LIMIT} characters)"
            )
        return {
            INTENT_METADATA_KEY: value,
            "user_id": str(self.user_id),
            "plan_type": self.plan_type,
        }

    @classmethod
    def from_metadata(cls, metadata: Optional[dict]) -> Optional["ProvisioningIntent"]:
        """Decode an intent from metadata.

        Returns None when the metadata carries no intent at all (a
        plan-change checkout, for example).

        Raises:
            MalformedIntentError: Intent keys are present but unusable.
        """
        metadata = metadata or {}
        if INTENT_METADATA_KEY in metadata:
            try:
                intent = cls.model_validate_json(metadata[INTENT_METADATA_KEY])
            except ValidationError as e:
                raise MalformedIntentError(str(e)) from e
            if intent.v != INTENT_VERSION:
                raise MalformedIntentError(f"Unsupported intent version: {intent.v}")
            return intent

        if any(key in metadata for key in _LEGACY_KEYS):
            return cls._from_legacy(metadata)
        return None

    @classmethod
    def _from_legacy(cls, metadata: dict) -> "ProvisioningIntent":
        try:
            workspace_data = json.loads(metadata.get("workspaceData") or "")
        except ValueError as e:
            raise MalformedIntentError("workspaceData is not valid JSON") from e
        if not isinstance(workspace_data, dict):
            raise MalformedIntentError("workspaceData must be an object")

        settings = workspace_data.pop("settings", None) or {}
        try:
            return cls(
                user_id=metadata.get("userId"),
                plan_type=metadata.get("planType"),
                trial=metadata.get("isFirstWorkspace") == "true",
                workspace=workspace_data,
                settings=settings,
            )
        except ValidationError as e:
            raise MalformedIntentError(str(e)) from e
