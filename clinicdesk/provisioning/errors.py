"""Errors raised by workspace provisioning."""

from typing import Optional


class ProvisioningFailure(Exception):
    """Base class for provisioning errors."""


class InvalidPlanError(ProvisioningFailure):
    """Plan identifier is not in the catalog."""

    def __init__(self, plan_type: object):
        self.plan_type = plan_type
        super().__init__(f"Invalid plan type: {plan_type}")


class ProfileNotFoundError(ProvisioningFailure):
    """No profile exists for the caller."""

    def __init__(self, user_id: object):
        self.user_id = user_id
        super().__init__(f"Profile not found: {user_id}")


class ProvisioningError(ProvisioningFailure):
    """A local write of the workspace bundle failed.

    step names the insert that failed: workspace, settings or member.
    """

    def __init__(self, step: str, message: str, workspace_id: Optional[object] = None):
        self.step = step
        self.message = message
        self.workspace_id = workspace_id
        super().__init__(message)
