"""Workspace provisioning and trial eligibility."""

from clinicdesk.provisioning.errors import (
    InvalidPlanError,
    ProfileNotFoundError,
    ProvisioningError,
    ProvisioningFailure,
)
from clinicdesk.provisioning.provisioner import ProvisionedWorkspace, WorkspaceProvisioner
from clinicdesk.provisioning.trial import TrialEligibilityGuard, trial_end

__all__ = [
    "InvalidPlanError",
    "ProfileNotFoundError",
    "ProvisioningError",
    "ProvisioningFailure",
    "ProvisionedWorkspace",
    "WorkspaceProvisioner",
    "TrialEligibilityGuard",
    "trial_end",
]
