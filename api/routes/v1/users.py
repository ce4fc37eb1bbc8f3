"""User-level routes (not workspace-scoped)."""

from fastapi import APIRouter
from pydantic import BaseModel

from api.auth.dependencies import CurrentUserDep
from api.exceptions import NotFoundError
from api.responses import ERROR_RESPONSES, ApiResponse
from api.routes.v1.dependencies import SessionDep
from clinicdesk.provisioning import ProfileNotFoundError, TrialEligibilityGuard

router = APIRouter(prefix="/v1/users/me", tags=["users"], responses=ERROR_RESPONSES)


class TrialStatus(BaseModel):
    trial_used: bool
    trial_days: int


@router.get("/trial-status", response_model=ApiResponse[TrialStatus])
async def get_trial_status(current_user: CurrentUserDep, session: SessionDep):
    """Whether the caller has already used their one trial."""
    try:
        trial = TrialEligibilityGuard(session).trial_status(current_user.user_id)
    except ProfileNotFoundError as e:
        raise NotFoundError("Profile not found", error_code="PROFILE_NOT_FOUND") from e
    return ApiResponse(data=TrialStatus(**trial))
