"""Protected demo endpoint with its own rate rule."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status

from gatekeeper.auth.dependencies import CurrentUser, get_current_user
from gatekeeper.schemas.submit import SubmitRequest, SubmitResponse

SUBMIT_PATH = "/api/submit"
SUBMIT_MAX_REQUESTS = 5
SUBMIT_WINDOW_MS = 10_000

router = APIRouter(tags=["Submit"])


@router.post(
    SUBMIT_PATH,
    response_model=SubmitResponse,
    status_code=status.HTTP_200_OK,
)
async def submit(
    request: Request,
    data: SubmitRequest,
    user: CurrentUser = Depends(get_current_user),
) -> SubmitResponse:
    """
    Accept a message from an authenticated user.

    Rate limited to 5 requests per 10 seconds per client unless an admin
    sets another rule.
    """
    return SubmitResponse(
        success=True,
        message="Data received and logged",
        data={"message": data.message, "userId": data.user_id},
        user={
            **user.model_dump(),
            "suspicious": getattr(request.state, "is_suspicious", False),
        },
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
