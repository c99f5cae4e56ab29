"""Shared-secret unblock, reachable even when the admin's own IP is blocked."""

import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from gatekeeper.auth.dependencies import get_services
from gatekeeper.errors import PersistenceWriteError
from gatekeeper.schemas.admin import EmergencyUnblockRequest, UnblockResponse
from gatekeeper.services.container import GatekeeperServices

logger = logging.getLogger(__name__)

EMERGENCY_UNBLOCK_PATH = "/emergency-unblock"

router = APIRouter(tags=["Admin"])


@router.post(
    EMERGENCY_UNBLOCK_PATH,
    response_model=UnblockResponse,
    status_code=status.HTTP_200_OK,
)
async def emergency_unblock(
    data: EmergencyUnblockRequest,
    services: GatekeeperServices = Depends(get_services),
) -> UnblockResponse:
    """
    Unblock a key using the configured unblock secret.

    Bypasses the admission pipeline and token auth, for recovering an
    operator who blocked themselves.
    """
    expected = services.settings.unblock_secret
    if not data.key or not hmac.compare_digest(data.secret.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": {
                    "code": "FORBIDDEN",
                    "message": "Invalid secret or key",
                }
            },
        )

    try:
        was_blocked = services.tracker.unblock(data.key)
    except PersistenceWriteError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": {
                    "code": "PERSISTENCE_ERROR",
                    "message": f"Change was not saved: {exc.message}",
                }
            },
        )

    logger.warning("Emergency unblock for %s (was blocked: %s)", data.key, was_blocked)
    return UnblockResponse(
        message=f"Emergency unblock for {data.key} (was blocked: {str(was_blocked).lower()})",
        key=data.key,
        was_blocked=was_blocked,
    )
