"""Admin router for rate rules, blocks and flags.

Paths under /admin/ are exempt from the block gate so an operator can
always reach the unblock controls.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from gatekeeper.auth.dependencies import CurrentUser, get_services, require_admin
from gatekeeper.errors import PersistenceWriteError, ValidationError
from gatekeeper.schemas.admin import (
    BlockEntry,
    FlagEntry,
    ListBlocksResponse,
    ListFlagsResponse,
    ListRateRulesResponse,
    RateRuleInfo,
    SetRateRuleRequest,
    SetRateRuleResponse,
    UnblockResponse,
)
from gatekeeper.services.container import GatekeeperServices

router = APIRouter(prefix="/admin", tags=["Admin"])


def _persistence_error(exc: PersistenceWriteError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": {
                "code": "PERSISTENCE_ERROR",
                "message": f"Change was not saved: {exc.message}",
            }
        },
    )


@router.get(
    "/rate-limits",
    response_model=ListRateRulesResponse,
    status_code=status.HTTP_200_OK,
)
async def list_rate_rules(
    services: GatekeeperServices = Depends(get_services),
    admin: CurrentUser = Depends(require_admin),
) -> ListRateRulesResponse:
    """
    List configured rate rules and the default rule.

    Requires admin role.
    """
    default = services.rules.default_rule
    items = [
        RateRuleInfo(endpoint=endpoint, max_requests=rule.max_requests, window_ms=rule.window_ms)
        for endpoint, rule in sorted(services.rules.all_rules().items())
    ]
    return ListRateRulesResponse(
        default=RateRuleInfo(
            endpoint="*",
            max_requests=default.max_requests,
            window_ms=default.window_ms,
        ),
        items=items,
    )


@router.post(
    "/rate-limits",
    response_model=SetRateRuleResponse,
    status_code=status.HTTP_200_OK,
)
async def set_rate_rule(
    data: SetRateRuleRequest,
    services: GatekeeperServices = Depends(get_services),
    admin: CurrentUser = Depends(require_admin),
) -> SetRateRuleResponse:
    """
    Create or replace the rate rule for an endpoint.

    Requires admin role. The rule applies to the next window of every client.
    """
    try:
        rule = services.rules.set_rule(data.endpoint, data.max_requests, data.window_ms)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": exc.message,
                }
            },
        )
    except PersistenceWriteError as exc:
        raise _persistence_error(exc)

    return SetRateRuleResponse(
        message=f"Rate limit rule set for {data.endpoint}",
        rule=RateRuleInfo(
            endpoint=data.endpoint,
            max_requests=rule.max_requests,
            window_ms=rule.window_ms,
        ),
    )


@router.get(
    "/blocked",
    response_model=ListBlocksResponse,
    status_code=status.HTTP_200_OK,
)
async def list_blocked(
    services: GatekeeperServices = Depends(get_services),
    admin: CurrentUser = Depends(require_admin),
) -> ListBlocksResponse:
    """List blocked users and IPs. Requires admin role."""
    items = [
        BlockEntry(key=key, reason=info.reason.value, timestamp=info.timestamp.isoformat())
        for key, info in services.blocks.all().items()
    ]
    return ListBlocksResponse(items=items)


@router.delete(
    "/blocked/{key}",
    response_model=UnblockResponse,
    status_code=status.HTTP_200_OK,
)
async def unblock(
    key: str,
    services: GatekeeperServices = Depends(get_services),
    admin: CurrentUser = Depends(require_admin),
) -> UnblockResponse:
    """
    Unblock a user id or IP.

    Requires admin role. The key stays flagged.
    """
    try:
        was_blocked = services.tracker.unblock(key)
    except PersistenceWriteError as exc:
        raise _persistence_error(exc)

    return UnblockResponse(
        message=f"Unblocked {key} (was blocked: {str(was_blocked).lower()})",
        key=key,
        was_blocked=was_blocked,
    )


@router.get(
    "/flags",
    response_model=ListFlagsResponse,
    status_code=status.HTTP_200_OK,
)
async def list_flags(
    services: GatekeeperServices = Depends(get_services),
    admin: CurrentUser = Depends(require_admin),
) -> ListFlagsResponse:
    """List flagged users and IPs. Requires admin role."""
    items = [
        FlagEntry(key=key, reason=info.reason.value, timestamp=info.timestamp.isoformat())
        for key, info in services.tracker.flags().items()
    ]
    return ListFlagsResponse(items=items)
