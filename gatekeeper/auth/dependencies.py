"""Authentication dependencies for FastAPI endpoints."""

from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from gatekeeper.auth.jwt import decode_token
from gatekeeper.config import Settings
from gatekeeper.services.container import GatekeeperServices


class CurrentUser(BaseModel):
    """Identity carried by a verified bearer token."""

    id: str
    username: str | None = None
    role: str = "user"


def get_services(request: Request) -> GatekeeperServices:
    """Service container created by the application factory."""
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.services.settings


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_optional_user_id(request: Request, settings: Settings) -> str | None:
    """User id from a valid bearer token on the request, if any."""
    token = _bearer_token(request.headers.get("Authorization"))
    if token is None:
        return None
    payload = decode_token(token, settings)
    return str(payload["sub"]) if payload else None


async def get_current_user(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    """
    Validate the bearer token and return the authenticated user.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "UNAUTHORIZED",
                    "message": "Bearer token required",
                }
            },
        )

    payload = decode_token(token, settings)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "UNAUTHORIZED",
                    "message": "Invalid or expired token",
                }
            },
        )

    return CurrentUser(
        id=str(payload["sub"]),
        username=payload.get("username"),
        role=payload.get("role", "user"),
    )


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Require the authenticated user to have admin role.

    Raises:
        HTTPException: 403 if user doesn't have admin role
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": {
                    "code": "FORBIDDEN",
                    "message": "Admin access required",
                }
            },
        )

    return user
