"""JWT verification for bearer tokens issued by the auth service."""

from jose import jwt

from gatekeeper.config import Settings


def decode_token(token: str, settings: Settings) -> dict | None:
    """
    Decode and validate a JWT token.

    Returns the payload if valid, None if invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload
