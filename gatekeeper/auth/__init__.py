"""Authentication utilities for the gatekeeper API."""

from gatekeeper.auth.jwt import decode_token

__all__ = [
    "decode_token",
]
