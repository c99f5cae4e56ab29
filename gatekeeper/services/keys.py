"""Client identity normalization."""

LOOPBACK_IPV4 = "127.0.0.1"
_LOOPBACK_ALIASES = frozenset({"::1", "::ffff:127.0.0.1"})


def normalize_ip(ip: str) -> str:
    """Collapse IPv6 loopback forms to ``127.0.0.1``; anything else is unchanged."""
    return LOOPBACK_IPV4 if ip in _LOOPBACK_ALIASES else ip


def resolve_client_key(ip: str, user_id: str | None = None) -> str:
    """Tracking key for a client: the user id when authenticated, else the normalized IP."""
    return user_id or normalize_ip(ip)
