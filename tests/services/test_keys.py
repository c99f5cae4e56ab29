"""Tests for client key normalization and resolution."""

import pytest

from gatekeeper.services.keys import normalize_ip, resolve_client_key


class TestNormalizeIp:
    """Tests for normalize_ip."""

    @pytest.mark.parametrize("ip", ["::1", "::ffff:127.0.0.1", "127.0.0.1"])
    def test_loopback_variants_collapse(self, ip: str):
        """IPv6 loopback forms map to the IPv4 loopback address."""
        assert normalize_ip(ip) == "127.0.0.1"

    @pytest.mark.parametrize("ip", ["10.0.0.5", "::ffff:10.0.0.5", "2001:db8::1", "unknown"])
    def test_other_addresses_unchanged(self, ip: str):
        """Anything that is not a loopback alias passes through."""
        assert normalize_ip(ip) == ip


class TestResolveClientKey:
    """Tests for resolve_client_key."""

    def test_user_id_overrides_ip(self):
        assert resolve_client_key("10.0.0.5", "u1") == "u1"

    def test_falls_back_to_normalized_ip(self):
        assert resolve_client_key("::1") == "127.0.0.1"
        assert resolve_client_key("::1", None) == "127.0.0.1"
