"""Tests for client address resolution."""

from unittest.mock import MagicMock, patch

from claimguard.core.request_utils import UNKNOWN_CLIENT_IP, _is_valid_ip, get_client_ip


def _request(headers: dict[str, str] | None = None, peer: str | None = None) -> MagicMock:
    """Build a mock request with the given headers and socket peer."""
    request = MagicMock()
    values = headers or {}
    request.headers.get = lambda key, default=None: values.get(key, default)
    if peer:
        request.client = MagicMock()
        request.client.host = peer
    else:
        request.client = None
    return request


class TestIsValidIP:
    """Tests for _is_valid_ip."""

    def test_accepts_ipv4_and_ipv6(self):
        assert _is_valid_ip("203.0.113.9") is True
        assert _is_valid_ip("0.0.0.0") is True
        assert _is_valid_ip("::1") is True
        assert _is_valid_ip("2001:db8::1") is True

    def test_rejects_garbage(self):
        assert _is_valid_ip("") is False
        assert _is_valid_ip("claim.example.test") is False
        assert _is_valid_ip("300.1.1.1") is False
        assert _is_valid_ip("203.0.113.9:443") is False
        assert _is_valid_ip(" 203.0.113.9") is False


class TestGetClientIP:
    """Tests for get_client_ip priority rules."""

    def test_cf_connecting_ip_wins(self):
        request = _request(
            {"CF-Connecting-IP": "203.0.113.1", "X-Real-IP": "203.0.113.2"}, peer="127.0.0.1"
        )
        assert get_client_ip(request) == "203.0.113.1"

    def test_x_real_ip_trusted_from_loopback_proxy(self):
        request = _request({"X-Real-IP": "203.0.113.2"}, peer="127.0.0.1")
        assert get_client_ip(request) == "203.0.113.2"

    def test_x_real_ip_ignored_from_remote_peer(self):
        request = _request({"X-Real-IP": "203.0.113.2"}, peer="198.51.100.50")
        assert get_client_ip(request) == "198.51.100.50"

    def test_x_forwarded_for_never_used(self):
        request = _request({"X-Forwarded-For": "203.0.113.3, 10.0.0.1"}, peer="198.51.100.50")
        assert get_client_ip(request) == "198.51.100.50"

    def test_invalid_headers_fall_through(self):
        request = _request(
            {"CF-Connecting-IP": "nonsense", "X-Real-IP": "also-bad"}, peer="127.0.0.1"
        )
        assert get_client_ip(request) == "127.0.0.1"

    def test_whitespace_is_trimmed(self):
        request = _request({"CF-Connecting-IP": "  2001:db8::7  "})
        assert get_client_ip(request) == "2001:db8::7"

    def test_unknown_peer_uses_placeholder(self):
        assert get_client_ip(_request()) == UNKNOWN_CLIENT_IP == "0.0.0.0"

    def test_invalid_header_is_logged(self):
        request = _request({"CF-Connecting-IP": "not-an-ip"}, peer="198.51.100.50")

        with patch("claimguard.core.request_utils.logger") as mock_logger:
            get_client_ip(request)

        mock_logger.warning.assert_called_once()
        assert "CF-Connecting-IP" in str(mock_logger.warning.call_args)
