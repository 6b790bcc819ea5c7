"""
Tests for feed URL validation (SSRF protection).
"""

import asyncio
import socket
from unittest.mock import AsyncMock, patch

import pytest

from newsletter_hub.url_validator import (
    SSRFError,
    is_ip_blocked,
    validate_feed_url,
    validate_feed_url_async,
)


class TestValidateFeedURL:
    """Tests for validate_feed_url."""

    def test_allows_public_https(self):
        """Should allow ordinary HTTPS feed URLs."""
        url = "https://example.com/feed.xml"
        assert validate_feed_url(url, resolve_dns=False) == url

    def test_strips_whitespace(self):
        """Should return the URL without surrounding whitespace."""
        assert validate_feed_url("  http://example.com/rss \n", resolve_dns=False) == "http://example.com/rss"

    @pytest.mark.parametrize("url", ["file:///etc/passwd", "ftp://example.com/feed", "javascript:alert(1)"])
    def test_blocks_other_schemes(self, url):
        """Should only allow http and https."""
        with pytest.raises(SSRFError, match="scheme.*not allowed"):
            validate_feed_url(url, resolve_dns=False)

    def test_requires_hostname(self):
        """Should reject URLs without a host."""
        with pytest.raises(SSRFError, match="hostname"):
            validate_feed_url("http:///feed.xml", resolve_dns=False)

    @pytest.mark.parametrize("host", ["localhost", "metadata.google.internal", "printer.local"])
    def test_blocks_internal_hostnames(self, host):
        """Should block localhost, metadata and internal suffixes."""
        with pytest.raises(SSRFError, match="not allowed"):
            validate_feed_url(f"http://{host}/feed", resolve_dns=False)

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "192.168.0.10", "169.254.169.254"])
    def test_blocks_private_ips(self, ip):
        """Should block private, loopback and link-local addresses."""
        with pytest.raises(SSRFError, match="IP address"):
            validate_feed_url(f"http://{ip}/feed", resolve_dns=False)

    def test_blocks_hostname_resolving_to_private_ip(self):
        """Should block public-looking names that resolve to internal addresses."""
        addrinfo = [(2, 1, 6, "", ("10.0.0.5", 80))]
        with patch("newsletter_hub.url_validator.socket.getaddrinfo", return_value=addrinfo):
            with pytest.raises(SSRFError, match="resolves to blocked IP"):
                validate_feed_url("http://sneaky.example.com/feed")

    def test_allow_private_skips_network_checks(self):
        """Local development may fetch feeds from loopback."""
        url = "http://localhost:8000/feed.xml"
        assert validate_feed_url(url, allow_private=True) == url

    def test_allow_private_still_checks_scheme(self):
        """allow_private never permits other schemes."""
        with pytest.raises(SSRFError):
            validate_feed_url("file:///etc/passwd", allow_private=True)


class TestIsIPBlocked:
    """Tests for is_ip_blocked."""

    def test_public_ip(self):
        assert is_ip_blocked("93.184.216.34") is False

    def test_ipv6_loopback(self):
        assert is_ip_blocked("::1") is True

    def test_not_an_ip(self):
        assert is_ip_blocked("example.com") is False


class TestValidateFeedURLAsync:
    """Tests for validate_feed_url_async."""

    @pytest.mark.asyncio
    async def test_resolves_on_the_event_loop(self):
        """Should resolve through the loop instead of blocking socket calls."""
        resolver = AsyncMock(return_value=[(2, 1, 6, "", ("93.184.216.34", 443))])
        with patch.object(asyncio.get_running_loop(), "getaddrinfo", resolver), \
                patch("newsletter_hub.url_validator.socket.getaddrinfo") as blocking:
            url = await validate_feed_url_async("https://Example.com:8443/feed")

        assert url == "https://Example.com:8443/feed"
        assert resolver.await_args.args[:2] == ("example.com", 8443)
        blocking.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocks_hostname_resolving_to_private_ip(self):
        resolver = AsyncMock(return_value=[(2, 1, 6, "", ("10.0.0.5", 80))])
        with patch.object(asyncio.get_running_loop(), "getaddrinfo", resolver):
            with pytest.raises(SSRFError, match="resolves to blocked IP"):
                await validate_feed_url_async("http://sneaky.example.com/feed")

    @pytest.mark.asyncio
    async def test_unresolvable_host_passes(self):
        """Lookup failures are left for the HTTP request to report."""
        resolver = AsyncMock(side_effect=socket.gaierror("Name or service not known"))
        with patch.object(asyncio.get_running_loop(), "getaddrinfo", resolver):
            url = await validate_feed_url_async("http://nowhere.example.com/feed")
        assert url == "http://nowhere.example.com/feed"

    @pytest.mark.asyncio
    async def test_literal_private_ip_blocked_without_lookup(self):
        resolver = AsyncMock()
        with patch.object(asyncio.get_running_loop(), "getaddrinfo", resolver):
            with pytest.raises(SSRFError, match="IP address"):
                await validate_feed_url_async("http://192.168.0.10/feed")
        resolver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_allow_private_skips_lookup(self):
        resolver = AsyncMock()
        with patch.object(asyncio.get_running_loop(), "getaddrinfo", resolver):
            url = await validate_feed_url_async("http://localhost:8000/feed.xml", allow_private=True)
        assert url == "http://localhost:8000/feed.xml"
        resolver.assert_not_awaited()
