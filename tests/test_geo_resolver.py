"""
Tests for the geolocation resolver.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from utm_service.cache import CacheRegion
from utm_service.geo_resolver import GeoResolver, strip_private_fields

IP = "169.150.197.101"
IPHASH = "a" * 40

IPSTACK_RESPONSE = {
    "ip": IP,
    "hostname": IP,
    "type": "ipv4",
    "country_name": "Switzerland",
    "city": "Zurich",
}


def _response(status_code=200, payload=None, json_error=False):
    response = Mock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


class TestStripPrivateFields:
    """Test removal of the plain address fields."""

    def test_strips_ip_and_hostname(self):
        result = strip_private_fields(IPSTACK_RESPONSE)
        assert "ip" not in result
        assert "hostname" not in result
        assert result["country_name"] == "Switzerland"

    def test_non_dict_is_empty(self):
        assert strip_private_fields(None) == {}
        assert strip_private_fields(["x"]) == {}


class TestGeoResolver:
    """Test lookups, caching and degradation."""

    @pytest.fixture
    def cache(self, clock):
        return CacheRegion("ipstack", clock=clock)

    @pytest.fixture
    def resolver(self, cache):
        return GeoResolver(cache, access_key="key", scheme="https", expire_minutes=60, timeout=2.0)

    def test_url(self, resolver):
        assert resolver.url_for(IP) == f"https://api.ipstack.com/{IP}/?access_key=key"

    @pytest.mark.parametrize("ip,key,enabled", [
        ("", "key", True),
        (IP, "", True),
        (IP, "key", False),
    ])
    def test_skips_lookup(self, cache, ip, key, enabled):
        """Test that no request or cache access happens when not applicable."""
        resolver = GeoResolver(cache, access_key=key, enabled=enabled)
        with patch.object(resolver.session, 'get') as mock_get, \
                patch.object(cache, 'get') as mock_cache_get:
            assert resolver.resolve(ip, IPHASH) == {}
            mock_get.assert_not_called()
            mock_cache_get.assert_not_called()

    def test_successful_lookup_is_stripped_and_cached(self, resolver, cache):
        """Test that the plain IP never reaches the cache or the caller."""
        with patch.object(resolver.session, 'get') as mock_get:
            mock_get.return_value = _response(payload=dict(IPSTACK_RESPONSE))

            result = resolver.resolve(IP, IPHASH)

            mock_get.assert_called_once_with(resolver.url_for(IP), timeout=2.0)

        assert result["country_name"] == "Switzerland"
        assert result["city"] == "Zurich"
        assert IP not in result.values()

        cached = cache.get(IPHASH)
        assert cached == result
        assert "ip" not in cached and "hostname" not in cached

    def test_cache_hit_skips_request(self, resolver, cache):
        """Test that a cached lookup is answered without a request."""
        cache.set(IPHASH, {"country_name": "France", "city": "Paris"})
        with patch.object(resolver.session, 'get') as mock_get:
            assert resolver.resolve(IP, IPHASH) == {"country_name": "France", "city": "Paris"}
            mock_get.assert_not_called()

    def test_cache_entry_expires(self, resolver, cache, clock):
        """Test that an expired lookup triggers a new request."""
        with patch.object(resolver.session, 'get') as mock_get:
            mock_get.return_value = _response(payload=dict(IPSTACK_RESPONSE))
            resolver.resolve(IP, IPHASH)
            clock.advance(60 * 60)
            resolver.resolve(IP, IPHASH)
            assert mock_get.call_count == 2

    @pytest.mark.parametrize("response", [
        _response(status_code=500, payload={"error": "boom"}),
        _response(json_error=True),
        _response(payload=["not", "a", "dict"]),
        _response(payload={"success": False, "error": {"type": "invalid_access_key"}}),
    ])
    def test_failed_lookup_is_empty_and_not_cached(self, resolver, cache, response):
        """Test degradation on bad status, malformed body and provider errors."""
        with patch.object(resolver.session, 'get', return_value=response):
            assert resolver.resolve(IP, IPHASH) == {}
        assert cache.get(IPHASH) is None

    @pytest.mark.parametrize("error", [
        requests.Timeout("timed out"),
        requests.ConnectionError("refused"),
    ])
    def test_network_errors_degrade_to_empty(self, resolver, cache, error):
        """Test that timeouts and connection errors are swallowed."""
        with patch.object(resolver.session, 'get', side_effect=error):
            result = resolver.resolve(IP, IPHASH)
        assert result == {}
        assert cache.get(IPHASH) is None

    def test_later_attempt_after_failure(self, resolver, cache):
        """Test that a failure does not block a later successful lookup."""
        with patch.object(resolver.session, 'get') as mock_get:
            mock_get.side_effect = [
                requests.Timeout("timed out"),
                _response(payload=dict(IPSTACK_RESPONSE)),
            ]
            assert resolver.resolve(IP, IPHASH) == {}
            assert resolver.resolve(IP, IPHASH)["city"] == "Zurich"
