"""
Geolocation Resolver

Resolves a visitor IP to country and city through the ipstack API. Results
are cached per visitor hash; the plain IP and hostname returned by the
provider are removed before anything is cached or handed back.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .cache import CacheRegion

logger = logging.getLogger(__name__)

IPSTACK_HOST = "api.ipstack.com"

# Provider fields that carry the plain visitor address
PRIVATE_FIELDS = ("ip", "hostname")


def strip_private_fields(ipdata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ipdata without the plain IP and hostname."""
    if not isinstance(ipdata, dict):
        return {}
    return {k: v for k, v in ipdata.items() if k not in PRIVATE_FIELDS}


class GeoResolver:
    """Cached IP geolocation lookups."""

    def __init__(
        self,
        cache: CacheRegion,
        access_key: str = "",
        scheme: str = "https",
        expire_minutes: int = 60 * 24,
        timeout: float = 5.0,
        enabled: bool = True,
    ):
        """Initialize the resolver.

        Args:
            cache: Region holding stripped provider responses by visitor hash
            access_key: ipstack access key; lookups are skipped without one
            scheme: "https" or "http"
            expire_minutes: Lifetime of a cached lookup
            timeout: Request timeout in seconds
            enabled: Mirrors the tracker's enabled flag
        """
        self.cache = cache
        self.access_key = access_key
        self.scheme = scheme
        self.expire_seconds = int(expire_minutes) * 60
        self.timeout = timeout
        self.enabled = enabled
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def url_for(self, ip: str) -> str:
        return f"{self.scheme}://{IPSTACK_HOST}/{ip}/?access_key={self.access_key}"

    def resolve(self, ip: str, iphash: str) -> Dict[str, Any]:
        """Look up ip, answering from the cache when possible.

        Args:
            ip: Plain client IP, only used for the outgoing request
            iphash: Visitor hash, used as cache key

        Returns:
            Provider data without ``ip``/``hostname``; empty when disabled,
            unconfigured, or when the lookup failed
        """
        # ip is empty outside of a request, e.g. in unit tests
        if not ip or not self.access_key or not self.enabled:
            return {}

        cached = self.cache.get(iphash)
        if cached is not None:
            return cached

        ipdata = self._fetch(ip)
        succeeded = ipdata is not None
        if ipdata is None:
            # same shape as a provider answer, so it strips to nothing
            ipdata = {"ip": ip, "hostname": ip}

        result = strip_private_fields(ipdata)
        if succeeded:
            self.cache.set(iphash, result, self.expire_seconds)
        return result

    def _fetch(self, ip: str) -> Optional[Dict[str, Any]]:
        """Call the provider; None on any failure."""
        try:
            response = self.session.get(self.url_for(ip), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Geolocation lookup failed: {e.__class__.__name__}")
            return None

        if response.status_code != 200:
            logger.warning(f"Geolocation lookup returned HTTP {response.status_code}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Geolocation lookup returned a malformed body")
            return None

        if not isinstance(data, dict):
            logger.warning("Geolocation lookup returned a malformed body")
            return None

        # ipstack reports API errors with HTTP 200 and success=false
        if data.get("success") is False:
            error = data.get("error") or {}
            logger.warning(f"Geolocation provider error: {error.get('type', 'unknown')}")
            return None

        return data
