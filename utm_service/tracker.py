"""
UTM Tracker

Ingestion pipeline for campaign visits: bot filter, rate limiter,
sanitizer, geolocation enrichment and persistence, plus the memoized
aggregate count used by reporting.
"""

import hashlib
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from .bot_filter import BotFilter
from .context import TrackerContext
from .event_store import DEFAULT_COUNT_QUERY, EventStore, date_range_filter
from .geo_resolver import GeoResolver
from .models import GENERATED_FIELDS, UTM_FIELDS, UserAgentClass, UtmEvent
from .rate_limiter import RateLimiter
from .sanitizer import sanitize
from .visitor import RequestVisitor, classify_user_agent

logger = logging.getLogger(__name__)


def parse_visited_at(value: Any) -> datetime:
    """Accept a datetime, an epoch timestamp or an ISO formatted string.

    Raises:
        ValueError, TypeError, OverflowError or OSError for values that do
        not describe a point in time
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            # Accept 'Z' by replacing with +00:00
            value = datetime.fromisoformat(text.replace('Z', '+00:00'))

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(value)
    elif not isinstance(value, datetime):
        raise TypeError(f"Unsupported visit timestamp: {type(value).__name__}")

    # stored as naive local time
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(microsecond=0)


class Tracker:
    """Records UTM visits for pages and answers aggregate counts."""

    def __init__(
        self,
        context: TrackerContext,
        visitor=None,
        bot_filter: Optional[BotFilter] = None,
        rate_limiter: Optional[RateLimiter] = None,
        geo_resolver: Optional[GeoResolver] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the tracker.

        Args:
            context: Shared configuration, caches and event store
            visitor: Source of the client IP and User-Agent; the active
                Flask request by default
            bot_filter: Bot/crawler classifier
            rate_limiter: Per-visitor limiter; built from the config by default
            geo_resolver: IP geolocation; built from the config by default
            now: Clock for generated visit timestamps
        """
        config = context.config
        self.context = context
        self.config = config
        self.visitor = visitor or RequestVisitor()
        self.bot_filter = bot_filter or BotFilter()
        self.rate_limiter = rate_limiter or RateLimiter(
            context.caches.ratelimit,
            enabled=config.ratelimit_enabled,
            window_minutes=config.ratelimit_expire,
            trials=config.ratelimit_trials,
        )
        self.geo_resolver = geo_resolver or GeoResolver(
            context.caches.ipstack,
            access_key=config.ipstack_access_key,
            scheme=config.ipstack_scheme,
            expire_minutes=config.ipstack_expire,
            timeout=config.ipstack_timeout,
            enabled=config.enabled,
        )
        self._now = now

    @property
    def store(self) -> EventStore:
        return self.context.store

    def client_ip(self) -> str:
        """The configured override IP, else the visitor's IP."""
        if self.config.ip is not None:
            return self.config.ip
        return self.visitor.ip

    def hash_ip(self, ip: str) -> str:
        """Salted one-way hash identifying a visitor without storing the IP."""
        return hashlib.sha1(f"{self.config.ip_salt}{ip}".encode("utf-8")).hexdigest()

    def track(self, page_id: str, params: Optional[Mapping[str, Any]] = None) -> bool:
        """Record one visit of page_id.

        Args:
            page_id: Identifier of the visited page
            params: Raw UTM parameters. The generated fields ``visited_at``,
                ``iphash``, ``country``, ``city`` and ``useragent`` may be
                supplied as well and then replace the generated values.

        Returns:
            True if an event was stored
        """
        if not self.config.enabled:
            return False

        if not page_id:
            raise ValueError("page_id must not be empty")

        user_agent = self.visitor.user_agent
        if self.bot_filter.is_bot(user_agent):
            logger.debug(f"Ignoring bot visit on {page_id}")
            return False

        ip = self.client_ip()
        iphash = self.hash_ip(ip)

        if not self.rate_limiter.allow(iphash):
            logger.debug(f"Rate limited visit on {page_id}")
            return False

        cleaned = sanitize(params)
        utm = {name: cleaned[name] for name in UTM_FIELDS if name in cleaned}
        if not utm:
            logger.debug(f"No UTM parameters for {page_id}")
            return False

        ipdata = self.geo_resolver.resolve(ip, iphash)
        generated: Dict[str, Any] = {
            "visited_at": self._visited_at((params or {}).get("visited_at")),
            "iphash": iphash,
            "country": ipdata.get("country_name") or "",
            "city": ipdata.get("city") or "",
            "useragent": classify_user_agent(user_agent),
        }

        # caller-supplied values win, for backfill and tests
        generated.update(
            {name: cleaned[name] for name in GENERATED_FIELDS if name in cleaned and name != "visited_at"}
        )

        useragent = generated["useragent"]
        if not UserAgentClass.is_valid(useragent):
            useragent = classify_user_agent(user_agent)

        event = UtmEvent(
            page_id=str(page_id),
            visited_at=generated["visited_at"],
            iphash=generated["iphash"],
            country_name=generated["country"],
            city=generated["city"],
            user_agent=useragent,
            **utm,
        )
        self.store.insert(event)
        return True

    def _visited_at(self, override: Any) -> datetime:
        """The caller's visit timestamp, or now when absent or unparseable."""
        if override is None or (isinstance(override, str) and not override.strip()):
            return parse_visited_at(self._now())
        try:
            return parse_visited_at(override)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            logger.debug(f"Ignoring visit timestamp {override!r}: {e}")
            return parse_visited_at(self._now())

    def close(self) -> None:
        """Release the geolocation session and the storage engine."""
        self.geo_resolver.close()
        self.store.dispose()

    def count(self, query: str = DEFAULT_COUNT_QUERY, params: Optional[Mapping[str, Any]] = None) -> int:
        """Aggregate count; 0 without touching storage when disabled."""
        if not self.config.enabled:
            return 0
        return self.store.count(query, params)

    def count_range(self, begin: int, end: int = 0) -> int:
        """Events visited between begin and end days ago."""
        return self.count(f"{DEFAULT_COUNT_QUERY} WHERE{date_range_filter(begin, end)}")
