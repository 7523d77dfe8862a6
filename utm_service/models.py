"""
Data models for UTM event ingestion.

Defines the persisted event row, the rate-limit record kept in the cache
and the user-agent classes recorded with every event.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")

# Generated per event; callers may override them for backfill and tests
GENERATED_FIELDS = ("visited_at", "iphash", "country", "city", "useragent")


class UserAgentClass(Enum):
    """Device classes recorded for a visit."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a string names a known device class."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


@dataclass
class UtmEvent:
    """A single campaign visit, as stored in the ``utm`` table."""

    page_id: str
    visited_at: datetime
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_term: str = ""
    utm_content: str = ""
    iphash: str = ""
    country_name: str = ""
    city: str = ""
    user_agent: str = UserAgentClass.DESKTOP.value

    def to_row(self) -> Dict[str, Any]:
        """Convert to a column mapping for insertion."""
        return {
            "page_id": self.page_id,
            "utm_source": self.utm_source,
            "utm_medium": self.utm_medium,
            "utm_campaign": self.utm_campaign,
            "utm_term": self.utm_term,
            "utm_content": self.utm_content,
            "visited_at": self.visited_at,
            "iphash": self.iphash,
            "country_name": self.country_name,
            "city": self.city,
            "user_agent": self.user_agent,
        }


@dataclass
class RateLimitRecord:
    """Fixed-window counter for one visitor hash."""

    time: float  # window start, epoch seconds
    trials: int

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "trials": self.trials}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RateLimitRecord"]:
        if not data:
            return None
        return cls(time=float(data["time"]), trials=int(data["trials"]))
