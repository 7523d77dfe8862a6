"""
Data Models for UTM Stats
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class RangeSummary:
    """Event counts of a window compared with the window before it."""

    days: int
    recent: int = 0
    previous: int = 0
    percent_change: int = 0
    sources: List[Tuple[str, int]] = field(default_factory=list)
    campaigns: List[Tuple[str, int]] = field(default_factory=list)
    countries: List[Tuple[str, int]] = field(default_factory=list)
    user_agents: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def has_baseline(self) -> bool:
        """False when the previous window is empty and percent_change is not meaningful."""
        return self.previous > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "days": self.days,
            "recent": self.recent,
            "previous": self.previous,
            "percent_change": self.percent_change,
            "has_baseline": self.has_baseline,
            "sources": [{"value": v, "count": c} for v, c in self.sources],
            "campaigns": [{"value": v, "count": c} for v, c in self.campaigns],
            "countries": [{"value": v, "count": c} for v, c in self.countries],
            "user_agents": [{"value": v, "count": c} for v, c in self.user_agents],
        }
