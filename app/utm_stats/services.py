"""
UTM Stats Service

Compares the event count of the last N days with the N days before and
breaks the recent window down by source, campaign, country and device.
"""

from typing import Optional

from utm_service import Tracker, date_range_filter, percent_change

from .models import RangeSummary


class UtmStatsService:
    """Service for campaign visit statistics."""

    def __init__(self, tracker: Tracker, default_range: int = 30):
        """Initialize the stats service.

        Args:
            tracker: Tracker whose events are summarized
            default_range: Window in days when none is requested
        """
        self.tracker = tracker
        self.default_range = default_range

    def summary(self, days: Optional[int] = None, limit: int = 10) -> RangeSummary:
        """Summarize the last ``days`` days.

        Args:
            days: Window length in days (default: the configured range)
            limit: Maximum entries per breakdown

        Returns:
            RangeSummary for the window
        """
        days = days or self.default_range
        if days < 1:
            raise ValueError("days must be positive")

        summary = RangeSummary(days=days)
        if not self.tracker.config.enabled:
            return summary

        summary.recent = self.tracker.count_range(days, 0)
        summary.previous = self.tracker.count_range(days * 2, days)
        summary.percent_change = percent_change(summary.recent, summary.previous)

        where = date_range_filter(days, 0)
        store = self.tracker.store
        summary.sources = store.group_count("utm_source", where, limit)
        summary.campaigns = store.group_count("utm_campaign", where, limit)
        summary.countries = store.group_count("country_name", where, limit)
        summary.user_agents = store.group_count("user_agent", where, limit)

        return summary
