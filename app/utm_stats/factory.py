"""
Factory for creating the UTM stats module.
"""
from utm_service import Tracker

from .services import UtmStatsService
from .routes import create_utm_stats_blueprint


def create_utm_stats_module(tracker: Tracker, stats_range: int = 30) -> dict:
    """Create UTM stats module with service and routes.

    Args:
        tracker: Tracker whose events are summarized
        stats_range: Default window in days

    Returns:
        Dictionary containing the service and blueprint
    """
    utm_stats_service = UtmStatsService(tracker, default_range=stats_range)

    blueprint = create_utm_stats_blueprint(utm_stats_service)

    return {
        "service": utm_stats_service,
        "blueprint": blueprint
    }
