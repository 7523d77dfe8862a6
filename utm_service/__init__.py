"""
UTM Service

Ingestion core for marketing campaign visits: bot filtering, rate limiting,
sanitizing, geolocation enrichment, storage and memoized counts.
"""

from .context import TrackerContext
from .event_store import DEFAULT_COUNT_QUERY, EventStore, date_range_filter, percent_change
from .models import UTM_FIELDS, UserAgentClass, UtmEvent
from .tracker import Tracker

__all__ = [
    'Tracker',
    'TrackerContext',
    'EventStore',
    'UtmEvent',
    'UserAgentClass',
    'UTM_FIELDS',
    'DEFAULT_COUNT_QUERY',
    'date_range_filter',
    'percent_change',
]
