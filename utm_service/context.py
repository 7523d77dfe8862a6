"""
Tracker context: the shared resources of one tracker deployment.
"""

import logging
from dataclasses import dataclass

from config_manager import UtmConfig

from .cache import CacheRegistry
from .event_store import EventStore

logger = logging.getLogger(__name__)


@dataclass
class TrackerContext:
    """Resolved configuration, cache regions and event store.

    Built once per process and handed to every component that needs it.
    """

    config: UtmConfig
    caches: CacheRegistry
    store: EventStore

    @classmethod
    def create(cls, config: UtmConfig, caches: CacheRegistry = None) -> "TrackerContext":
        """Build the context; in debug mode all cache regions start empty."""
        caches = caches or CacheRegistry(config.cache_dir)
        if config.debug:
            logger.debug("Debug mode: flushing all UTM cache regions")
            caches.flush_all()

        store = EventStore(config.file, caches.queries)
        return cls(config=config, caches=caches, store=store)
