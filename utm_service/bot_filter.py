"""
Bot Filter

Rejects visits from bots and crawlers. Two independent detectors are
consulted: the device-fingerprint parser of ``device_detector`` and the
crawler heuristics of ``crawlerdetect``. Either one flagging the user agent
is enough.
"""

import logging
from typing import Callable, Optional

from crawlerdetect import CrawlerDetect
from device_detector import DeviceDetector

logger = logging.getLogger(__name__)


def fingerprint_is_bot(user_agent: str) -> bool:
    """Device-fingerprint classifier."""
    device = DeviceDetector(user_agent).parse()
    return bool(device.is_bot())


class BotFilter:
    """Classifies a user agent as bot/crawler or normal traffic."""

    def __init__(
        self,
        fingerprint: Callable[[str], bool] = fingerprint_is_bot,
        crawler_detect: Optional[CrawlerDetect] = None,
    ):
        """Initialize the filter.

        Args:
            fingerprint: Device-fingerprint classifier, user agent -> is bot
            crawler_detect: Crawler heuristic; a fresh CrawlerDetect by default
        """
        self._fingerprint = fingerprint
        self._crawler_detect = crawler_detect or CrawlerDetect()

    def is_bot(self, user_agent: str) -> bool:
        # no header to classify, e.g. tests and server-side calls
        if not user_agent:
            return False
        if self._fingerprint(user_agent):
            logger.debug(f"Fingerprint flagged bot: {user_agent!r}")
            return True
        if self._crawler_detect.isCrawler(user_agent):
            logger.debug(f"Crawler heuristic flagged: {user_agent!r}")
            return True
        return False
