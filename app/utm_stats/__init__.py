"""
UTM Stats Module

Range comparison statistics over recorded campaign visits.
"""

from .factory import create_utm_stats_module

__all__ = ["create_utm_stats_module"]
