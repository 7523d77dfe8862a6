"""
UTM Tracking Module

HTTP endpoints for recording campaign visits and reading the event count.
"""

from .factory import create_utm_tracking_module

__all__ = ["create_utm_tracking_module"]
