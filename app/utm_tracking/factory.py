"""
Factory for creating the UTM tracking module.
"""
from config_manager import UtmConfig
from utm_service import Tracker, TrackerContext

from .routes import create_utm_tracking_blueprint


def create_utm_tracking_module(config: UtmConfig, context: TrackerContext = None) -> dict:
    """Create UTM tracking module with service and routes.

    Args:
        config: Resolved tracker configuration
        context: Existing tracker context to share; built from config otherwise

    Returns:
        Dictionary containing the tracker, its context and the blueprint
    """
    context = context or TrackerContext.create(config)

    tracker = Tracker(context)

    blueprint = create_utm_tracking_blueprint(tracker)

    return {
        "service": tracker,
        "context": context,
        "blueprint": blueprint
    }
