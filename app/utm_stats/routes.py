"""
UTM Stats Routes

Read-only JSON endpoint for campaign statistics.
"""

import logging

from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .services import UtmStatsService

logger = logging.getLogger(__name__)


def create_utm_stats_blueprint(utm_stats_service: UtmStatsService) -> Blueprint:
    """Create UTM stats blueprint with routes.

    Args:
        utm_stats_service: The stats service instance

    Returns:
        Flask blueprint with stats routes
    """
    blueprint = Blueprint('utm_stats', __name__, url_prefix='/utm')

    @blueprint.route('/stats', methods=['GET'])
    def api_stats():
        """API endpoint for range statistics."""
        days = request.args.get('days', type=int)
        try:
            summary = utm_stats_service.summary(days)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        except SQLAlchemyError as exc:
            logger.error(f"Failed to compute UTM stats: {exc}")
            return jsonify({"error": "storage-unavailable"}), 500
        return jsonify(summary.to_dict())

    return blueprint
