"""
UTM Tracking Routes

Flask routes for ingesting campaign visits.
"""

import logging

from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from utm_service import Tracker, UTM_FIELDS

logger = logging.getLogger(__name__)


def create_utm_tracking_blueprint(tracker: Tracker) -> Blueprint:
    """Create a Flask blueprint for UTM tracking routes.

    Args:
        tracker: The tracker handling ingestion

    Returns:
        Flask blueprint with tracking routes
    """
    bp = Blueprint('utm_tracking', __name__, url_prefix='/utm')

    @bp.route("/track/<path:page_id>", methods=["GET", "POST"])
    def track(page_id):
        """Record a visit of page_id with the UTM parameters of the request."""
        if request.method == "POST":
            payload = request.get_json(silent=True)
            if payload is None:
                payload = request.form.to_dict()
        else:
            payload = request.args.to_dict()

        if not isinstance(payload, dict):
            return jsonify({"error": "invalid-payload"}), 400

        params = {name: payload[name] for name in UTM_FIELDS if name in payload}

        try:
            tracked = tracker.track(page_id, params)
        except SQLAlchemyError as exc:
            logger.error(f"Failed to store UTM event for {page_id}: {exc}")
            return jsonify({"error": "storage-unavailable"}), 500

        return jsonify({"status": "ok", "tracked": tracked})

    @bp.route("/count", methods=["GET"])
    def count():
        """Total number of events, or of the last ``days`` days."""
        days = request.args.get("days", type=int)

        try:
            if days is None:
                total = tracker.count()
            else:
                total = tracker.count_range(days)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        except SQLAlchemyError as exc:
            logger.error(f"Failed to count UTM events: {exc}")
            return jsonify({"error": "storage-unavailable"}), 500

        return jsonify({"count": total})

    return bp
