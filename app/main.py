import logging
from typing import Optional

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager, UtmConfig
from utm_service.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(utm_config: Optional[UtmConfig] = None, config_file: str = "utm_config.json") -> Flask:
    """Build the Flask application.

    Args:
        utm_config: Resolved tracker configuration; loaded from config_file
            and the environment when omitted
        config_file: JSON configuration file

    Returns:
        Configured Flask app with the tracking and stats blueprints
    """
    config_manager = ConfigManager(config_file)
    app_config = config_manager.get_app_config()
    utm_config = utm_config or config_manager.get_utm_config()

    flask_app = Flask(__name__)
    flask_app.wsgi_app = ProxyFix(
        flask_app.wsgi_app,
        x_for=1,       # trust 1 hop for X-Forwarded-For, the one our proxy appends
        x_proto=1,     # trust 1 hop for X-Forwarded-Proto
        x_host=1,      # trust 1 hop for X-Forwarded-Host
        x_prefix=1)    # trust 1 hop for X-Forwarded-Prefix

    # ---------------------------------------------------------------------
    # Subsystems
    # ---------------------------------------------------------------------

    from app.utm_tracking.factory import create_utm_tracking_module
    from app.utm_stats.factory import create_utm_stats_module

    utm_tracking_module = create_utm_tracking_module(utm_config)
    utm_stats_module = create_utm_stats_module(
        tracker=utm_tracking_module["service"],
        stats_range=utm_config.stats_range,
    )

    flask_app.register_blueprint(utm_tracking_module["blueprint"])
    flask_app.register_blueprint(utm_stats_module["blueprint"])

    flask_app.extensions["utm_tracker"] = utm_tracking_module["service"]
    flask_app.extensions["utm_stats"] = utm_stats_module["service"]
    flask_app.config["APP_CONFIG"] = app_config

    @flask_app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "enabled": utm_config.enabled})

    logger.info(f"UTM tracker ready (enabled={utm_config.enabled}, file={utm_config.file})")
    return flask_app


def main() -> None:
    """Run the development server."""
    config_manager = ConfigManager()
    app_config = config_manager.get_app_config()
    setup_logging(debug=app_config.debug)

    flask_app = create_app()
    flask_app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug
    )


if __name__ == "__main__":
    main()
