"""Flask app for the Frigate Events JSON API."""

import logging

from flask import Flask, jsonify

from frigate_events.web.routes import create_api_bp

logger = logging.getLogger('frigate-events')


def create_app(coordinator):
    """Create Flask app with all endpoints. Routes close over the coordinator."""
    app = Flask(__name__)
    app.register_blueprint(create_api_bp(coordinator), url_prefix="/api")

    @app.route('/')
    def index():
        """Entry point for clients: where the API lives."""
        return jsonify({
            "feed": "/api/feed",
            "facets": "/api/facets",
            "status": "/api/status",
        })

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"status": "error", "message": "Not found"}), 404

    return app
