"""Flask application factory for the draw control API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from flask import Flask, jsonify
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from web.config_middleware import (
    configure_app,
    setup_security_headers,
    setup_metrics,
)
from web.routes import register_routes

if TYPE_CHECKING:
    from config import Config
    from services.draw_engine import DrawEngine


def create_app(config: "Config", engine: Optional["DrawEngine"] = None, testing: bool = False) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration
        engine: Draw engine the API controls; built from ``config`` if omitted
        testing: Whether running in testing mode

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Configure application
    configure_app(app, config, testing)

    if engine is None:
        from services.draw_engine import DrawEngine
        engine = DrawEngine.from_config(config)
    app.config["DRAW_ENGINE"] = engine
    app.config.setdefault("SESSION_STORE", None)

    # Setup middleware
    setup_security_headers(app)
    setup_metrics(app)

    # Register routes
    register_routes(app)

    # Setup additional handlers
    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    @app.route('/')
    def root():
        """Index of the API endpoints."""
        return jsonify({
            "title": app.config["DRAW_TITLE"],
            "state": "/api/state",
            "public": "/api/public",
            "health": "/health",
        })

    @app.route('/metrics')
    def metrics():
        """Expose Prometheus metrics."""
        data = generate_latest()
        return data, 200, {'Content-Type': CONTENT_TYPE_LATEST}


def _setup_error_handlers(app: Flask) -> None:
    """Setup error handlers.

    Args:
        app: Flask application instance
    """
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"ok": False, "error": "not_found", "message": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"ok": False, "error": "method_not_allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        app.logger.error(f"Internal server error: {error}")
        return jsonify({"ok": False, "error": "internal", "message": "Internal server error"}), 500
