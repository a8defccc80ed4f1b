"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from flask import Flask, jsonify

from polylingo.logger import get_logger
from polylingo.ai.exceptions import JobNotFoundError, TranslationError
from polylingo.jobs.store import JobStore

from .routes.jobs import jobs_bp
from .routes.settings import settings_bp

logger = get_logger(__name__)

EXTENSION_KEY = "polylingo"


def build_app(
    store: Optional[JobStore] = None,
    scheduler: Any = None,
    source_factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        store: Job records (default: JobStore over the configured database)
        scheduler: Object with submit() and status(), usually a BackgroundScheduler
        source_factory: Builds the content source client used for manual publish
    """
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False

    app.extensions[EXTENSION_KEY] = {
        "store": store or JobStore(),
        "scheduler": scheduler,
        "source_factory": source_factory,
    }

    register_blueprints(app)
    register_default_routes(app)
    register_error_handlers(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(jobs_bp, url_prefix="/api")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")


def register_default_routes(app: Flask) -> None:
    """Register the health route."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})


def register_error_handlers(app: Flask) -> None:
    """JSON error bodies: {"error", "code", "details"}."""

    @app.errorhandler(JobNotFoundError)
    def job_not_found(e: JobNotFoundError):
        return jsonify({"error": str(e), "code": e.code, "details": e.details}), 404

    @app.errorhandler(TranslationError)
    def translation_error(e: TranslationError):
        logger.warning("Request failed: %s", e)
        return jsonify({"error": str(e), "code": e.code, "details": e.details}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found", "code": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "code": "method_not_allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500
