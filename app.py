"""
SchoolHub: Flask Web Application

JSON API for the school dashboard: users and classes, courses and quizzes,
quiz attempts with grading and rankings, fees, salaries, announcements,
assignments, timetables and the school calendar.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify

from auth import auth_bp, login_manager
from blueprints import register_blueprints
from errors import AttemptClosedError, NotFoundError, ValidationError


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    if test_config is not None:
        app.config.update(test_config)
    else:
        from config import config_by_name
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config.get("SECRET_KEY", os.environ.get('SECRET_KEY', 'dev-key-change-in-production'))
    app.json.sort_keys = bool(app.config.get("JSON_SORT_KEYS", False))

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Persistence medium (file, in-memory or Redis)
    from storage_backend import init_storage
    init_storage(app)

    # Register auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    # Register all application blueprints
    register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(AttemptClosedError)
    def handle_attempt_closed(e: AttemptClosedError):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_405(e):
        return jsonify({"error": "Method not allowed"}), 405

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "storage": app.config.get("STORAGE_BACKEND", "file")})

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
