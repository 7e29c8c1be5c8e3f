# backend/fairy/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.customer import customer_bp  # QR page (no identity)
    from .routes.floor import floor_bp  # Sessions, orders, adjustments, seating
    from .routes.timekeeping import timekeeping_bp
    from .routes.earnings import earnings_bp
    from .routes.reports import reports_bp
    from .routes.settings import settings_bp
    from .routes.casts import casts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(customer_bp)
    app.register_blueprint(floor_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(earnings_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(casts_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Staff-Id, X-Cast-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
