# backend/venuebook/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions (after overrides so tests get their own database)
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.pricing import pricing_bp
    from .routes.role_pricing import role_pricing_bp
    from .routes.pricing_calendar import pricing_calendar_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp
    from .routes.reports import reports_bp

    app.register_blueprint(pricing_bp)
    app.register_blueprint(role_pricing_bp)
    app.register_blueprint(pricing_calendar_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reports_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
