# backend/posadmin/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _log_session_events(app: Flask):
    from .services import session_service

    def _listener(event):
        app.logger.info("Session %s for user_id=%s", event.kind.lower(), event.user_id)

    return session_service.subscribe(_listener)


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
    from .routes.auth import auth_bp
    from .routes.dashboard import dashboard_bp
    from .routes.sales import sales_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp
    from .routes.categories import categories_bp
    from .routes.warehouses import warehouses_bp
    from .routes.transfers import transfers_bp
    from .routes.users import users_bp
    from .routes.settings import settings_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(settings_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    app.extensions["posadmin.session_log_unsubscribe"] = _log_session_events(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
