# backend/stocksense/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _apply_sqlite_busy_timeout(app: Flask) -> None:
    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if not uri.startswith("sqlite") or ":memory:" in uri:
        return
    engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(engine_options.get("connect_args") or {})
    connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT_SECONDS"])
    engine_options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options


def create_app(config_object=None, **overrides) -> Flask:
    """
    Build the Flask app and wire the ledger core.

    overrides are applied on top of config_object before any extension is
    initialised (the database engine is created from them).
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)

    # app.logger is the "stocksense" logger; service module loggers propagate to it
    app.logger.setLevel(app.config["LOG_LEVEL"])

    _apply_sqlite_busy_timeout(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=app.config["MIGRATIONS_DIR"], render_as_batch=True)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Core services: one store (and writer lock) per app
    from .permissions import AccessPolicy
    from .services.analytics_service import AnalyticsEngine
    from .services.ledger_store import LedgerStore
    from .services.sales_service import StockTransactionManager

    store = LedgerStore(db.session, lock_timeout=app.config["LEDGER_LOCK_TIMEOUT_SECONDS"])
    policy = AccessPolicy.from_config(app.config)
    app.extensions["stocksense"] = {
        "store": store,
        "policy": policy,
        "sales": StockTransactionManager(store, policy),
        "analytics": AnalyticsEngine(store, policy),
    }

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(analytics_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
