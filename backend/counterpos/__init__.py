# backend/counterpos/__init__.py
from flask import Flask, jsonify, request

from .config import Config
from .errors import PosError
from .extensions import db, migrate, carts
from .validation import ValidationError


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    carts.init_app(app)

    from .services.catalog_service import CatalogStore
    from .services.order_service import OrderLedger

    catalog = CatalogStore()
    catalog.init_app(app)
    app.extensions["counterpos.ledger"] = OrderLedger(catalog)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.items import items_bp
    from .routes.checkout import checkout_bp
    from .routes.orders import orders_bp
    from .routes.cashiers import cashiers_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(cashiers_bp)
    app.register_blueprint(analytics_bp)

    from .routes import error_response

    @app.errorhandler(PosError)
    def handle_pos_error(exc):
        return error_response(exc)

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return error_response(exc)

    @app.errorhandler(500)
    def handle_internal_error(exc):
        # Flask has already logged the original exception
        return jsonify({"error": "Internal server error"}), 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = app.config.get("CORS_ALLOWED_ORIGINS", set())
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
