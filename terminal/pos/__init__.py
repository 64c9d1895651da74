# terminal/pos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)

    # Import models so create_all sees the settings table
    from . import models  # noqa: F401

    from .services.terminal_service import EXTENSION_KEY, build_terminal

    with app.app_context():
        db.create_all()
        app.extensions[EXTENSION_KEY] = build_terminal(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.terminal import terminal_bp
    from .routes.settings import settings_bp
    from .routes.orders import orders_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(terminal_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(orders_bp)

    allowed_origins = set(app.config.get("POS_ALLOWED_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
