from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask

from .extensions import db, login_manager, migrate, cors
from .cli import register_commands
from .errors import register_error_handlers
from .views.auth import auth_bp
from .views.events import events_bp
from .views.santa import santa_bp
from .views.public import public_bp

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app(test_config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///santa_portal.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # A user registering with exactly this name becomes an admin
    app.config["SANTA_ADMIN_NAME"] = os.environ.get("SANTA_ADMIN_NAME", "").strip()
    app.config["ACCESS_TOKEN_TTL_SECONDS"] = int(os.environ.get("ACCESS_TOKEN_TTL_SECONDS", "43200"))
    app.config["ACCESS_TOKEN_KEY"] = os.environ.get("ACCESS_TOKEN_KEY", "").strip()

    app.config["SANTA_MIN_PARTICIPANTS"] = 3
    app.config["SANTA_MAX_ATTEMPTS"] = 100
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    # The web client is hosted separately
    cors.init_app(
        app,
        origins="*",
        send_wildcard=True,
        allow_headers=CORS_ALLOW_HEADERS,
        methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    )

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(santa_bp)

    register_error_handlers(app)
    register_commands(app)

    return app
