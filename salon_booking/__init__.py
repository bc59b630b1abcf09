from collections.abc import Mapping

from flask import Flask
from flask_cors import CORS

from .config import Config
from . import extensions
from .extensions import db
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    app.config.from_envvar("APP_SETTINGS", silent=True)
    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        # sqlite waits this long for the write lock before "database is locked"
        engine_options = app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {})
        connect_args = engine_options.setdefault("connect_args", {})
        connect_args.setdefault("timeout", app.config["BOOKING_LOCK_TIMEOUT_MS"] / 1000)

    db.init_app(app)
    extensions.cache.init_app(app)

    origins = app.config["CORS_ORIGINS"]
    CORS(app,
         origins=origins if origins == "*" else [o.strip() for o in origins.split(",")],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    )

    register_routes(app)

    return app
