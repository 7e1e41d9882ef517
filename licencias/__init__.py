"""Flask application factory."""

from __future__ import annotations

import logging

from flask import Flask

from licencias.blueprints.leaves import bp as leaves_bp
from licencias.blueprints.main import bp as main_bp
from licencias.config import Config
from licencias.extensions import db


def create_app(config_object: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=False)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)

    # Ensure model metadata is loaded for migrations and tests.
    from licencias import models as _models  # noqa: F401

    app.register_blueprint(main_bp)
    app.register_blueprint(leaves_bp)

    return app
