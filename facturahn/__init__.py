"""
FacturaHN — Application package.

Uses the *application factory* pattern so the app can be created with
different configurations (development, testing, production).
"""

import logging
import os

from flask import Flask, jsonify

from config import config_by_name


def create_app(config_name: str | None = None, **overrides) -> Flask:
    """Build and return a fully configured Flask application."""
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.config.update(overrides)

    _configure_logging(app)

    # -- Extensions --------------------------------------------------------
    from facturahn.extensions import init_db

    store = init_db(app)

    # -- Blueprints --------------------------------------------------------
    from facturahn.api import api_bp

    app.register_blueprint(api_bp)

    @app.route("/")
    def index():
        return jsonify({"name": "FacturaHN", "api": "/api/v1"})

    # -- Database bootstrap ------------------------------------------------
    if app.config.get("SEED_ADMIN"):
        with app.app_context():
            _seed_admin(app, store)

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)
    logging.getLogger("facturahn").setLevel(level)


def _seed_admin(app: Flask, store) -> None:
    """Create a default company and admin account if no admin exists."""
    from facturahn.models import User

    if User.objects(role="admin").first():
        return

    company = store.create_company(name="Mi Empresa")
    admin = User(
        full_name="Administrador",
        email=app.config["ADMIN_EMAIL"].lower(),
        role="admin",
        company_id=company.id,
    )
    admin.set_password(app.config["ADMIN_PASSWORD"])
    admin.save()
    app.logger.info("Default admin created: %s", admin.email)
