# ifimgone/__init__.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

# Load environment variables before the config classes read them
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv()

from ifimgone.config import config
from ifimgone.extensions import db, migrate, jwt, mail

logger = logging.getLogger(__name__)


def create_app(config_name=None, notifier=None):
    """Flask application factory"""
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_CONFIG') or 'default'
    app.config.from_object(config[config_name])

    from ifimgone.utils.logging import setup_logging
    setup_logging(app)

    _init_extensions(app)
    _register_blueprints(app)

    from ifimgone.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    from ifimgone import cli
    cli.init_app(app)

    from ifimgone.services import init_services
    init_services(app, notifier=notifier)

    app.logger.info("If I'm Gone backend startup complete")
    return app


def _init_extensions(app):
    """Initialize Flask extensions"""
    from flask_cors import CORS

    # Models must be imported before migrations or create_all see the metadata
    from ifimgone import models  # noqa: F401

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)
    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))


def _register_blueprints(app):
    """Register application blueprints"""
    from ifimgone.api.activity import activity_bp
    from ifimgone.api.contacts import contacts_bp
    from ifimgone.api.health import health_bp
    from ifimgone.api.releases import releases_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(activity_bp, url_prefix='/api/activity')
    app.register_blueprint(releases_bp, url_prefix='/api/releases')
    app.register_blueprint(contacts_bp, url_prefix='/api/contacts')
