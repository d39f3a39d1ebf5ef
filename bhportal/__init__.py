__version__ = "1.0.0"

import logging
import logging.config

from flask import Flask, jsonify

from .exceptions import WizardError

logger = logging.getLogger(__name__)


def create_app(config_object=None):
    """
    Application factory.

    Args:
        config_object: configuration class or import path; the environment
            selected configuration by default

    Returns:
        The configured Flask application
    """
    from .api import create_records_blueprints
    from .cli import bhportal as bhportal_cli
    from .config import get_config
    from .models import db
    from .views import create_wizard_blueprints

    app = Flask(__name__)
    app.config.from_object(config_object or get_config())
    logging.config.dictConfig(app.config['LOGGING_CONFIG'])

    db.init_app(app)

    for blueprint in create_records_blueprints() + create_wizard_blueprints():
        app.register_blueprint(blueprint)
    app.cli.add_command(bhportal_cli)

    register_error_handlers(app)

    logger.info(f"{app.config['APP_NAME']} initialized")
    return app


def register_error_handlers(app):
    """JSON bodies for every bhportal error."""

    @app.errorhandler(WizardError)
    def handle_wizard_error(e):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        else:
            logger.warning(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code
