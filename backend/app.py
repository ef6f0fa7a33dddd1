"""Flask application factory for the field project management backend."""
from flask import Flask
import logging
from pathlib import Path
from .models import db
from .settings import ServerSettings
from .blueprints import health, auth, projects, reports, photos, tasks, profiles, tables
from .cli import (
    init_db_command, migrate_command, list_tables_command,
    migrate_legacy_users_command, tasks_cli
)
from .logging_config import setup_logging
from .utils import register_error_handlers

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Flask application factory for the field project management backend.

    Creates and configures a Flask application instance with:
    - settings from ``FIELDPM_`` environment variables
    - SQLAlchemy database integration
    - Blueprint registration for API endpoints
    - Bearer token authentication
    - CLI command registration

    Args:
        test_config (dict, optional): Configuration overrides for testing

    Returns:
        Flask: Configured Flask application instance
    """
    settings = ServerSettings()
    log_dir = (test_config or {}).get('LOG_DIR') or settings.log_dir or None
    setup_logging(log_dir)
    logger.info("Starting Flask application initialization")

    app = Flask(__name__, instance_relative_config=True)
    logger.debug(f"Flask app created with instance path: {app.instance_path}")

    app.config.from_mapping(settings.to_flask_config())
    if test_config is None:
        # Load the instance config, if it exists, when not testing
        config_loaded = app.config.from_pyfile('config.py', silent=True)
        if config_loaded:
            logger.info("Loaded configuration from instance/config.py")
        else:
            logger.debug("No instance config file found, using defaults")
    else:
        app.config.from_mapping(test_config)
        logger.info("Loaded test configuration")

    try:
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.debug(f"Could not create instance directory: {app.instance_path}")

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    logger.info(f"Using database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    db.init_app(app)

    logger.info("Registering API blueprints")
    for module in (health, auth, projects, reports, photos, tasks, profiles, tables):
        app.register_blueprint(module.bp)
        logger.debug(f"Registered {module.bp.name} blueprint")

    auth.init_auth(app)
    logger.info(f"Authentication initialized (required={app.config['REQUIRE_AUTH']})")

    register_error_handlers(app)

    app.cli.add_command(init_db_command)
    app.cli.add_command(migrate_command)
    app.cli.add_command(list_tables_command)
    app.cli.add_command(migrate_legacy_users_command)
    app.cli.add_command(tasks_cli)
    logger.info("CLI commands registered: init-db, migrate, list-tables, migrate-legacy-users, tasks")

    logger.info("Flask application initialization completed successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
