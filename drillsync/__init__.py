import os
import logging

from flask import Flask

from drillsync.extensions import init_extensions
from drillsync.errors import register_error_handlers
from drillsync.logger import setup_logging

log = logging.getLogger(__name__)


def create_app(test_config=None, backend=None):
    """Application factory function.

    Args:
        test_config: mapping that overrides the environment configuration
        backend: key-value backend for the local store; defaults to the
            ``storage_entries`` table
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    from drillsync.config import get_config
    config_name = os.environ.get('FLASK_ENV', 'default')
    app.config.from_object(get_config(config_name))
    if test_config is not None:
        app.config.from_mapping(test_config)

    # Ensure the instance folder exists
    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass

    setup_logging(app)

    init_extensions(app)
    register_error_handlers(app)
    register_blueprints(app)

    from drillsync.cli import register_commands
    register_commands(app)

    init_services(app, backend)

    return app


def init_services(app, backend=None):
    """Wire the service container and the connectivity monitor."""
    from drillsync.services.container import init_container

    container = init_container(app, backend=backend)
    monitor = container.connectivity

    if container.config.auto_sync_on_reconnect:
        def sync_on_reconnect(online):
            if not online:
                return
            with app.app_context():
                report = container.sync_service.run_pass()
                log.info(f"Reconnect sync: {report.summary()}")

        monitor.subscribe(sync_on_reconnect)

    # The initial reading opens a socket; tests set the state explicitly
    if not app.config.get('TESTING'):
        monitor.start()

    return container


def register_blueprints(app):
    """Register all blueprints with the application."""
    from drillsync.web.api import api_bp
    from drillsync.web.health import health_bp

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(health_bp, url_prefix='/health')
    app.logger.info("Registered blueprints: api, health")
