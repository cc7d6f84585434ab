import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple

basedir = os.path.abspath(os.path.dirname(__file__))

DEFAULT_SCRIPT_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbzuYjBU0Va9nJ1ias4ZkGmVh-PBoZxN9_leNA3nhcOPQ8uXi7I2e8bmQLAxDmXv7tY/exec"
)


def _csv(value, default):
    """Split a comma separated environment value into a tuple."""
    if not value:
        return default
    return tuple(part.strip() for part in value.split(',') if part.strip())


class Config:
    """Base configuration for the application."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-please-change-in-production'
    DEBUG = False
    TESTING = False

    # Local store backend
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///drillsync.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'standard')
    LOG_DIR = os.environ.get('LOG_DIR')

    # Remote endpoint (Apps Script web app)
    DEFAULT_SCRIPT_URL = os.environ.get('DEFAULT_SCRIPT_URL', DEFAULT_SCRIPT_URL)
    SCRIPT_URL_PLACEHOLDERS = _csv(os.environ.get('SCRIPT_URL_PLACEHOLDERS'), ('INSERT',))
    SYNC_TIMEOUT_SECONDS = float(os.environ.get('SYNC_TIMEOUT_SECONDS', 30))

    # Connectivity
    CONNECTIVITY_CHECK_HOST = os.environ.get('CONNECTIVITY_CHECK_HOST', 'script.google.com')
    CONNECTIVITY_CHECK_PORT = int(os.environ.get('CONNECTIVITY_CHECK_PORT', 443))
    CONNECTIVITY_CHECK_TIMEOUT = float(os.environ.get('CONNECTIVITY_CHECK_TIMEOUT', 3))
    AUTO_SYNC_ON_RECONNECT = os.environ.get('AUTO_SYNC_ON_RECONNECT', 'false').lower() == 'true'

    # Fleet and wear thresholds (inches)
    DRILL_IDS = _csv(os.environ.get('DRILL_IDS'),
                     ('101', '102', '103', '104', '105', '106', '111', '112'))
    SMALL_MODEL_DRILLS = _csv(os.environ.get('SMALL_MODEL_DRILLS'), ('111', '112'))
    WEAR_GREEN_THRESHOLD = float(os.environ.get('WEAR_GREEN_THRESHOLD', 8.9))
    WEAR_RED_THRESHOLD = float(os.environ.get('WEAR_RED_THRESHOLD', 8.6))
    SMALL_MODEL_GREEN_THRESHOLD = float(os.environ.get('SMALL_MODEL_GREEN_THRESHOLD', 6.2))
    SMALL_MODEL_RED_THRESHOLD = float(os.environ.get('SMALL_MODEL_RED_THRESHOLD', 5.9))

    VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or 'sqlite:///drillsync-dev.db'


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    DEBUG = True

    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SYNC_TIMEOUT_SECONDS = 2
    AUTO_SYNC_ON_RECONNECT = False


class ProductionConfig(Config):
    """Production configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')


# Configuration dictionary
config_dict = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration class based on environment."""
    if not config_name:
        config_name = os.environ.get('FLASK_ENV', 'default')
    return config_dict.get(config_name, config_dict['default'])


@dataclass(frozen=True)
class StoreKeys:
    """Storage keys used by the local store."""

    reports: str = 'drill_reports_v1'
    steel_changes: str = 'steel_changes_v1'
    measurements: str = 'measurements_v1'
    operator_name: str = 'saved_operator_name'
    script_url: str = 'script_url'

    def all(self) -> Tuple[str, ...]:
        return (self.reports, self.steel_changes, self.measurements,
                self.operator_name, self.script_url)


@dataclass(frozen=True)
class SyncConfig:
    """Runtime settings shared by the store, the sync client and the services.

    Built once by the application factory from the Flask config and held for
    the lifetime of the process.
    """

    default_script_url: str = DEFAULT_SCRIPT_URL
    placeholders: Tuple[str, ...] = ('INSERT',)
    timeout: float = 30.0
    check_host: str = 'script.google.com'
    check_port: int = 443
    check_timeout: float = 3.0
    auto_sync_on_reconnect: bool = False
    drill_ids: Tuple[str, ...] = Config.DRILL_IDS
    small_model_drills: Tuple[str, ...] = ('111', '112')
    green_threshold: float = 8.9
    red_threshold: float = 8.6
    small_green_threshold: float = 6.2
    small_red_threshold: float = 5.9
    keys: StoreKeys = field(default_factory=StoreKeys)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'SyncConfig':
        """Build the runtime settings from a Flask config (or any mapping)."""
        defaults = cls()
        return cls(
            default_script_url=mapping.get('DEFAULT_SCRIPT_URL', defaults.default_script_url),
            placeholders=tuple(mapping.get('SCRIPT_URL_PLACEHOLDERS', defaults.placeholders)),
            timeout=float(mapping.get('SYNC_TIMEOUT_SECONDS', defaults.timeout)),
            check_host=mapping.get('CONNECTIVITY_CHECK_HOST', defaults.check_host),
            check_port=int(mapping.get('CONNECTIVITY_CHECK_PORT', defaults.check_port)),
            check_timeout=float(mapping.get('CONNECTIVITY_CHECK_TIMEOUT', defaults.check_timeout)),
            auto_sync_on_reconnect=bool(mapping.get('AUTO_SYNC_ON_RECONNECT',
                                                    defaults.auto_sync_on_reconnect)),
            drill_ids=tuple(mapping.get('DRILL_IDS', defaults.drill_ids)),
            small_model_drills=tuple(mapping.get('SMALL_MODEL_DRILLS', defaults.small_model_drills)),
            green_threshold=float(mapping.get('WEAR_GREEN_THRESHOLD', defaults.green_threshold)),
            red_threshold=float(mapping.get('WEAR_RED_THRESHOLD', defaults.red_threshold)),
            small_green_threshold=float(mapping.get('SMALL_MODEL_GREEN_THRESHOLD',
                                                    defaults.small_green_threshold)),
            small_red_threshold=float(mapping.get('SMALL_MODEL_RED_THRESHOLD',
                                                  defaults.small_red_threshold)),
        )

    def is_placeholder(self, url) -> bool:
        """True when the URL is unset or still carries a placeholder marker."""
        if not url or url in ('undefined', 'null'):
            return True
        return any(marker in url for marker in self.placeholders)
