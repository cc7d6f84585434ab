import pytest

from drillsync import create_app
from drillsync.config import SyncConfig
from drillsync.extensions import db as _db
from drillsync.services.container import get_container
from drillsync.services.local_store import LocalStore, MemoryBackend

SCRIPT_URL = "https://script.google.com/macros/s/test-deployment/exec"


class FailingBackend(MemoryBackend):
    """Backend that raises on demand, like a locked-down browser storage."""

    def __init__(self, fail_reads=False, fail_writes=False, initial=None):
        super().__init__(initial)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def get(self, key):
        if self.fail_reads:
            raise OSError("storage disabled")
        return super().get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise OSError("quota exceeded")
        super().set(key, value)

    def clear(self, keys):
        if self.fail_writes:
            raise OSError("storage disabled")
        super().clear(keys)


@pytest.fixture
def sync_config():
    return SyncConfig(default_script_url=SCRIPT_URL, timeout=2)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend, sync_config):
    return LocalStore(backend, sync_config)


@pytest.fixture
def shift_report_data():
    """A captured shift report in wire form."""
    def build(record_id="id-report-1", **overrides):
        data = {
            "id": record_id,
            "date": "2024-03-01",
            "shift": "A",
            "drillId": "104",
            "operatorName": "J. Rojas",
            "bench": "2780",
            "phase": "F3",
            "mesh": "M-12",
            "bitBrand": "Varel",
            "bitModel": "V-40",
            "bitSerial": "SN-881",
            "bitDiameter": '10 5/8"',
            "holes": [],
        }
        data.update(overrides)
        return data
    return build


@pytest.fixture
def app():
    """Create and configure a Flask app for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-key',
        'DEFAULT_SCRIPT_URL': SCRIPT_URL,
        'SYNC_TIMEOUT_SECONDS': 2,
        'AUTO_SYNC_ON_RECONNECT': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def container(app):
    return get_container(app)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test CLI runner for the app."""
    return app.test_cli_runner()
