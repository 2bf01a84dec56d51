"""
Pytest configuration and shared fixtures for link-page tests.
"""

import os
import sys

import pytest

# Set test environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["BDO_BACKEND"] = "stub"
os.environ["ADDIE_BACKEND"] = "stub"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SOCKETIO_ASYNC_MODE"] = "threading"
os.environ["FORCE_HTTPS"] = "false"

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mappings_file(tmp_path):
    return str(tmp_path / "data" / "alphanumeric-mappings.json")


@pytest.fixture
def app_config(mappings_file):
    from linkpage.config import get_config

    cfg = get_config()
    cfg["MAPPINGS_FILE"] = mappings_file
    return cfg


@pytest.fixture
def app(app_config):
    """Create and configure a test Flask application instance."""
    from linkpage.factory import create_app

    flask_app = create_app(app_config)
    flask_app.config.update({"TESTING": True})

    with flask_app.app_context():
        yield flask_app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["linkpage"]


@pytest.fixture
def socketio_client(app, client):
    """SocketIO test client sharing the Flask test client's cookies."""
    from linkpage.realtime import socketio

    sio_client = socketio.test_client(app, flask_test_client=client)
    yield sio_client
    if sio_client.is_connected():
        sio_client.disconnect()


@pytest.fixture
def bdo_client():
    from linkpage.bdo import BdoClient

    return BdoClient("http://bdo.test", backend="stub")


@pytest.fixture
def keypair():
    from linkpage.identity import generate_keypair

    return generate_keypair()


@pytest.fixture
def sample_links():
    return [
        {"title": "My Website", "url": "https://example.com"},
        {"title": "Blog", "url": "https://blog.example.com"},
        {"title": "github", "url": "https://github.com/example", "isSocial": True},
    ]


def make_links(count, social=0):
    """Build ``count`` regular link dicts followed by ``social`` social ones."""
    links = [{"title": f"Link {i}", "url": f"https://example.com/{i}"} for i in range(count)]
    links += [{"title": "instagram", "url": f"https://instagram.com/{i}", "isSocial": True} for i in range(social)]
    return links


@pytest.fixture
def link_factory():
    return make_links


@pytest.fixture
def mock_audit_logger():
    """Mock audit logger for testing."""
    from unittest.mock import MagicMock

    return MagicMock()


# Pytest configuration hooks
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add 'unit' marker to tests in unit/ directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add 'integration' marker to tests in integration/ directory
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
