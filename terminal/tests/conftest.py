# Overview: Pytest fixtures for the POS terminal tests.

"""
Pytest fixtures for the POS terminal tests.

Provides an app wired to an in-memory settings store and a fake backend,
a test client, and a standalone PosTerminal for service-level tests.
"""

import pytest

from pos import create_app
from pos.extensions import db
from pos.services.api_client import TimeseatsClient
from pos.services.settings_service import TerminalSettings
from pos.services.terminal_service import PosTerminal, get_terminal

from fake_backend import BASE_URL, FakeBackend


@pytest.fixture(scope='function')
def backend():
    """Fresh fake backend with two slots and a seeded inventory."""
    return FakeBackend()


@pytest.fixture(scope='function')
def app(backend):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_API_BASE_URL': BASE_URL,
        'POS_HTTP_TRANSPORT': backend.transport,
    })

    with app.app_context():
        yield app
        get_terminal().close()
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Settings store, emptied before each test."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def terminal(backend):
    """PosTerminal talking to the fake backend, without a Flask app."""
    def client_factory(settings):
        return TimeseatsClient(settings.api_base_url, timeout=1.0, transport=backend.transport)

    pos_terminal = PosTerminal(TerminalSettings(api_base_url=BASE_URL), client_factory=client_factory)
    yield pos_terminal
    pos_terminal.close()


@pytest.fixture(scope='function')
def ready_terminal(terminal):
    """Terminal with slots loaded and slot-1 (the active slot) selected."""
    terminal.load_sales_slots()
    terminal.drain_notifications()
    return terminal
