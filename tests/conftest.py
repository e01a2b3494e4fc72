import logging

import pytest

from crafture.config import Settings
from crafture.connections.payment_setup import PaymentSetup
from crafture.connections.storage_connection import StorageConnection
from crafture.database import create_session_factory
from crafture.server.app import ServerState, create_app
from crafture.stores.history_store import HistoryStore
from mocks import MockGenerator, MockPaymentSetup, MockSession, MockStorage, mock_normalizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


@pytest.fixture
def settings():
    return Settings(
        filecoin_private_key="0x" + "11" * 32,
        filecoin_provider_url="https://provider.example",
        database_url="sqlite:///:memory:",
        gemini_api_key="test-key",
        storage_timeout_s=5,
        tx_timeout_s=5,
    )


@pytest.fixture
def history_store(settings):
    return HistoryStore(
        create_session_factory(settings.database_url, settings.history_table_name),
        settings.history_table_name,
    )


@pytest.fixture
def mock_session():
    return MockSession()


@pytest.fixture
def storage_connection(settings, mock_session):
    return StorageConnection(settings, session_factory=lambda _: mock_session)


@pytest.fixture
def payment_setup(storage_connection):
    return PaymentSetup(storage_connection)


@pytest.fixture
def make_state(settings, history_store):
    def _make(generator=None, storage=None, payment_setup=None, history=None, normalizer=None):
        return ServerState(
            settings=settings,
            generator=generator or MockGenerator(),
            storage=storage or MockStorage(),
            payment_setup=payment_setup or MockPaymentSetup(),
            history=history or history_store,
            normalizer=normalizer or mock_normalizer(),
        )
    return _make


@pytest.fixture
def make_client(make_state):
    from fastapi.testclient import TestClient

    def _make(**kwargs):
        state = make_state(**kwargs)
        return TestClient(create_app(state=state)), state
    return _make
