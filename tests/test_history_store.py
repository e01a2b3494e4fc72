from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from crafture.config import DEFAULT_TABLE_NAME, Settings
from crafture.database import create_session_factory
from crafture.errors import PersistenceError, ValidationError
from crafture.stores.history_store import HISTORY_LIMIT, HistoryStore

URL = "https://0x5233e4253bc38e8cf517c0768dbc8acc886f32b3.calibration.filbeam.io/bafkzcib1"


def test_save_returns_row(history_store):
    row = history_store.save("0xabc", URL, "a cat in a hat")

    assert row.id is not None
    assert row.wallet_address == "0xabc"
    assert row.storage_url == URL
    assert row.prompt == "a cat in a hat"
    assert row.created_at is not None


@pytest.mark.parametrize("wallet,url,prompt", [
    ("", URL, "p"),
    ("0xabc", "", "p"),
    ("0xabc", URL, ""),
    (None, URL, "p"),
])
def test_save_requires_all_fields(history_store, wallet, url, prompt):
    with pytest.raises(ValidationError):
        history_store.save(wallet, url, prompt)
    assert history_store.count() == 0


def test_query_unknown_wallet_is_empty(history_store):
    history_store.save("0xabc", URL, "p")
    assert history_store.query_by_wallet("0xdef") == []


def test_query_is_newest_first_and_capped(history_store):
    session = history_store._session_factory()
    base = datetime(2024, 1, 1)
    for i in range(HISTORY_LIMIT + 5):
        session.add(history_store.model(
            wallet_address="0xabc",
            ipfs_url=f"{URL}{i}",
            prompt=f"prompt {i}",
            created_at=base + timedelta(minutes=i),
        ))
    session.add(history_store.model(wallet_address="0xother", ipfs_url=URL, prompt="x", created_at=base))
    session.commit()
    session.close()

    rows = history_store.query_by_wallet("0xabc")

    assert len(rows) == HISTORY_LIMIT
    assert rows[0].prompt == f"prompt {HISTORY_LIMIT + 4}"
    timestamps = [row.created_at for row in rows]
    assert all(a > b for a, b in zip(timestamps, timestamps[1:]))
    assert history_store.count() == HISTORY_LIMIT + 6


def test_unconfigured_store_raises_persistence_error():
    store = HistoryStore(None)
    assert not store.is_configured
    with pytest.raises(PersistenceError):
        store.query_by_wallet("0xabc")
    with pytest.raises(PersistenceError):
        store.save("0xabc", URL, "p")


def test_database_failure_is_wrapped(history_store):
    class BrokenSession:
        def query(self, *args):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        def close(self):
            pass

    store = HistoryStore(lambda: BrokenSession())
    with pytest.raises(PersistenceError) as excinfo:
        store.query_by_wallet("0xabc")
    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert "database is locked" in excinfo.value.details


def test_table_name_comes_from_settings():
    settings = Settings(database_url="sqlite:///:memory:", history_table_name="custom_history")
    factory = create_session_factory(settings.database_url, settings.history_table_name)
    store = HistoryStore(factory, settings.history_table_name)

    store.save("0xabc", URL, "p")

    assert store.model.__tablename__ == "custom_history"
    assert inspect(factory.kw["bind"]).get_table_names() == ["custom_history"]
    assert store.query_by_wallet("0xabc")[0].prompt == "p"


def test_default_table_name(history_store):
    assert history_store.model.__tablename__ == DEFAULT_TABLE_NAME == "AI Generated Content"


def test_created_at_is_set_on_save(history_store):
    assert history_store.model.__table__.c.created_at.default is None
    assert history_store.save("0xabc", URL, "p").created_at is not None
