"""Tests for the SQLAlchemy-backed library store."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, LibrarySlot, SQLAlchemyStore
from mtg_library import Ledger


@pytest.fixture
def session_factory():
    """Create an in-memory database shared across sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_store(session_factory):
    return SQLAlchemyStore(session_factory)


class TestSQLAlchemyStore:

    def test_missing_key(self, sql_store):
        assert sql_store.get("mtgLibrary") is None

    def test_set_and_get(self, sql_store):
        sql_store.set("mtgLibrary", "[]")
        assert sql_store.get("mtgLibrary") == "[]"

    def test_overwrites_single_row(self, sql_store, session_factory):
        sql_store.set("mtgLibrary", "[1]")
        sql_store.set("mtgLibrary", "[2]")

        assert sql_store.get("mtgLibrary") == "[2]"
        db = session_factory()
        try:
            assert db.query(LibrarySlot).count() == 1
        finally:
            db.close()

    def test_ledger_round_trip(self, sql_store, sample_cards):
        ledger = Ledger(sql_store)
        ledger.add(sample_cards[0], quantity=2)
        ledger.add(sample_cards[2], foil=True)

        loaded = Ledger.load(sql_store)

        assert loaded.entries == ledger.entries
        assert loaded.total_value() == ledger.total_value()
