import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Point the app at a throwaway sqlite database before importing app modules
_db_dir = tempfile.mkdtemp(prefix="mtg-library-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'library.db')}"

from main import app, get_ledger, get_scryfall_client
from mtg_library import CardPrinting, Ledger, MemoryStore


class FakeScryfallClient:
    """Stands in for ScryfallClient in API tests."""

    def __init__(self, cards=None, image_url=None):
        self.cards = list(cards or [])
        self.image_url = image_url
        self.error = None
        self.calls = []

    async def search(self, name, exact=False):
        self.calls.append((name, exact))
        if self.error:
            raise self.error
        return list(self.cards)

    async def get_card_image(self, name):
        self.calls.append((name, True))
        if self.error:
            raise self.error
        return self.image_url


@pytest.fixture
def card_payload():
    """Factory for Scryfall-shaped card JSON."""
    def make(
        id="bolt-2xm",
        name="Lightning Bolt",
        set_name="Double Masters",
        set="2xm",
        collector_number="117",
        usd="1.50",
        usd_foil="4.00",
        **extra,
    ):
        data = {
            "object": "card",
            "id": id,
            "name": name,
            "set_name": set_name,
            "set": set,
            "collector_number": collector_number,
            "rarity": "uncommon",
            "mana_cost": "{R}",
            "type_line": "Instant",
            "oracle_text": "Lightning Bolt deals 3 damage to any target.",
            "released_at": "2020-08-07",
            "image_uris": {
                "small": f"https://cards.scryfall.io/small/{id}.jpg",
                "normal": f"https://cards.scryfall.io/normal/{id}.jpg",
                "large": f"https://cards.scryfall.io/large/{id}.jpg",
            },
            "prices": {"usd": usd, "usd_foil": usd_foil, "eur": None, "eur_foil": None},
        }
        data.update(extra)
        return data
    return make


@pytest.fixture
def sample_cards(card_payload):
    """A few printings as returned by a search."""
    return [
        CardPrinting.from_api(card_payload()),
        CardPrinting.from_api(card_payload(
            id="bolt-m10", set_name="Magic 2010", set="m10", collector_number="146",
            usd="2.00", usd_foil=None,
        )),
        CardPrinting.from_api(card_payload(
            id="shock-sta", name="Shock", set_name="Strixhaven Mystical Archive",
            set="sta", collector_number="49", usd="0.25", usd_foil="0.75",
        )),
        CardPrinting.from_api(card_payload(
            id="cafe-1", name="Café Owner", set_name="Test Set", set="tst",
            collector_number="1", usd=None, usd_foil=None,
        )),
    ]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ledger(store):
    return Ledger(store)


@pytest.fixture
def fake_client(sample_cards):
    return FakeScryfallClient(cards=sample_cards, image_url="https://cards.scryfall.io/normal/bolt.jpg")


@pytest.fixture(scope="function")
def client(ledger, fake_client):
    """Create test client with the library and Scryfall client overridden."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_scryfall_client] = lambda: fake_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
