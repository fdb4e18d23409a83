"""Test fixtures for mtg_library tests."""

from unittest.mock import MagicMock

import pytest

from mtg_library.api_client import ScryfallClient, ScryfallConfig


@pytest.fixture
def make_response():
    """Factory for fake httpx responses returning a JSON payload."""
    def make(payload):
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status = MagicMock()
        return response
    return make


@pytest.fixture
def config():
    """Create test config."""
    return ScryfallConfig(base_url="https://api.scryfall.test")


@pytest.fixture
def scryfall_client(config):
    """Create test client."""
    return ScryfallClient(config=config)


@pytest.fixture
def exported_csv_data() -> str:
    """A library export as written by export_csv."""
    return """Name,Set,Collector Number,Price,Quantity,Total Value,Foil,Scryfall ID
"Lightning Bolt","Double Masters",117,1.50,2,3.00,No,bolt-2xm
"Lightning Bolt","Double Masters",117,4.00,1,4.00,Yes,bolt-2xm
"Borrowing 100,000 Arrows","Portal Three Kingdoms",32,0.40,3,1.20,No,arrows-ptk
"Shock","Strixhaven Mystical Archive",49,0.25,4,1.00,No,"""


@pytest.fixture
def third_party_csv_data() -> str:
    """A CSV from another collection tool with differently named columns."""
    return """Count,Card Name,Edition,Card Number,Condition,Purchase Price,Premium
2,Counterspell,Modern Horizons 2,267,Near Mint,"$1,050.00",No

3,"Snapcaster Mage",Innistrad,78,Lightly Played,$12.99,Yes
,,,,,,
x,Island,Unhinged,136,Near Mint,abc,
"""
