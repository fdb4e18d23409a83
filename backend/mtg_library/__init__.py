"""Scryfall card search and personal library tracking."""

from .models import CardPrinting, ImportResult, LibraryEntry
from .exceptions import (
    EntryNotFoundError,
    InvalidCardError,
    LibraryError,
    MissingColumnError,
    QueryError,
)
from .api_client import ScryfallClient, ScryfallConfig
from .identity import find_match
from .ledger import Ledger, merge
from .matcher import matches
from .csv_processor import export_csv, import_csv
from .store import KeyValueStore, MemoryStore

__all__ = [
    "CardPrinting",
    "ImportResult",
    "LibraryEntry",
    "EntryNotFoundError",
    "InvalidCardError",
    "LibraryError",
    "MissingColumnError",
    "QueryError",
    "ScryfallClient",
    "ScryfallConfig",
    "find_match",
    "Ledger",
    "merge",
    "matches",
    "export_csv",
    "import_csv",
    "KeyValueStore",
    "MemoryStore",
]
