"""The library ledger: owned cards, merge policy and persistence."""

import json
import logging
import threading
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .exceptions import EntryNotFoundError, InvalidCardError
from .identity import find_by_key, find_match
from .models import CardPrinting, IdentityKey, LibraryEntry, utcnow
from .store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY_KEY = "mtgLibrary"


def merge(existing: LibraryEntry, incoming: LibraryEntry, prefer_incoming_price: bool = False) -> LibraryEntry:
    """Combine an incoming copy of a card with the entry already owned.

    Shared by manual adds and CSV imports:
    - Quantities are summed
    - Price is backfilled only when the stored price is zero, unless
      prefer_incoming_price is set (imports), in which case any positive
      incoming price wins
    - Foil is sticky: once foil, always foil
    - Source id, set and image fields are backfilled only where missing

    Returns:
        A new LibraryEntry; neither argument is modified
    """
    unit_price = existing.unit_price
    if incoming.unit_price > 0 and (prefer_incoming_price or not existing.unit_price):
        unit_price = incoming.unit_price

    return replace(
        existing,
        name=existing.name or incoming.name,
        quantity=existing.quantity + incoming.quantity,
        unit_price=unit_price,
        foil=existing.foil or incoming.foil,
        source_id=existing.source_id or incoming.source_id,
        set_name=existing.set_name or incoming.set_name,
        set_code=existing.set_code or incoming.set_code,
        collector_number=existing.collector_number or incoming.collector_number,
        image_uris=existing.image_uris or dict(incoming.image_uris),
        last_modified=utcnow(),
    )


class Ledger:
    """In-memory collection of owned cards backed by a key-value slot.

    Every mutating method persists the whole ledger once and returns the
    new list of entries. Mutations are serialized by a lock so the ledger
    can be shared by request handlers running on worker threads.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_LIBRARY_KEY,
        entries: Optional[Iterable[LibraryEntry]] = None,
    ) -> None:
        self.store = store
        self.key = key
        self._entries: List[LibraryEntry] = list(entries or [])
        self._lock = threading.RLock()

    @classmethod
    def load(cls, store: KeyValueStore, key: str = DEFAULT_LIBRARY_KEY) -> "Ledger":
        """Read the ledger blob from the store."""
        blob = store.get(key)
        entries = [LibraryEntry.from_dict(item) for item in json.loads(blob)] if blob else []
        logger.info(f"Loaded {len(entries)} library entries from slot {key!r}")
        return cls(store, key=key, entries=entries)

    @property
    def entries(self) -> List[LibraryEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def sorted_entries(self) -> List[LibraryEntry]:
        """Entries ordered for display, most recently changed first."""
        with self._lock:
            return sorted(self._entries, key=lambda e: e.last_modified, reverse=True)

    def find(self, key: IdentityKey, foil: bool) -> Optional[LibraryEntry]:
        with self._lock:
            index = find_by_key(self._entries, key, foil)
            return self._entries[index] if index is not None else None

    def total_value(self) -> Decimal:
        """Sum of every entry's value, rounded to cents."""
        with self._lock:
            return round(sum((e.total_value for e in self._entries), Decimal("0")), 2)

    def add(self, card: CardPrinting, quantity: int = 1, foil: bool = False) -> List[LibraryEntry]:
        """Add copies of a search result to the library.

        Raises:
            InvalidCardError: If the card has neither a name nor an id
            ValueError: If quantity is less than 1
        """
        if not card.name and not card.id:
            raise InvalidCardError("Card has no name or identifier")
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        incoming = LibraryEntry(
            name=card.name,
            set_name=card.set_name,
            set_code=card.set_code,
            collector_number=card.collector_number,
            source_id=card.id or None,
            foil=foil,
            unit_price=card.unit_price(foil),
            quantity=quantity,
            image_uris=dict(card.image_uris),
        )
        with self._lock:
            self._merge_in(incoming)
            self._persist()
            return self.entries

    def import_entries(self, incoming: Iterable[LibraryEntry]) -> Tuple[int, int]:
        """Merge parsed import rows, preferring their prices.

        Returns:
            (created, merged) counts
        """
        created = merged = 0
        with self._lock:
            for entry in incoming:
                if self._merge_in(entry, prefer_incoming_price=True):
                    created += 1
                else:
                    merged += 1
            self._persist()
        return created, merged

    def update_quantity(self, key: IdentityKey, foil: bool, new_quantity: int) -> List[LibraryEntry]:
        """Set the quantity of an entry; below 1 removes it.

        Raises:
            EntryNotFoundError: If no entry has this identity and finish
        """
        if new_quantity < 1:
            return self.remove(key, foil)

        with self._lock:
            index = find_by_key(self._entries, key, foil)
            if index is None:
                raise EntryNotFoundError(f"No library entry for {key!r} (foil={foil})")

            self._entries[index] = replace(
                self._entries[index], quantity=new_quantity, last_modified=utcnow()
            )
            self._persist()
            return self.entries

    def remove(self, key: IdentityKey, foil: bool) -> List[LibraryEntry]:
        """Delete an entry. Removing an absent entry is a no-op."""
        with self._lock:
            index = find_by_key(self._entries, key, foil)
            if index is not None:
                del self._entries[index]
            self._persist()
            return self.entries

    def _merge_in(self, incoming: LibraryEntry, prefer_incoming_price: bool = False) -> bool:
        """Merge one entry into the ledger. Returns True if it was created."""
        index = find_match(self._entries, incoming)
        if index is None:
            self._entries.append(replace(incoming, last_modified=utcnow()))
            logger.debug(f"New library entry {incoming.identity_key!r} foil={incoming.foil}")
            return True

        self._entries[index] = merge(self._entries[index], incoming, prefer_incoming_price)
        logger.debug(f"Merged into library entry {self._entries[index].identity_key!r}")
        return False

    def _persist(self) -> None:
        # Empty ledgers are never written: removing the last entry leaves the
        # previous save in the slot.
        if not self._entries:
            logger.warning(f"Library is empty, not saving slot {self.key!r}")
            return
        self.store.set(self.key, json.dumps([e.to_dict() for e in self._entries]))
