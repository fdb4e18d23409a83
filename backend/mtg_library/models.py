"""Dataclass models for card printings and library entries."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple, Union

IdentityKey = Union[str, Tuple[str, str, str]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert an API price quote ("1.23", 1.23, None) to Decimal."""
    if value is None or value == "":
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite():
        return None
    return price


@dataclass
class CardPrinting:
    """One printing of a card as returned by the Scryfall search API.

    Read-only to the library; many printings can share a name (reprints).
    """
    id: str
    name: str
    set_name: str = ""
    set_code: str = ""
    collector_number: str = ""
    rarity: str = ""
    mana_cost: str = ""
    type_line: str = ""
    oracle_text: str = ""
    released_at: str = ""
    image_uris: Dict[str, str] = field(default_factory=dict)
    prices: Dict[str, Optional[Decimal]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CardPrinting":
        """Flatten a Scryfall card object.

        Multi-faced cards carry their images on the first face instead of
        the top-level object.
        """
        image_uris = data.get("image_uris") or {}
        faces = data.get("card_faces") or []
        if not image_uris and faces:
            image_uris = faces[0].get("image_uris") or {}

        raw_prices = data.get("prices") or {}
        prices = {
            key: to_decimal(raw_prices.get(key))
            for key in ("usd", "usd_foil", "eur", "eur_foil")
        }

        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            set_name=data.get("set_name") or "",
            set_code=data.get("set") or "",
            collector_number=data.get("collector_number") or "",
            rarity=data.get("rarity") or "",
            mana_cost=data.get("mana_cost") or "",
            type_line=data.get("type_line") or "",
            oracle_text=data.get("oracle_text") or "",
            released_at=data.get("released_at") or "",
            image_uris={k: v for k, v in image_uris.items() if k in ("small", "normal")},
            prices=prices,
        )

    def unit_price(self, foil: bool = False) -> Decimal:
        """Foil quote for foil adds when present, else the regular quote, else zero."""
        if foil and self.prices.get("usd_foil") is not None:
            return self.prices["usd_foil"]
        regular = self.prices.get("usd")
        return regular if regular is not None else Decimal("0")


@dataclass
class LibraryEntry:
    """An owned card in the library.

    Identity is (identity_key, foil). total_value is derived from
    unit_price and quantity and never stored independently.
    """
    name: str
    set_name: str = ""
    collector_number: str = ""
    source_id: Optional[str] = None
    foil: bool = False
    unit_price: Decimal = Decimal("0")
    quantity: int = 1
    last_modified: datetime = field(default_factory=utcnow)
    set_code: str = ""
    image_uris: Dict[str, str] = field(default_factory=dict)

    @property
    def identity_key(self) -> IdentityKey:
        if self.source_id:
            return self.source_id
        return (self.name, self.set_name, self.collector_number)

    @property
    def total_value(self) -> Decimal:
        return round(self.unit_price * self.quantity, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "set_name": self.set_name,
            "set_code": self.set_code,
            "collector_number": self.collector_number,
            "scryfall_id": self.source_id,
            "foil": self.foil,
            "price": str(self.unit_price),
            "quantity": self.quantity,
            "total_value": str(self.total_value),
            "last_modified": self.last_modified.isoformat(),
            "image_uris": dict(self.image_uris),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryEntry":
        """Rebuild an entry from its persisted form.

        Also reads blobs saved by the earlier browser app, which used
        ``id``/``scryfall_id`` and numeric prices and had no foil flag.
        """
        last_modified = utcnow()
        if data.get("last_modified"):
            last_modified = datetime.fromisoformat(data["last_modified"])

        source_id = data.get("scryfall_id") or data.get("id") or None
        if source_id and str(source_id).startswith("imported-"):
            source_id = None

        return cls(
            name=data.get("name") or "",
            set_name=data.get("set_name") or "",
            set_code=data.get("set_code") or "",
            collector_number=str(data.get("collector_number") or ""),
            source_id=source_id,
            foil=bool(data.get("foil", False)),
            unit_price=to_decimal(data.get("price")) or Decimal("0"),
            quantity=max(1, int(data.get("quantity") or 1)),
            last_modified=last_modified,
            image_uris=dict(data.get("image_uris") or {}),
        )


@dataclass
class ImportResult:
    """Summary of a CSV import."""
    rows_read: int = 0
    created: int = 0
    merged: int = 0
    skipped: int = 0

    @property
    def imported_count(self) -> int:
        return self.created + self.merged
