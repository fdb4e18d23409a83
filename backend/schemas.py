from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime


class CardResponse(BaseModel):
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
    image_uris: Dict[str, str] = {}
    prices: Dict[str, Optional[Decimal]] = {}

    class Config:
        from_attributes = True


class CardSearchResponse(BaseModel):
    cards: List[CardResponse]
    total: int
    message: Optional[str] = None


class CardImageResponse(BaseModel):
    name: str
    image_url: Optional[str] = None


class AddToLibraryRequest(BaseModel):
    card: CardResponse
    quantity: int = Field(1, ge=1)
    foil: bool = False


class QuantityUpdate(BaseModel):
    identity: str
    foil: bool = False
    quantity: int


class LibraryEntryResponse(BaseModel):
    identity: str
    name: str
    set_name: str
    set_code: str
    collector_number: str
    scryfall_id: Optional[str] = None
    foil: bool
    price: Decimal
    quantity: int
    total_value: Decimal
    last_modified: datetime
    image_uris: Dict[str, str] = {}


class LibraryResponse(BaseModel):
    entries: List[LibraryEntryResponse]
    count: int
    total_value: Decimal


class ImportResponse(BaseModel):
    rows_read: int
    created: int
    merged: int
    skipped: int
    library: LibraryResponse
