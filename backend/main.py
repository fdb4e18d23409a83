import logging
import os
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from database import SessionLocal, SQLAlchemyStore, init_db
from mtg_library import (
    CardPrinting,
    EntryNotFoundError,
    InvalidCardError,
    Ledger,
    MissingColumnError,
    QueryError,
    ScryfallClient,
    ScryfallConfig,
    matches,
)
from mtg_library.csv_processor import export_csv, export_filename, import_csv
from mtg_library.identity import format_identity, parse_identity
from mtg_library.ledger import DEFAULT_LIBRARY_KEY
from schemas import (
    AddToLibraryRequest,
    CardImageResponse,
    CardResponse,
    CardSearchResponse,
    ImportResponse,
    LibraryEntryResponse,
    LibraryResponse,
    QuantityUpdate,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

LIBRARY_KEY = os.getenv("LIBRARY_KEY", DEFAULT_LIBRARY_KEY)
NO_RESULTS_MESSAGE = "No cards found matching your search."

app = FastAPI(title="MTG Library API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ledger: Optional[Ledger] = None


@app.on_event("startup")
def startup_event():
    global _ledger
    init_db()
    _ledger = Ledger.load(SQLAlchemyStore(SessionLocal), key=LIBRARY_KEY)


def get_ledger() -> Ledger:
    if _ledger is None:
        raise HTTPException(status_code=503, detail="Library is not loaded yet")
    return _ledger


def get_scryfall_client() -> ScryfallClient:
    return ScryfallClient(config=ScryfallConfig.from_env())


def library_response(ledger: Ledger, filter: Optional[str] = None) -> LibraryResponse:
    entries = [
        e for e in ledger.sorted_entries()
        if not filter or matches(f"{e.name} {e.set_name}", filter)
    ]
    return LibraryResponse(
        entries=[
            LibraryEntryResponse(
                identity=format_identity(e.identity_key),
                name=e.name,
                set_name=e.set_name,
                set_code=e.set_code,
                collector_number=e.collector_number,
                scryfall_id=e.source_id,
                foil=e.foil,
                price=e.unit_price,
                quantity=e.quantity,
                total_value=e.total_value,
                last_modified=e.last_modified,
                image_uris=e.image_uris,
            )
            for e in entries
        ],
        count=len(entries),
        total_value=ledger.total_value(),
    )


@app.get("/api/cards/search", response_model=CardSearchResponse)
async def search_cards(
    name: str,
    exact: bool = False,
    filter: Optional[str] = None,
    client: ScryfallClient = Depends(get_scryfall_client),
):
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Enter a card name to search for")

    try:
        cards = await client.search(name, exact=exact)
    except QueryError as e:
        if e.status_code == 404:
            return CardSearchResponse(cards=[], total=0, message=NO_RESULTS_MESSAGE)
        raise HTTPException(status_code=502, detail=str(e))

    if filter:
        cards = [c for c in cards if matches(f"{c.name} {c.set_name}", filter)]

    return CardSearchResponse(
        cards=[CardResponse.model_validate(c) for c in cards],
        total=len(cards),
        message=None if cards else NO_RESULTS_MESSAGE,
    )


@app.get("/api/cards/image", response_model=CardImageResponse)
async def get_card_image(
    name: str,
    client: ScryfallClient = Depends(get_scryfall_client),
):
    try:
        image_url = await client.get_card_image(name)
    except QueryError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=404, detail=f"Card not found: {name}")
        raise HTTPException(status_code=502, detail=str(e))
    return CardImageResponse(name=name, image_url=image_url)


@app.get("/api/library", response_model=LibraryResponse)
def get_library(
    filter: Optional[str] = None,
    ledger: Ledger = Depends(get_ledger),
):
    return library_response(ledger, filter)


@app.post("/api/library", response_model=LibraryResponse)
def add_to_library(
    request: AddToLibraryRequest,
    ledger: Ledger = Depends(get_ledger),
):
    card = CardPrinting(**request.card.model_dump())
    try:
        ledger.add(card, quantity=request.quantity, foil=request.foil)
    except InvalidCardError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return library_response(ledger)


@app.put("/api/library/quantity", response_model=LibraryResponse)
def update_quantity(
    update: QuantityUpdate,
    ledger: Ledger = Depends(get_ledger),
):
    try:
        ledger.update_quantity(parse_identity(update.identity), update.foil, update.quantity)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return library_response(ledger)


@app.delete("/api/library", response_model=LibraryResponse)
def remove_from_library(
    identity: str,
    foil: bool = False,
    ledger: Ledger = Depends(get_ledger),
):
    ledger.remove(parse_identity(identity), foil)
    return library_response(ledger)


@app.get("/api/library/export")
def export_library(ledger: Ledger = Depends(get_ledger)):
    """Export the library as CSV, one row per entry."""
    content = export_csv(ledger.entries)
    filename = export_filename()
    logger.info(f"Exporting {len(ledger)} library entries to {filename}")
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.post("/api/library/import", response_model=ImportResponse)
async def import_library(
    file: UploadFile = File(...),
    ledger: Ledger = Depends(get_ledger),
):
    """Merge an uploaded CSV into the library.

    Columns are detected from the header row; only a name column is required.
    """
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 text")

    try:
        result = await run_in_threadpool(import_csv, ledger, text)
    except MissingColumnError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ImportResponse(
        rows_read=result.rows_read,
        created=result.created,
        merged=result.merged,
        skipped=result.skipped,
        library=library_response(ledger),
    )
