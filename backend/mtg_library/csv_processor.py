"""CSV export and import for the card library."""

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .exceptions import MissingColumnError
from .ledger import Ledger
from .models import ImportResult, LibraryEntry

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Name", "Set", "Collector Number", "Price", "Quantity", "Total Value", "Foil", "Scryfall ID",
]

# Acceptable header names per field, most preferred first. Fields are
# resolved in this order and each header is claimed by at most one field.
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "name": ["name", "card name", "card"],
    "set_name": ["set name", "set", "edition", "expansion"],
    "collector_number": ["collector number", "collector #", "card number", "number"],
    "total_value": ["total value", "total"],
    "price": ["price", "unit price", "usd"],
    "quantity": ["quantity", "qty", "count"],
    "foil": ["foil", "finish", "premium"],
    "source_id": ["scryfall id", "scryfall_id", "id"],
}

_PRICE_NOISE = re.compile(r"[\s\"'$€£¥,]")


def export_filename(today: Optional[date] = None) -> str:
    return f"mtg-library-{(today or date.today()).isoformat()}.csv"


def export_csv(entries: Iterable[LibraryEntry]) -> str:
    """Serialize entries to CSV, one row per entry.

    Only the name and set columns are quoted. Embedded double quotes are
    not escaped, so names containing them do not survive a round trip.
    """
    lines = [",".join(EXPORT_HEADERS)]
    for entry in entries:
        if '"' in entry.name or '"' in entry.set_name:
            logger.warning(f"Exporting {entry.name!r}: double quotes are not supported in CSV fields")
        lines.append(",".join([
            f'"{entry.name}"',
            f'"{entry.set_name}"',
            entry.collector_number,
            f"{entry.unit_price:.2f}",
            str(entry.quantity),
            f"{entry.total_value:.2f}",
            "Yes" if entry.foil else "No",
            entry.source_id or "",
        ]))
    return "\n".join(lines)


def split_csv_line(line: str) -> List[str]:
    """Split a line on commas that are not inside double quotes.

    Quote characters are dropped and cells are stripped.
    """
    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    cells.append("".join(current).strip())
    return cells


def load_csv(text: str) -> Tuple[List[str], pd.DataFrame]:
    """Parse CSV text into its header and a DataFrame of string cells.

    Blank lines are dropped. Columns are positional (duplicate header names
    are allowed); short rows are padded with empty strings and extra cells
    past the header are discarded.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return [], pd.DataFrame()

    headers = split_csv_line(lines[0])
    width = len(headers)
    rows = []
    for line in lines[1:]:
        cells = split_csv_line(line)[:width]
        rows.append(cells + [""] * (width - len(cells)))

    df = pd.DataFrame(rows, columns=range(width))
    df.columns = headers
    return headers, df


def find_column(headers: Sequence[str], candidates: Sequence[str], taken: Iterable[int] = ()) -> Optional[int]:
    """Locate a column by case-insensitive header match.

    Exact matches win over substring matches; within each pass the
    candidates are tried in priority order.
    """
    lowered = [h.strip().lower() for h in headers]
    taken = set(taken)

    for candidate in candidates:
        for index, header in enumerate(lowered):
            if index not in taken and header == candidate:
                return index

    for candidate in candidates:
        for index, header in enumerate(lowered):
            if index not in taken and candidate in header:
                return index

    return None


def locate_columns(headers: Sequence[str]) -> Dict[str, Optional[int]]:
    columns: Dict[str, Optional[int]] = {}
    for field_name, candidates in COLUMN_CANDIDATES.items():
        taken = [i for i in columns.values() if i is not None]
        columns[field_name] = find_column(headers, candidates, taken)
    return columns


def parse_price(value: str) -> Decimal:
    """Parse "$1,234.50" style prices; anything invalid or negative is 0."""
    cleaned = _PRICE_NOISE.sub("", value or "")
    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not price.is_finite() or price < 0:
        return Decimal("0")
    return price


def parse_quantity(value: str) -> int:
    """Parse a quantity, defaulting to 1 when absent, invalid or below 1."""
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 1
    return quantity if quantity >= 1 else 1


def parse_foil(value: str) -> bool:
    cleaned = (value or "").strip().lower()
    return cleaned in ("yes", "true") or cleaned == "1"


def parse_rows(text: str) -> Tuple[List[LibraryEntry], int]:
    """Turn CSV text into library entries.

    Rows without a name are skipped; malformed cells fall back to
    defaults. A zero price is derived from total / quantity when the file
    has a positive total.

    Returns:
        (entries, number of data rows read)

    Raises:
        MissingColumnError: If no header looks like a card name
    """
    headers, df = load_csv(text)
    columns = locate_columns(headers)
    if columns["name"] is None:
        raise MissingColumnError("CSV file has no card name column")

    def cell(row: tuple, field_name: str) -> str:
        index = columns[field_name]
        return str(row[index]).strip() if index is not None else ""

    entries: List[LibraryEntry] = []
    for row in df.itertuples(index=False, name=None):
        name = cell(row, "name")
        if not name:
            continue

        quantity = parse_quantity(cell(row, "quantity"))
        price = parse_price(cell(row, "price"))
        total = parse_price(cell(row, "total_value"))
        if price == 0 and total > 0:
            price = total / quantity

        entries.append(LibraryEntry(
            name=name,
            set_name=cell(row, "set_name"),
            collector_number=cell(row, "collector_number"),
            source_id=cell(row, "source_id") or None,
            foil=parse_foil(cell(row, "foil")),
            unit_price=price,
            quantity=quantity,
        ))

    return entries, len(df)


def import_csv(ledger: Ledger, text: str) -> ImportResult:
    """Merge a CSV file into the ledger.

    File-level problems abort before the ledger is touched; bad rows
    never do.
    """
    entries, rows_read = parse_rows(text)
    created, merged = ledger.import_entries(entries)
    result = ImportResult(
        rows_read=rows_read,
        created=created,
        merged=merged,
        skipped=rows_read - len(entries),
    )
    logger.info(
        f"Imported {result.imported_count} of {rows_read} rows "
        f"({created} new, {merged} merged, {result.skipped} skipped)"
    )
    return result
