"""Identity resolution between candidate cards and library entries."""

from typing import Optional, Sequence
from urllib.parse import unquote

from .models import IdentityKey, LibraryEntry


def find_match(entries: Sequence[LibraryEntry], candidate: LibraryEntry) -> Optional[int]:
    """Find the index of the entry that is the same card and finish as candidate.

    Matching Strategy:
    1. If the candidate has a source id, look for the same id and finish
    2. Otherwise (or when step 1 finds nothing), look for the same
       name, set name, collector number and finish

    Foil and non-foil copies of a printing never match each other.

    Returns:
        Index into entries, or None if nothing matches
    """
    if candidate.source_id:
        for index, entry in enumerate(entries):
            if entry.source_id == candidate.source_id and entry.foil == candidate.foil:
                return index

    for index, entry in enumerate(entries):
        if (
            entry.name == candidate.name
            and entry.set_name == candidate.set_name
            and entry.collector_number == candidate.collector_number
            and entry.foil == candidate.foil
        ):
            return index

    return None


def find_by_key(entries: Sequence[LibraryEntry], key: IdentityKey, foil: bool) -> Optional[int]:
    """Find the entry with the given identity key and finish."""
    for index, entry in enumerate(entries):
        if entry.identity_key == key and entry.foil == foil:
            return index
    return None


def _escape(part: str) -> str:
    return part.replace("%", "%25").replace("|", "%7C")


def format_identity(key: IdentityKey) -> str:
    """Render an identity key for use in requests and responses.

    Source ids are returned as-is (escaped); name/set/number keys become
    "name|set name|collector number". "%" and "|" inside a value are
    percent-escaped so the separator is never ambiguous.
    """
    if isinstance(key, tuple):
        return "|".join(_escape(part) for part in key)
    return _escape(key)


def parse_identity(value: str) -> IdentityKey:
    """Parse an identity produced by format_identity.

    Three "|"-separated parts become a name/set/number key; anything else
    is taken as a source id.
    """
    parts = value.split("|")
    if len(parts) == 3:
        return (unquote(parts[0]), unquote(parts[1]), unquote(parts[2]))
    return unquote(value)
