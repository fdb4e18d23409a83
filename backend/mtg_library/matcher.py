"""Free-text matching for filtering search results and the library."""

import unicodedata


def normalize_text(text: str) -> str:
    """Lowercase and strip diacritics ("Café" -> "cafe")."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.lower()


def matches(haystack: str, query: str) -> bool:
    """True if every whitespace-separated query token occurs in haystack.

    Token order does not matter and an empty query matches everything.
    """
    normalized = normalize_text(haystack or "")
    return all(token in normalized for token in normalize_text(query or "").split())
