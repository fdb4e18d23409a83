"""Scryfall API client with paginated search."""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .exceptions import QueryError
from .models import CardPrinting

logger = logging.getLogger(__name__)


@dataclass
class ScryfallConfig:
    """Configuration for the Scryfall API client."""
    base_url: str = "https://api.scryfall.com"
    page_delay_seconds: float = 0.1  # Scryfall asks for 50-100ms between requests
    timeout_seconds: float = 30.0
    headers: Dict[str, str] = field(default_factory=lambda: {
        "Accept": "application/json;q=0.9,*/*;q=0.8",
        "User-Agent": "mtg-library/1.0",
    })

    @classmethod
    def from_env(cls) -> "ScryfallConfig":
        """Build a config from SCRYFALL_* environment variables."""
        config = cls()
        config.base_url = os.environ.get("SCRYFALL_API_URL", config.base_url).rstrip("/")
        config.page_delay_seconds = float(
            os.environ.get("SCRYFALL_PAGE_DELAY", config.page_delay_seconds)
        )
        config.timeout_seconds = float(
            os.environ.get("SCRYFALL_TIMEOUT", config.timeout_seconds)
        )
        return config


def build_query(name: str, exact: bool = False) -> str:
    """Wrap the name in Scryfall's exact-match operator when requested."""
    return f'!"{name}"' if exact else name


@dataclass
class ScryfallClient:
    """Async client for the Scryfall card search API.

    Stateless across calls. Failures are raised as QueryError and never
    retried.
    """
    config: ScryfallConfig = field(default_factory=ScryfallConfig)

    async def _get(
        self,
        http: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """GET a URL and return the decoded JSON body.

        Raises:
            QueryError: On transport errors or non-success responses
        """
        try:
            response = await http.get(url, params=params, headers=self.config.headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.warning(f"Scryfall returned {status_code} for {url}")
            raise QueryError(
                f"Scryfall request failed with status {status_code}",
                cause=e,
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Scryfall request error for {url}: {e}")
            raise QueryError(f"Scryfall request failed: {e}", cause=e) from e
        except ValueError as e:
            raise QueryError("Scryfall returned a malformed response", cause=e) from e

    async def search(self, name: str, exact: bool = False) -> List[CardPrinting]:
        """Search for every printing matching a card name.

        GET /cards/search?q=<query>&unique=prints

        Follows next_page links until has_more is false, sleeping between
        pages. A failed page discards everything fetched so far.

        Args:
            name: Card name to search for
            exact: Use exact-name matching instead of fuzzy matching

        Returns:
            All printings across every page, in server order
        """
        url: Optional[str] = f"{self.config.base_url}/cards/search"
        params: Optional[Dict[str, Any]] = {
            "q": build_query(name, exact),
            "unique": "prints",
        }
        cards: List[CardPrinting] = []

        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as http:
            while url:
                data = await self._get(http, url, params=params)
                cards.extend(CardPrinting.from_api(card) for card in data.get("data", []))
                logger.info(f"Fetched {len(cards)} printings for {name!r} so far...")

                if data.get("has_more") and data.get("next_page"):
                    # next_page already carries the query string
                    url = data["next_page"]
                    params = None
                    await asyncio.sleep(self.config.page_delay_seconds)
                else:
                    url = None

        return cards

    async def get_card_image(self, name: str) -> Optional[str]:
        """Look up the normal-size image URI for an exact card name.

        GET /cards/named?exact=<name>

        Returns:
            Image URI, or None if the card has no image
        """
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as http:
            data = await self._get(
                http,
                f"{self.config.base_url}/cards/named",
                params={"exact": name},
            )
        return CardPrinting.from_api(data).image_uris.get("normal")
