"""Best-effort book metadata lookup against the Google Books catalog.

A lookup never blocks or fails a book submission: timeouts, HTTP errors
and malformed payloads all degrade to an empty :class:`BookInfo`.
"""

import logging
import os
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import BaseModel

from bookworm.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

BOOK_LOOKUP_URL = os.getenv(
    "BOOK_LOOKUP_URL", "https://www.googleapis.com/books/v1/volumes"
)
BOOK_LOOKUP_TIMEOUT = float(os.getenv("BOOK_LOOKUP_TIMEOUT", "5"))


class BookInfo(BaseModel):
    cover_url: Optional[str] = None
    reading_level: Optional[str] = None
    interest_level: Optional[str] = None


BookLookup = Callable[[str, str], Awaitable[BookInfo]]


def reading_level_for_pages(pages: int) -> str:
    if pages < 50:
        return "Early Reader (K-2)"
    if pages < 150:
        return "Grade 3-5"
    if pages < 300:
        return "Grade 6-8"
    return "Grade 9+"


def book_info_from_volume(volume: dict) -> BookInfo:
    """Map a Google Books ``volumeInfo`` object to the hints we store."""

    info = BookInfo()

    thumbnail = (volume.get("imageLinks") or {}).get("thumbnail")
    if thumbnail:
        info.cover_url = thumbnail.replace("http:", "https:", 1)

    maturity = volume.get("maturityRating")
    if maturity:
        info.interest_level = "All Ages" if maturity == "NOT_MATURE" else "Mature"

    # A children's or YA category is more specific than the maturity rating.
    categories = volume.get("categories") or []
    if categories:
        category = str(categories[0]).lower()
        if "juvenile" in category or "children" in category:
            info.interest_level = "Ages 8-12"
        elif "young adult" in category:
            info.interest_level = "Ages 12+"

    pages = volume.get("pageCount")
    # Only whole page counts are trusted; anything else leaves the level unset.
    if isinstance(pages, bool) or not isinstance(pages, int):
        pages = None
    if volume.get("averageRating") and pages:
        info.reading_level = reading_level_for_pages(pages)

    return info


async def _query_catalog(
    query: str, transport: httpx.AsyncBaseTransport | None = None
) -> dict | None:
    params = {"q": query, "maxResults": 1}
    async with httpx.AsyncClient(
        timeout=BOOK_LOOKUP_TIMEOUT, transport=transport
    ) as client:
        try:
            resp = await client.get(BOOK_LOOKUP_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise CollaboratorUnavailable(f"Book lookup failed: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorUnavailable("Book lookup returned invalid JSON") from exc
    if not isinstance(data, dict):
        raise CollaboratorUnavailable("Book lookup returned an unexpected payload")
    items = data.get("items") or []
    if not items:
        return None
    if not isinstance(items, list) or not isinstance(items[0], dict):
        raise CollaboratorUnavailable("Book lookup returned an unexpected payload")
    volume = items[0].get("volumeInfo") or {}
    if not isinstance(volume, dict):
        raise CollaboratorUnavailable("Book lookup returned an unexpected payload")
    return volume


async def fetch_book_info(
    title: str, author: str, transport: httpx.AsyncBaseTransport | None = None
) -> BookInfo:
    query = f"{title} {author}".strip()
    try:
        volume = await _query_catalog(query, transport=transport)
        if volume is None:
            logger.info("No catalog match for %r", query)
            return BookInfo()
        try:
            info = book_info_from_volume(volume)
        except (AttributeError, TypeError, ValueError) as exc:
            raise CollaboratorUnavailable(
                f"Book lookup returned malformed volume data: {exc}"
            ) from exc
    except CollaboratorUnavailable as exc:
        logger.warning("Continuing without book metadata: %s", exc.message)
        return BookInfo()
    logger.debug("Book info for %r: %s", query, info)
    return info


def get_book_lookup() -> BookLookup:
    """FastAPI dependency returning the lookup used for new submissions."""
    return fetch_book_info
