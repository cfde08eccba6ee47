"""Book metadata lookups against Open Library."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from medio.models import ScrapeResult, ScrapeSource
from medio.tmdb import encode

OPENLIBRARY_SEARCH_URL = "https://openlibrary.org/search.json"
COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"


def _expect_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{what}: expected a JSON object")
    return value


def _optional_str(record: dict, key: str) -> Optional[str]:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"search doc: field '{key}' must be a string or null")
    return value


def _optional_int(record: dict, key: str) -> Optional[int]:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"search doc: field '{key}' must be a non-negative integer or null")
    return value


def _string_list(record: dict, key: str) -> list[str]:
    value = record.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"search doc: field '{key}' must be a list of strings")
    return value


class OpenLibraryScraper:
    """Searches Open Library for books by title and author."""

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = OPENLIBRARY_SEARCH_URL,
    ) -> None:
        self.base_url = base_url
        self._client = client

    async def _fetch_json(self, url: str) -> Any:
        if self._client is not None:
            response = await self._client.get(url)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url)
        return response.json()

    async def search(self, title: str, author: Optional[str] = None) -> Optional[ScrapeResult]:
        """The best book matching title (and author, if given), or None."""
        query = f'title:"{title}"'
        if author is not None:
            query += f' AND author:"{author}"'
        url = f"{self.base_url}?q={encode(query)}&limit=1"

        payload = _expect_object(await self._fetch_json(url), "book search")
        docs = payload.get("docs")
        if not isinstance(docs, list):
            raise ValueError("book search: field 'docs' must be a list")
        if not docs:
            return None

        first = _expect_object(docs[0], "search doc")
        doc_title = _optional_str(first, "title")
        authors = _string_list(first, "author_name")
        publish_year = _optional_int(first, "first_publish_year")
        cover_id = _optional_int(first, "cover_i")
        key = _optional_str(first, "key")

        result = (
            ScrapeResult.empty(ScrapeSource.OPENLIBRARY, doc_title or "")
            .with_confidence(0.83)
            .with_evidence([f"OpenLibrary work key={key or ''}", f"query title '{title}'"])
        )
        result.year = publish_year
        result.author = authors[0] if authors else None
        result.cover_url = (
            None if cover_id is None else COVER_URL_TEMPLATE.format(cover_id=cover_id)
        )
        result.openlibrary_id = key
        return result