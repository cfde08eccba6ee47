"""Movie and TV metadata lookups against The Movie Database."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from medio.models import ScrapeResult, ScrapeSource

TMDB_BASE_URL = "https://api.themoviedb.org/3"
IMAGE_BASE_URL = "https://image.tmdb.org/t/p/original"


def encode(text: str) -> str:
    """Percent-encode every UTF-8 byte of text except unreserved characters."""
    return quote(text, safe="")


def _expect_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{what}: expected a JSON object")
    return value


def _object_list(record: dict, key: str, what: str) -> list[dict]:
    if key not in record or not isinstance(record[key], list):
        raise ValueError(f"{what}: field '{key}' must be a list")
    return [_expect_object(entry, f"{what}.{key}") for entry in record[key]]


def _required_str(record: dict, key: str, what: str) -> str:
    value = record.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{what}: field '{key}' must be a string")
    return value


def _optional_str(record: dict, key: str, what: str) -> Optional[str]:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{what}: field '{key}' must be a string or null")
    return value


def _optional_float(record: dict, key: str, what: str) -> Optional[float]:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{what}: field '{key}' must be a number or null")
    return float(value)


def _required_int(record: dict, key: str, what: str) -> int:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what}: field '{key}' must be an integer")
    return value


def _year_prefix(date: Optional[str]) -> Optional[int]:
    """The year held by the first four bytes of a date string, if they are one."""
    if date is None:
        return None
    head = date.encode("utf-8")
    if len(head) < 4:
        return None
    try:
        text = head[:4].decode("ascii")
    except UnicodeDecodeError:
        return None
    digits = text[1:] if text.startswith("+") else text
    if not digits.isdigit():
        return None
    return int(digits)


def _image_url(path: Optional[str]) -> Optional[str]:
    return None if path is None else f"{IMAGE_BASE_URL}{path}"


class TmdbScraper:
    """Searches TMDB for movie and TV candidates and episode details."""

    def __init__(
        self,
        api_key: str = "",
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = TMDB_BASE_URL,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    def is_configured(self) -> bool:
        """Whether an API key is set; without one every lookup finds nothing."""
        return bool(self.api_key)

    async def _fetch_json(self, url: str) -> Any:
        if self._client is not None:
            response = await self._client.get(url)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url)
        return response.json()

    def _url_suffix(self, year_param: str, year: Optional[int], lang: Optional[str]) -> str:
        suffix = ""
        if year is not None:
            suffix += f"&{year_param}={year}"
        if lang is not None:
            suffix += f"&language={lang}"
        return suffix

    async def search_movie_candidates(
        self, title: str, year: Optional[int], lang: Optional[str], limit: int
    ) -> list[ScrapeResult]:
        """Up to limit movie matches for title, best first as TMDB ranks them."""
        if not self.is_configured():
            return []
        url = (
            f"{self.base_url}/search/movie?api_key={self.api_key}&query={encode(title)}"
            + self._url_suffix("year", year, lang)
        )
        payload = _expect_object(await self._fetch_json(url), "movie search")
        results = _object_list(payload, "results", "movie search")

        candidates = []
        for record in results[:limit]:
            what = "movie search result"
            movie_id = _required_int(record, "id", what)
            name = _required_str(record, "title", what)
            release_year = _year_prefix(_optional_str(record, "release_date", what))
            result = (
                ScrapeResult.empty(ScrapeSource.TMDB, name)
                .with_confidence(0.9)
                .with_evidence(
                    [f"TMDB movie candidate id={movie_id}", f"query title '{title}'"]
                )
            )
            result.title_original = _optional_str(record, "original_title", what)
            result.year = release_year
            result.overview = _optional_str(record, "overview", what)
            result.rating = _optional_float(record, "vote_average", what)
            result.poster_url = _image_url(_optional_str(record, "poster_path", what))
            result.fanart_url = _image_url(_optional_str(record, "backdrop_path", what))
            result.tmdb_id = movie_id
            if release_year is not None:
                result.push_evidence(f"TMDB release year {release_year}")
            candidates.append(result)
        return candidates

    async def search_tv_candidates(
        self, title: str, year: Optional[int], lang: Optional[str], limit: int
    ) -> list[ScrapeResult]:
        """Up to limit TV series matches for title, best first as TMDB ranks them."""
        if not self.is_configured():
            return []
        url = (
            f"{self.base_url}/search/tv?api_key={self.api_key}&query={encode(title)}"
            + self._url_suffix("first_air_date_year", year, lang)
        )
        payload = _expect_object(await self._fetch_json(url), "tv search")
        results = _object_list(payload, "results", "tv search")

        candidates = []
        for record in results[:limit]:
            what = "tv search result"
            series_id = _required_int(record, "id", what)
            name = _optional_str(record, "name", what) or ""
            air_year = _year_prefix(_optional_str(record, "first_air_date", what))
            result = (
                ScrapeResult.empty(ScrapeSource.TMDB, name)
                .with_confidence(0.9)
                .with_evidence(
                    [f"TMDB TV candidate id={series_id}", f"query title '{title}'"]
                )
            )
            result.title_original = _optional_str(record, "original_name", what)
            result.year = air_year
            result.overview = _optional_str(record, "overview", what)
            result.rating = _optional_float(record, "vote_average", what)
            result.poster_url = _image_url(_optional_str(record, "poster_path", what))
            result.fanart_url = _image_url(_optional_str(record, "backdrop_path", what))
            result.tmdb_id = series_id
            if air_year is not None:
                result.push_evidence(f"TMDB first air year {air_year}")
            candidates.append(result)
        return candidates

    async def get_episode_with_lang(
        self, tv_id: int, season: int, episode: int, lang: Optional[str]
    ) -> Optional[ScrapeResult]:
        """Details of one episode of series tv_id, or None when unconfigured."""
        if not self.is_configured():
            return None
        url = (
            f"{self.base_url}/tv/{tv_id}/season/{season}/episode/{episode}"
            f"?api_key={self.api_key}"
        )
        if lang is not None:
            url += f"&language={lang}"
        what = "episode"
        record = _expect_object(await self._fetch_json(url), what)
        episode_name = _required_str(record, "name", what)

        result = ScrapeResult.empty(ScrapeSource.TMDB, "").with_confidence(0.94)
        result.overview = _optional_str(record, "overview", what)
        result.rating = _optional_float(record, "vote_average", what)
        result.season_number = season
        result.episode_number = episode
        result.episode_name = episode_name
        result.poster_url = _image_url(_optional_str(record, "still_path", what))
        result.tmdb_id = tv_id
        result.push_evidence(
            f"TMDB episode lookup tv_id={tv_id} season={season} episode={episode}"
        )
        return result