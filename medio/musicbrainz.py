"""Music metadata lookups against MusicBrainz."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from medio.models import ScrapeResult, ScrapeSource
from medio.tmdb import encode

MUSICBRAINZ_BASE_URL = "https://musicbrainz.org/ws/2"


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


def _credit_names(record: dict, what: str) -> list[str]:
    key = "artist-credit" if "artist_credit" not in record and "artist-credit" in record else "artist_credit"
    return [
        _required_str(credit, "name", f"{what} artist credit")
        for credit in _object_list(record, key, what)
    ]


def _year_prefix(date: Optional[str]) -> Optional[int]:
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


class MusicBrainzScraper:
    """Searches MusicBrainz for recordings and releases."""

    def __init__(
        self,
        user_agent: str = "",
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = MUSICBRAINZ_BASE_URL,
    ) -> None:
        self.user_agent = user_agent
        self.base_url = base_url
        self._client = client

    def is_configured(self) -> bool:
        """MusicBrainz requires an identifying User-Agent; without one nothing is searched."""
        return bool(self.user_agent)

    async def _fetch_json(self, url: str) -> Any:
        headers = {"User-Agent": self.user_agent}
        if self._client is not None:
            response = await self._client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url, headers=headers)
        return response.json()

    async def search_recording(self, artist: str, title: str) -> Optional[ScrapeResult]:
        """The best recording matching artist and title, or None."""
        if not self.is_configured():
            return None
        query = f'artist:"{artist}" AND recording:"{title}"'
        url = f"{self.base_url}/recording?query={encode(query)}&fmt=json&limit=1"
        payload = _expect_object(await self._fetch_json(url), "recording search")
        recordings = _object_list(payload, "recordings", "recording search")
        if not recordings:
            return None

        what = "recording"
        first = recordings[0]
        recording_id = _required_str(first, "id", what)
        recording_title = _required_str(first, "title", what)
        credits = _credit_names(first, what)
        releases = [
            (
                _required_str(release, "title", "recording release"),
                _optional_str(release, "date", "recording release"),
            )
            for release in _object_list(first, "releases", what)
        ]
        release = releases[0] if releases else None

        result = (
            ScrapeResult.empty(ScrapeSource.MUSICBRAINZ, recording_title)
            .with_confidence(0.86)
            .with_evidence(
                [
                    f"MusicBrainz recording id={recording_id}",
                    f"query artist='{artist}' title='{title}'",
                ]
            )
        )
        result.year = _year_prefix(release[1]) if release else None
        result.artist = credits[0] if credits else ""
        result.album = release[0] if release else None
        result.musicbrainz_id = recording_id
        return result

    async def search_release(self, artist: str, album: str) -> Optional[ScrapeResult]:
        """The best release (album) matching artist and album, or None."""
        if not self.is_configured():
            return None
        query = f'artist:"{artist}" AND release:"{album}"'
        url = f"{self.base_url}/release?query={encode(query)}&fmt=json&limit=1"
        payload = _expect_object(await self._fetch_json(url), "release search")
        releases = _object_list(payload, "releases", "release search")
        if not releases:
            return None

        what = "release"
        first = releases[0]
        release_id = _required_str(first, "id", what)
        release_title = _required_str(first, "title", what)
        date = _optional_str(first, "date", what)
        credits = _credit_names(first, what)

        result = (
            ScrapeResult.empty(ScrapeSource.MUSICBRAINZ, release_title)
            .with_confidence(0.84)
            .with_evidence(
                [
                    f"MusicBrainz release id={release_id}",
                    f"query artist='{artist}' album='{album}'",
                ]
            )
        )
        result.year = _year_prefix(date)
        result.artist = credits[0] if credits else ""
        result.album = release_title
        result.musicbrainz_id = release_id
        return result