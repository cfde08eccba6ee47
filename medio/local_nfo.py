"""Reading Kodi/Emby style .nfo metadata files that sit next to media."""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from medio.models import ScrapeResult, ScrapeSource

_TAG_NAME_TERMINATORS = (">", " ", "\t", "\n", "\r")
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


@dataclass
class TagBlock:
    """One element found in an nfo document: its opening tag and inner text."""

    open_tag: str
    value: str


def extract_tag_blocks(content: str, tag: str) -> list[TagBlock]:
    """Every <tag ...>value</tag> element in content, in document order."""
    blocks: list[TagBlock] = []
    open_prefix = f"<{tag}"
    close_tag = f"</{tag}>"
    cursor = 0

    while True:
        open_start = content.find(open_prefix, cursor)
        if open_start < 0:
            break
        tag_end = open_start + len(open_prefix)
        next_char = content[tag_end : tag_end + 1]
        if next_char not in _TAG_NAME_TERMINATORS or not next_char:
            cursor = tag_end
            continue
        open_end = content.find(">", open_start)
        if open_end < 0:
            break
        value_start = open_end + 1
        value_end = content.find(close_tag, value_start)
        if value_end < 0:
            break
        blocks.append(
            TagBlock(
                open_tag=content[open_start : open_end + 1],
                value=content[value_start:value_end],
            )
        )
        cursor = value_end + len(close_tag)

    return blocks


def extract_first_tag(content: str, tag: str) -> Optional[str]:
    """The first non-blank, trimmed value of tag in content."""
    for block in extract_tag_blocks(content, tag):
        value = block.value.strip()
        if value:
            return value
    return None


def extract_attr(open_tag: str, attr: str) -> Optional[str]:
    """The double-quoted value of attr inside an opening tag."""
    needle = f'{attr}="'
    start = open_tag.find(needle)
    if start < 0:
        return None
    rest = open_tag[start + len(needle) :]
    end = rest.find('"')
    if end < 0:
        return None
    return rest[:end]


def _parse_unsigned(value: Optional[str], bits: int) -> Optional[int]:
    if value is None or not _UNSIGNED_RE.fullmatch(value):
        return None
    number = int(value)
    return number if number < (1 << bits) else None


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None or not _FLOAT_RE.fullmatch(value):
        return None
    return float(value)


def _ascii_lower(text: str) -> str:
    return "".join(c.lower() if c.isascii() else c for c in text)


def read_nfo(nfo_path: Path | str) -> Optional[ScrapeResult]:
    """Metadata from an nfo file, or None if unreadable or it names no title."""
    nfo_path = Path(nfo_path)
    try:
        content = nfo_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    result = ScrapeResult.empty(ScrapeSource.LOCAL_NFO, "").with_confidence(0.98)
    result.push_evidence(f"loaded local NFO {nfo_path}")

    is_episode = "<episodedetails" in content
    title = extract_first_tag(content, "title")
    show_title = extract_first_tag(content, "showtitle")

    if is_episode:
        series = show_title if show_title is not None else title
        if series is not None:
            result.title = series
        episode_name = extract_first_tag(content, "episodename")
        result.episode_name = episode_name if episode_name is not None else title
    elif title is not None:
        result.title = title

    result.title_original = extract_first_tag(content, "originaltitle")
    result.year = _parse_unsigned(extract_first_tag(content, "year"), 16)
    result.overview = extract_first_tag(content, "plot")
    result.rating = _parse_float(extract_first_tag(content, "rating"))
    result.season_number = _parse_unsigned(extract_first_tag(content, "season"), 32)
    result.episode_number = _parse_unsigned(extract_first_tag(content, "episode"), 32)
    result.poster_url = extract_first_tag(content, "thumb")
    fanart = extract_first_tag(content, "fanart")
    if fanart is not None:
        nested = extract_first_tag(fanart, "thumb")
        result.fanart_url = nested if nested is not None else fanart
    result.artist = extract_first_tag(content, "artist")
    result.album = extract_first_tag(content, "album")
    result.author = extract_first_tag(content, "author")

    for unique_id in extract_tag_blocks(content, "uniqueid"):
        id_type = _ascii_lower(extract_attr(unique_id.open_tag, "type") or "")
        value = unique_id.value.strip()
        if not value:
            continue
        if id_type == "tmdb" and result.tmdb_id is None:
            result.tmdb_id = _parse_unsigned(value, 64)
        elif id_type == "musicbrainz" and result.musicbrainz_id is None:
            result.musicbrainz_id = value
        elif id_type == "openlibrary" and result.openlibrary_id is None:
            result.openlibrary_id = value
        elif result.tmdb_id is None:
            result.tmdb_id = _parse_unsigned(value, 64)

    if not result.title:
        return None
    result.push_evidence("accepted local NFO as authoritative metadata")
    return result


def find_nfo(media_path: Path | str) -> Optional[Path]:
    """The nfo describing a media file: its own, the folder's tvshow.nfo, or a show folder's."""
    media_path = Path(media_path)
    if not media_path.name:
        return None
    directory = media_path.parent
    own = directory / f"{media_path.stem}.nfo"
    if own.exists():
        return own
    tvshow = directory / "tvshow.nfo"
    if tvshow.exists():
        return tvshow
    for ancestor in itertools.islice(directory.parents, 2):
        candidate = ancestor / "tvshow.nfo"
        if candidate.exists():
            return candidate
    return None