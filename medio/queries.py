"""Building search queries from filenames, folders and content hints."""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Union

from medio.models import ContentEvidence, ParsedInfo

PathLike = Union[str, PurePath]

_NOISE_TOKENS = frozenset(
    {
        "1080p",
        "720p",
        "2160p",
        "4k",
        "webrip",
        "web-dl",
        "bluray",
        "brrip",
        "x264",
        "x265",
        "h264",
        "h265",
        "hevc",
        "aac",
        "dts",
        "hdr",
        "dv",
    }
)

_SEASON_FOLDER_LABELS = frozenset(
    {"season 01", "season 1", "season 02", "season 2", "s01", "s02", "s1", "s2"}
)

_MUSIC_SPLITTERS = (" - ", " – ", " — ")

_PARENT_DEPTH = 4


def _ascii_lower(text: str) -> str:
    return "".join(c.lower() if c.isascii() else c for c in text)


def _ascii_digits(text: str) -> bool:
    return all("0" <= c <= "9" for c in text)


def _as_path(path: PathLike) -> PurePath:
    return path if isinstance(path, PurePath) else Path(path)


def _parent_dir_names(path: PathLike) -> list[str]:
    """Names of the nearest enclosing folders, closest first, skipping nameless roots."""
    parents = list(_as_path(path).parents)[:_PARENT_DEPTH]
    return [parent.name for parent in parents if parent.name]


def normalize_title_query(title: str) -> str:
    """Turn dots and underscores into spaces and trim."""
    return title.replace(".", " ").replace("_", " ").replace("  ", " ").strip()


def strip_title_noise(title: str) -> str:
    """Drop resolution, source and codec tokens from a title."""
    tokens = normalize_title_query(title).split()
    return " ".join(t for t in tokens if _ascii_lower(t) not in _NOISE_TOKENS)


def _is_year_token(token: str) -> bool:
    if len(token.encode("utf-8")) != 4:
        return False
    digits = token[1:] if token.startswith("+") else token
    if not digits or not _ascii_digits(digits):
        return False
    return 1900 <= int(digits) <= 2099


def _is_episode_marker(token: str) -> bool:
    lower = _ascii_lower(token)
    return (
        len(lower.encode("utf-8")) == 6
        and lower[0] == "s"
        and lower[3] == "e"
        and _ascii_digits(lower[1:3])
        and _ascii_digits(lower[4:6])
    )


def compact_identity_query(title: str) -> str:
    """The title without noise, years and SxxEyy markers."""
    tokens = strip_title_noise(title).split()
    return " ".join(
        t for t in tokens if not (_is_year_token(t) or _is_episode_marker(t))
    )


def push_unique_variant(variants: list[str], candidate: str) -> None:
    """Append the trimmed candidate unless blank or already present ignoring ASCII case."""
    candidate = candidate.strip()
    if not candidate:
        return
    key = _ascii_lower(candidate)
    if not any(_ascii_lower(existing) == key for existing in variants):
        variants.append(candidate)


def title_query_variants(title: str) -> list[str]:
    """Progressively cleaner spellings of a title to search for."""
    variants: list[str] = []
    raw = title.strip()
    if not raw:
        return variants

    push_unique_variant(variants, raw)
    push_unique_variant(variants, normalize_title_query(raw))

    stripped = strip_title_noise(raw)
    if stripped:
        push_unique_variant(variants, stripped)
        push_unique_variant(variants, normalize_title_query(stripped))

    identity = compact_identity_query(raw)
    if identity:
        push_unique_variant(variants, identity)
        push_unique_variant(variants, normalize_title_query(identity))

    return variants


def is_context_junk(label: str) -> bool:
    """Whether a folder label says nothing about the title (blank or a season folder)."""
    lower = _ascii_lower(label.strip())
    if not lower:
        return True
    if lower in _SEASON_FOLDER_LABELS:
        return True
    return (
        len(lower.encode("utf-8")) <= 6
        and lower.startswith("s")
        and _ascii_digits(lower[1:])
    )


def path_context_title_hints(path: PathLike) -> list[str]:
    """Title hints taken from the names of the folders holding a file."""
    hints: list[str] = []
    for name in _parent_dir_names(path):
        label = normalize_title_query(name)
        if not label or is_context_junk(label):
            continue
        push_unique_variant(hints, label)
    return hints


def context_parent_labels(path: PathLike) -> list[str]:
    """Normalized names of the folders holding a file, closest first."""
    labels = (normalize_title_query(name) for name in _parent_dir_names(path))
    return [label for label in labels if label]


def contextual_title_queries(
    path: PathLike, parsed: ParsedInfo, content_evidence: ContentEvidence
) -> list[str]:
    """Queries from the parsed title, then content title hints, then folder names."""
    variants = title_query_variants(parsed.raw_title)
    for hint in content_evidence.title_candidates:
        for query in title_query_variants(hint):
            push_unique_variant(variants, query)
    for hint in path_context_title_hints(path):
        for query in title_query_variants(hint):
            push_unique_variant(variants, query)
    return variants


def music_query_variants(raw_title: str) -> list[tuple[str, str]]:
    """(artist, title) pairs to try for a music filename."""
    normalized = normalize_title_query(raw_title)
    variants: list[tuple[str, str]] = []

    for splitter in _MUSIC_SPLITTERS:
        artist, found, title = normalized.partition(splitter)
        if not found:
            continue
        artist, title = artist.strip(), title.strip()
        if artist and title:
            variants.append((artist, title))

    if not variants:
        parts = normalized.split()
        if len(parts) >= 2:
            variants.append((parts[0], " ".join(parts[1:])))

    if not variants:
        variants.append((normalized, normalized))

    return variants


def normalized_identity_tokens(raw: str) -> str:
    """A lower-cased, noise-free form of a title for comparisons."""
    return _ascii_lower(normalize_title_query(strip_title_noise(raw)))