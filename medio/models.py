"""Data model shared by the scrapers and identity resolution."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional


class MediaType(enum.Enum):
    """Broad kind of media a file holds."""

    MOVIE = "Movie"
    TV_SHOW = "TvShow"
    MUSIC = "Music"
    NOVEL = "Novel"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


class ScrapeSource(enum.Enum):
    """Where a piece of scraped metadata came from."""

    LOCAL_NFO = "LocalNfo"
    TMDB = "Tmdb"
    MUSICBRAINZ = "MusicBrainz"
    OPENLIBRARY = "OpenLibrary"
    AI = "Ai"
    GUESS = "Guess"

    def __str__(self) -> str:
        return self.value


class ConfirmationState(enum.Enum):
    """How firmly an identity has been established."""

    CONFIRMED = "Confirmed"
    HIGH_CONFIDENCE_CANDIDATE = "HighConfidenceCandidate"
    AMBIGUOUS_CANDIDATES = "AmbiguousCandidates"
    INSUFFICIENT_EVIDENCE = "InsufficientEvidence"

    def __str__(self) -> str:
        return self.value


class ParseSource(enum.Enum):
    """How a filename was parsed."""

    REGEX = "Regex"
    CONTEXT = "Context"
    AI = "Ai"

    def __str__(self) -> str:
        return self.value


class SubtitleEvidenceSource(enum.Enum):
    """Where subtitle evidence was read from."""

    EMBEDDED_TRACK = "EmbeddedTrack"
    EXTERNAL_TEXT = "ExternalText"

    def __str__(self) -> str:
        return self.value


@dataclass
class ScrapeResult:
    """Metadata found for one media file by one source."""

    source: ScrapeSource
    title: str = ""
    title_original: Optional[str] = None
    year: Optional[int] = None
    overview: Optional[str] = None
    rating: Optional[float] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    episode_name: Optional[str] = None
    poster_url: Optional[str] = None
    fanart_url: Optional[str] = None
    cover_url: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    author: Optional[str] = None
    tmdb_id: Optional[int] = None
    musicbrainz_id: Optional[str] = None
    openlibrary_id: Optional[str] = None
    confidence: float = 0.0
    evidence: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls, source: ScrapeSource, title: str) -> "ScrapeResult":
        """A result carrying only its source and title."""
        return cls(source=source, title=title)

    def with_confidence(self, confidence: float) -> "ScrapeResult":
        """Set the confidence and return the same result."""
        self.confidence = confidence
        return self

    def with_evidence(self, details: Iterable[str]) -> "ScrapeResult":
        """Append several evidence lines and return the same result."""
        for detail in details:
            self.push_evidence(detail)
        return self

    def push_evidence(self, detail: str) -> None:
        """Record one line explaining how this result was obtained."""
        self.evidence.append(str(detail))

    def authority_score(self) -> float:
        """How much weight this result carries on its own."""
        return self.confidence


@dataclass
class ParsedInfo:
    """What was read out of a filename."""

    raw_title: str
    year: Optional[int] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    resolution: Optional[str] = None
    codec: Optional[str] = None
    source: Optional[str] = None
    release_group: Optional[str] = None
    media_suffix: Optional[str] = None
    parse_source: ParseSource = ParseSource.REGEX
    confidence: float = 0.0
    evidence: list[str] = field(default_factory=list)


@dataclass
class QualityInfo:
    """Technical quality of a media file."""

    resolution_label: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    duration_secs: Optional[int] = None
    quality_score: float = 0.0


@dataclass
class ContainerEvidence:
    """Identity hints stored in the container itself."""

    title: Optional[str] = None
    chapters: list[str] = field(default_factory=list)
    track_titles: list[str] = field(default_factory=list)


@dataclass
class SubtitleEvidence:
    """Identity hints found in one subtitle stream or file."""

    source: SubtitleEvidenceSource
    locator: str
    language: Optional[str] = None
    track_title: Optional[str] = None
    sample_lines: list[str] = field(default_factory=list)
    title_candidates: list[str] = field(default_factory=list)
    season: Optional[int] = None
    episode: Optional[int] = None


@dataclass
class VisualEvidence:
    """Text recognised in sampled frames."""

    locator: str = ""
    text_hits: list[str] = field(default_factory=list)


@dataclass
class AudioEvidence:
    """Phrases recognised in sampled audio."""

    locator: str = ""
    transcript_hits: list[str] = field(default_factory=list)


@dataclass
class ContentEvidence:
    """Everything learned about a file by looking inside it."""

    container: ContainerEvidence = field(default_factory=ContainerEvidence)
    subtitles: list[SubtitleEvidence] = field(default_factory=list)
    visual: list[VisualEvidence] = field(default_factory=list)
    audio: list[AudioEvidence] = field(default_factory=list)
    title_candidates: list[str] = field(default_factory=list)
    season_hypotheses: list[int] = field(default_factory=list)
    episode_hypotheses: list[int] = field(default_factory=list)
    risk_flags: list[str] = field(default_factory=list)


@dataclass
class IdentityCandidate:
    """One scored guess at what a file is."""

    source: ScrapeSource
    title: str
    year: Optional[int] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    episode_title: Optional[str] = None
    score: float = 0.0
    evidence: list[str] = field(default_factory=list)


@dataclass
class IdentityResolution:
    """The outcome of weighing identity candidates against content evidence."""

    confirmation_state: ConfirmationState
    best: Optional[IdentityCandidate] = None
    candidates: list[IdentityCandidate] = field(default_factory=list)
    evidence_refs: list[str] = field(default_factory=list)
    risk_flags: list[str] = field(default_factory=list)