"""Resolving a file's metadata by trying sources in a configured order."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Optional, Protocol, Sequence, Union

import httpx

from medio.candidates import fetch_tmdb_candidates, guess_from_parsed, select_best_candidate
from medio.identity import resolve_identity
from medio.local_nfo import find_nfo, read_nfo
from medio.models import (
    ConfirmationState,
    ContentEvidence,
    IdentityCandidate,
    IdentityResolution,
    MediaType,
    ParsedInfo,
    QualityInfo,
    ScrapeResult,
)
from medio.queries import context_parent_labels, contextual_title_queries, music_query_variants
from medio.scoring import build_identity_candidates, preferred_episode_hint, preferred_season_hint

_PROVIDER_ERRORS = (httpx.HTTPError, ValueError)
_VIDEO_TYPES = (MediaType.MOVIE, MediaType.TV_SHOW)


class _AiClient(Protocol):
    async def identify_with_context(
        self, filename: str, parent_context: list[str], parsed: Optional[ParsedInfo]
    ) -> Optional[ScrapeResult]: ...

    async def suggest_title(self, filename: str, title: str) -> Optional[str]: ...


@dataclass
class ScrapeRequest:
    """What is known about one file before scraping."""

    path: Union[str, PurePath]
    parsed: Optional[ParsedInfo]
    media_type: MediaType
    content_evidence: ContentEvidence = field(default_factory=ContentEvidence)
    quality: Optional[QualityInfo] = None


@dataclass
class ScrapeContext:
    """The providers and settings used for scraping."""

    tmdb: Any
    musicbrainz: Any
    openlibrary: Any
    fallback_chain: Sequence[str]
    ai_client: Optional[_AiClient] = None
    reranker: Any = None
    chinese_priority: bool = False

    @property
    def lang(self) -> Optional[str]:
        return "zh-CN" if self.chinese_priority else None


@dataclass
class ScrapeResolution:
    """The outcome of scraping one file."""

    result: Optional[ScrapeResult]
    content_evidence: ContentEvidence
    identity_resolution: IdentityResolution
    details: list[str] = field(default_factory=list)


def _ascii_lower(text: str) -> str:
    return "".join(c.lower() if c.isascii() else c for c in text)


def _from_local(path: PurePath, details: list[str]) -> Optional[ScrapeResult]:
    nfo_path = find_nfo(path)
    if nfo_path is None:
        details.append("local: no nfo found")
        return None
    details.append(f"local: found nfo {nfo_path}")
    return read_nfo(nfo_path)


async def _enrich_episode(
    base: ScrapeResult, context: ScrapeContext, season: int, episode: int, details: list[str]
) -> ScrapeResult:
    try:
        ep_result = await context.tmdb.get_episode_with_lang(
            base.tmdb_id, season, episode, context.lang
        )
    except _PROVIDER_ERRORS:
        return base
    if ep_result is None:
        return base
    details.append(f"tmdb: enriched tv episode S{season:02}E{episode:02}")
    base.season_number = ep_result.season_number
    base.episode_number = ep_result.episode_number
    base.episode_name = ep_result.episode_name
    if ep_result.poster_url is not None:
        base.poster_url = ep_result.poster_url
    base.push_evidence(
        f"enriched with TMDB episode metadata S{season:02}E{episode:02}"
    )
    base.confidence = max(base.confidence, 0.95)
    return base


async def _from_tmdb(
    request: ScrapeRequest, path: PurePath, context: ScrapeContext, details: list[str]
) -> tuple[Optional[ScrapeResult], Optional[list[IdentityCandidate]]]:
    parsed = request.parsed
    if request.media_type not in _VIDEO_TYPES or parsed is None:
        return None, None
    evidence = request.content_evidence
    queries = contextual_title_queries(path, parsed, evidence)
    details.append(f"tmdb: {len(queries)} query variants")
    candidates = await fetch_tmdb_candidates(
        context.tmdb, request.media_type, queries, parsed.year, context.lang, details
    )
    details.append(f"tmdb: {len(candidates)} candidates")
    season_hint = preferred_season_hint(parsed, evidence)
    episode_hint = preferred_episode_hint(parsed, evidence)
    identity_candidates = build_identity_candidates(
        parsed, request.media_type, candidates, season_hint, episode_hint, evidence
    )

    selected: Optional[ScrapeResult] = None
    if len(candidates) == 1:
        details.append("tmdb: selected only candidate")
        selected = candidates[0]
        selected.push_evidence("selected only TMDB candidate")
    elif len(candidates) > 1:
        selected = await select_best_candidate(
            parsed, request.media_type, candidates, context.reranker, details, evidence
        )

    if (
        request.media_type is MediaType.TV_SHOW
        and selected is not None
        and season_hint is not None
        and episode_hint is not None
        and selected.tmdb_id is not None
    ):
        selected = await _enrich_episode(selected, context, season_hint, episode_hint, details)
    return selected, identity_candidates


async def _from_musicbrainz(
    request: ScrapeRequest, context: ScrapeContext, details: list[str]
) -> Optional[ScrapeResult]:
    if request.media_type is not MediaType.MUSIC or request.parsed is None:
        return None
    result = None
    for artist, title in music_query_variants(request.parsed.raw_title):
        try:
            result = await context.musicbrainz.search_recording(artist, title)
        except _PROVIDER_ERRORS:
            result = None
        outcome = "match" if result is not None else "miss"
        details.append(f"musicbrainz: tried artist='{artist}' title='{title}' => {outcome}")
        if result is not None:
            break
    details.append(f"musicbrainz: {'matched' if result is not None else 'no match'}")
    return result


async def _from_openlibrary(
    request: ScrapeRequest, path: PurePath, context: ScrapeContext, details: list[str]
) -> Optional[ScrapeResult]:
    if request.media_type is not MediaType.NOVEL or request.parsed is None:
        return None
    result = None
    for title in contextual_title_queries(path, request.parsed, request.content_evidence):
        try:
            result = await context.openlibrary.search(title, None)
        except _PROVIDER_ERRORS:
            result = None
        outcome = "match" if result is not None else "miss"
        details.append(f"openlibrary: tried title='{title}' => {outcome}")
        if result is not None:
            break
    details.append(f"openlibrary: {'matched' if result is not None else 'no match'}")
    return result


async def _retry_tmdb_title(
    context: ScrapeContext, media_type: MediaType, title: str, year: Optional[int]
) -> Optional[ScrapeResult]:
    try:
        if media_type is MediaType.MOVIE:
            found = await context.tmdb.search_movie_candidates(title, year, context.lang, 1)
        else:
            found = await context.tmdb.search_tv_candidates(title, year, context.lang, 1)
    except _PROVIDER_ERRORS:
        return None
    return found[0] if found else None


async def _from_ai(
    request: ScrapeRequest, path: PurePath, context: ScrapeContext, details: list[str]
) -> Optional[ScrapeResult]:
    client = context.ai_client
    if client is None:
        details.append("ai: provider disabled or unconfigured")
        return None
    filename = path.name
    try:
        result = await client.identify_with_context(
            filename, context_parent_labels(path), request.parsed
        )
    except Exception:  # an AI failure counts as no answer
        result = None
    if result is None:
        details.append("ai: no result")
        return None
    details.append("ai: identified candidate")

    if request.media_type not in _VIDEO_TYPES:
        result.push_evidence("AI returned direct identification")
        return result

    try:
        better_title = await client.suggest_title(filename, result.title)
    except Exception:  # an AI failure counts as no suggestion
        better_title = None
    if better_title is None:
        details.append("ai: no better title suggestion")
        result.push_evidence("AI returned direct identification")
        return result

    details.append(f"ai: suggested better title {better_title}")
    re_search = await _retry_tmdb_title(context, request.media_type, better_title, result.year)
    if re_search is None:
        details.append("ai: keeping direct AI result")
        result.push_evidence("kept direct AI identification after TMDB retry miss")
        return result
    details.append("ai: tmdb accepted suggested title")
    re_search.push_evidence(f"AI suggested title '{better_title}' accepted by TMDB")
    re_search.confidence = max(re_search.confidence, 0.88)
    return re_search


def _from_guess(request: ScrapeRequest, details: list[str]) -> Optional[ScrapeResult]:
    result = guess_from_parsed(request.parsed) if request.parsed is not None else None
    outcome = "used parsed fallback" if result is not None else "no parsed title"
    details.append(f"guess: {outcome}")
    return result


async def scrape_with_fallback(
    request: ScrapeRequest, context: ScrapeContext
) -> ScrapeResolution:
    """Try each source of the fallback chain in turn; the first that answers wins."""
    evidence = request.content_evidence
    path = request.path if isinstance(request.path, PurePath) else Path(request.path)
    details = [
        f"content_probe: titles={len(evidence.title_candidates)} "
        f"subtitles={len(evidence.subtitles)} "
        f"seasons={len(evidence.season_hypotheses)} "
        f"episodes={len(evidence.episode_hypotheses)}"
    ]
    identity_candidates: list[IdentityCandidate] = []
    risk_flags = list(evidence.risk_flags)

    for source in context.fallback_chain:
        name = _ascii_lower(source.strip())
        result: Optional[ScrapeResult] = None
        if name == "local":
            result = _from_local(path, details)
        elif name == "tmdb":
            result, scored = await _from_tmdb(request, path, context, details)
            if scored is not None:
                identity_candidates = scored
        elif name == "musicbrainz":
            result = await _from_musicbrainz(request, context, details)
        elif name in ("openlibrary", "ol"):
            result = await _from_openlibrary(request, path, context, details)
        elif name == "ai":
            result = await _from_ai(request, path, context, details)
        elif name == "guess":
            result = _from_guess(request, details)

        if result is None:
            continue
        for detail in details:
            result.push_evidence(detail)
        details.append(f"selected source: {result.source.value}")
        result.push_evidence(f"selected source {result.source.value}")
        runtime = request.quality.duration_secs if request.quality is not None else None
        identity = resolve_identity(
            result, identity_candidates, request.media_type, evidence, runtime, risk_flags
        )
        return ScrapeResolution(
            result=result,
            content_evidence=evidence,
            identity_resolution=identity,
            details=details,
        )

    details.append("selected source: none")
    return ScrapeResolution(
        result=None,
        content_evidence=evidence,
        identity_resolution=IdentityResolution(
            confirmation_state=ConfirmationState.INSUFFICIENT_EVIDENCE,
            best=None,
            candidates=identity_candidates,
            evidence_refs=["no scrape source produced a candidate"],
            risk_flags=risk_flags,
        ),
        details=details,
    )