"""Gathering TMDB candidates and picking the best one for a parsed file."""

from __future__ import annotations

import copy
from typing import Iterable, Optional, Protocol, Sequence

import httpx

from medio.models import ContentEvidence, MediaType, ParsedInfo, ScrapeResult, ScrapeSource
from medio.scoring import preferred_episode_hint, preferred_season_hint, score_candidate

_PROVIDER_ERRORS = (httpx.HTTPError, ValueError)
_TMDB_CANDIDATE_LIMIT = 5
_EMBEDDING_WEIGHT = 0.12


class _Reranker(Protocol):
    def is_configured(self) -> bool: ...

    async def rerank(
        self, query: str, candidates: Sequence[ScrapeResult]
    ) -> Iterable[tuple[int, float]]: ...


def _text(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def scrape_cache_key(parsed: ParsedInfo, media_type: MediaType) -> str:
    """Cache key for the scrape result of a parsed file of a given media type."""
    return ":".join(
        (
            media_type.value,
            parsed.raw_title.strip(),
            _text(parsed.year),
            _text(parsed.season),
            _text(parsed.episode),
        )
    )


def guess_from_parsed(parsed: ParsedInfo) -> Optional[ScrapeResult]:
    """A low-confidence result built from the filename alone, or None without a title."""
    if not parsed.raw_title.strip():
        return None
    confidence = min(max(0.30 + parsed.confidence * 0.35, 0.30), 0.62)
    result = (
        ScrapeResult.empty(ScrapeSource.GUESS, parsed.raw_title)
        .with_confidence(confidence)
        .with_evidence(
            [
                "generated metadata guess from parsed filename",
                f"parse confidence {parsed.confidence:.2f}",
            ]
        )
    )
    result.year = parsed.year
    result.season_number = parsed.season
    result.episode_number = parsed.episode
    return result


async def _search_tmdb(
    tmdb, media_type: MediaType, query: str, year: Optional[int], lang: Optional[str]
) -> list[ScrapeResult]:
    try:
        if media_type is MediaType.MOVIE:
            return await tmdb.search_movie_candidates(query, year, lang, _TMDB_CANDIDATE_LIMIT)
        if media_type is MediaType.TV_SHOW:
            return await tmdb.search_tv_candidates(query, year, lang, _TMDB_CANDIDATE_LIMIT)
    except _PROVIDER_ERRORS:
        return []
    return []


async def fetch_tmdb_candidates(
    tmdb,
    media_type: MediaType,
    queries: Sequence[str],
    year: Optional[int],
    lang: Optional[str],
    details: list[str],
) -> list[ScrapeResult]:
    """Candidates from every query, de-duplicated, in the order first found."""
    merged: list[ScrapeResult] = []
    seen: set[str] = set()
    for query in queries:
        found = await _search_tmdb(tmdb, media_type, query, year, lang)
        details.append(f"tmdb: query '{query}' returned {len(found)} candidate(s)")
        for candidate in found:
            if candidate.tmdb_id is not None:
                key = f"tmdb:{candidate.tmdb_id}"
            else:
                year_part = candidate.year if candidate.year is not None else 0
                key = f"title:{candidate.title}:{year_part}"
            if key in seen:
                continue
            seen.add(key)
            candidate.push_evidence(f"retrieved via TMDB query '{query}'")
            merged.append(candidate)
    return merged


async def _embedding_scores(
    reranker: Optional[_Reranker], parsed: ParsedInfo, candidates: Sequence[ScrapeResult]
) -> dict[int, float]:
    if reranker is None or not reranker.is_configured():
        return {}
    query = f"{parsed.raw_title} {_text(parsed.year)}"
    try:
        ranked = await reranker.rerank(query, candidates)
        return {index: float(score) for index, score in ranked}
    except Exception:  # a failing reranker only loses its bonus
        return {}


async def select_best_candidate(
    parsed: ParsedInfo,
    media_type: MediaType,
    candidates: Sequence[ScrapeResult],
    reranker: Optional[_Reranker],
    details: list[str],
    content_evidence: ContentEvidence,
) -> Optional[ScrapeResult]:
    """The best-scoring candidate, with its reasons recorded, or None if there are none."""
    season_hint = preferred_season_hint(parsed, content_evidence)
    episode_hint = preferred_episode_hint(parsed, content_evidence)
    scores = sorted(
        (
            score_candidate(
                parsed, media_type, candidate, index, season_hint, episode_hint, content_evidence
            )
            for index, candidate in enumerate(candidates)
        ),
        key=lambda s: s.score,
        reverse=True,
    )
    embedding_scores = await _embedding_scores(reranker, parsed, candidates)

    def total(entry) -> float:
        return entry.score + embedding_scores.get(entry.index, 0.0) * _EMBEDDING_WEIGHT

    best = None
    for entry in scores:
        # on ties the later entry wins
        if best is None or total(entry) >= total(best):
            best = entry
    if best is None or best.index >= len(candidates):
        return None

    candidate = copy.deepcopy(candidates[best.index])
    embedding = embedding_scores.get(best.index)
    embedding_note = "" if embedding is None else f", embedding {embedding:.2f}"
    details.append(
        f"tmdb: selected candidate {best.index} with heuristic {best.score:.2f}{embedding_note}"
    )
    for reason in best.reasons:
        details.append(f"tmdb: {reason}")
        candidate.push_evidence(reason)
    boost = 0.62 + best.score * 0.18 + (embedding or 0.0) * 0.08
    candidate.confidence = max(candidate.confidence, min(max(boost, 0.62), 0.97))
    return candidate