"""Heuristic scoring of provider candidates against what the file tells us."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from medio.models import (
    ContentEvidence,
    IdentityCandidate,
    MediaType,
    ParsedInfo,
    ScrapeResult,
)
from medio.queries import normalized_identity_tokens


@dataclass
class CandidateScore:
    """Heuristic score of one candidate and the reasons behind it."""

    index: int
    score: float
    reasons: list[str] = field(default_factory=list)


def _overlaps(title: str, cand_title: str, cand_original: str) -> bool:
    return (
        title in cand_title
        or cand_title in title
        or (bool(cand_original) and title in cand_original)
    )


def score_candidate(
    parsed: ParsedInfo,
    media_type: MediaType,
    candidate: ScrapeResult,
    index: int,
    season_hint: Optional[int],
    episode_hint: Optional[int],
    content_evidence: ContentEvidence,
) -> CandidateScore:
    """Score how well a candidate fits the parsed filename and content evidence."""
    parsed_title = normalized_identity_tokens(parsed.raw_title)
    cand_title = normalized_identity_tokens(candidate.title)
    cand_original = (
        normalized_identity_tokens(candidate.title_original)
        if candidate.title_original is not None
        else ""
    )

    score = 0.0
    reasons = [f"candidate {index} title='{candidate.title}'"]

    if parsed_title and parsed_title in (cand_title, cand_original):
        score += 1.2
        reasons.append("exact normalized title match")
    elif parsed_title and _overlaps(parsed_title, cand_title, cand_original):
        score += 0.7
        reasons.append("partial normalized title match")

    if parsed.year is not None and candidate.year is not None:
        expected, found = parsed.year, candidate.year
        if expected == found:
            score += 0.45
            reasons.append(f"year exact match {expected}")
        elif abs(expected - found) == 1:
            score += 0.12
            reasons.append(f"year near match {expected} vs {found}")
        else:
            score -= 0.25
            reasons.append(f"year mismatch {expected} vs {found}")

    if media_type is MediaType.TV_SHOW:
        if season_hint is not None and candidate.tmdb_id is not None:
            score += 0.08
            reasons.append("tv candidate has series id for episode enrichment")
        if season_hint is not None and season_hint == candidate.season_number:
            score += 0.18
            reasons.append(f"season hint match {season_hint}")
        if episode_hint is not None and episode_hint == candidate.episode_number:
            score += 0.22
            reasons.append(f"episode hint match {episode_hint}")

    for raw_evidence in content_evidence.title_candidates:
        evidence_title = normalized_identity_tokens(raw_evidence)
        if not evidence_title:
            continue
        if evidence_title in (cand_title, cand_original):
            score += 0.48
            reasons.append(f"content evidence title matched '{evidence_title}'")
            break
        if _overlaps(evidence_title, cand_title, cand_original):
            score += 0.18
            reasons.append(
                f"content evidence title partially matched '{evidence_title}'"
            )

    if (candidate.rating or 0.0) >= 7.0:
        score += 0.05
        reasons.append("high provider rating")

    return CandidateScore(index=index, score=score, reasons=reasons)


def preferred_season_hint(
    parsed: ParsedInfo, content_evidence: ContentEvidence
) -> Optional[int]:
    """The parsed season, else the first season hypothesis from content."""
    if parsed.season is not None:
        return parsed.season
    return next(iter(content_evidence.season_hypotheses), None)


def preferred_episode_hint(
    parsed: ParsedInfo, content_evidence: ContentEvidence
) -> Optional[int]:
    """The parsed episode, else the first episode hypothesis from content."""
    if parsed.episode is not None:
        return parsed.episode
    return next(iter(content_evidence.episode_hypotheses), None)


def build_identity_candidates(
    parsed: ParsedInfo,
    media_type: MediaType,
    candidates: Sequence[ScrapeResult],
    season_hint: Optional[int],
    episode_hint: Optional[int],
    content_evidence: ContentEvidence,
) -> list[IdentityCandidate]:
    """Scored identity candidates, highest score first."""
    scored = []
    for index, candidate in enumerate(candidates):
        result = score_candidate(
            parsed,
            media_type,
            candidate,
            index,
            season_hint,
            episode_hint,
            content_evidence,
        )
        scored.append(
            IdentityCandidate(
                source=candidate.source,
                title=candidate.title,
                year=candidate.year,
                season=candidate.season_number,
                episode=candidate.episode_number,
                episode_title=candidate.episode_name,
                score=result.score,
                evidence=result.reasons,
            )
        )
    return sorted(scored, key=lambda c: c.score, reverse=True)