"""Deciding how firmly a file's identity is established."""

from __future__ import annotations

import copy
from typing import Optional, Sequence

from medio.models import (
    ConfirmationState,
    ContentEvidence,
    IdentityCandidate,
    IdentityResolution,
    MediaType,
    ScrapeResult,
)
from medio.queries import normalized_identity_tokens

_AMBIGUITY_MARGIN = 0.18
_CONFIRM_MIN_SCORE = 1.05


def identity_candidate_from_result(result: ScrapeResult) -> IdentityCandidate:
    """An identity candidate standing for a single scrape result."""
    return IdentityCandidate(
        source=result.source,
        title=result.title,
        year=result.year,
        season=result.season_number,
        episode=result.episode_number,
        episode_title=result.episode_name,
        score=result.authority_score(),
        evidence=list(result.evidence[:6]),
    )


def strong_evidence_count(content_evidence: ContentEvidence) -> int:
    """How many independent kinds of content evidence are present."""
    container = content_evidence.container
    kinds = (
        container.title is not None
        or bool(container.chapters)
        or bool(container.track_titles),
        bool(content_evidence.subtitles),
        any(visual.text_hits for visual in content_evidence.visual),
        any(audio.transcript_hits for audio in content_evidence.audio),
    )
    return sum(kinds)


def title_evidence_matches_candidate(
    best: IdentityCandidate, content_evidence: ContentEvidence
) -> bool:
    """Whether any content title hint agrees with the candidate's title or episode title."""
    best_title = normalized_identity_tokens(best.title)
    best_episode = (
        normalized_identity_tokens(best.episode_title)
        if best.episode_title is not None
        else ""
    )
    for title in content_evidence.title_candidates:
        normalized = normalized_identity_tokens(title)
        if not normalized:
            continue
        if (
            normalized == best_title
            or (best_episode and normalized == best_episode)
            or normalized in best_title
            or best_title in normalized
        ):
            return True
    return False


def corroboration_score(
    best: Optional[IdentityCandidate], content_evidence: ContentEvidence
) -> int:
    """How many of title, season and episode the content evidence backs up."""
    if best is None:
        return 0
    score = 0
    if title_evidence_matches_candidate(best, content_evidence):
        score += 1
    if best.season is not None and best.season in content_evidence.season_hypotheses:
        score += 1
    if best.episode is not None and best.episode in content_evidence.episode_hypotheses:
        score += 1
    return score


def is_confirmable_match(
    media_type: MediaType,
    best: Optional[IdentityCandidate],
    content_evidence: ContentEvidence,
) -> bool:
    """Whether the best candidate fits the content well enough to confirm."""
    if best is None or best.score < _CONFIRM_MIN_SCORE:
        return False
    if media_type is MediaType.TV_SHOW:
        season_match = (
            best.season is not None and best.season in content_evidence.season_hypotheses
        )
        episode_match = (
            best.episode is not None
            and best.episode in content_evidence.episode_hypotheses
        )
        title_match = title_evidence_matches_candidate(best, content_evidence)
        return (
            (season_match and episode_match)
            or (title_match and episode_match)
            or (title_match and season_match and best.episode_title is not None)
        )
    if media_type is MediaType.MOVIE:
        return title_evidence_matches_candidate(best, content_evidence)
    return False


def resolve_identity(
    selected: ScrapeResult,
    candidates: Sequence[IdentityCandidate],
    media_type: MediaType,
    content_evidence: ContentEvidence,
    runtime_secs: Optional[int],
    risk_flags: list[str],
) -> IdentityResolution:
    """Weigh candidates against content evidence; new risks are appended to risk_flags."""
    strong_sources = strong_evidence_count(content_evidence)
    best = (
        copy.deepcopy(candidates[0])
        if candidates
        else identity_candidate_from_result(selected)
    )
    ambiguous = (
        len(candidates) > 1
        and abs(candidates[0].score - candidates[1].score) < _AMBIGUITY_MARGIN
    )
    corroboration = corroboration_score(best, content_evidence)

    if best is None or strong_sources == 0:
        state = ConfirmationState.INSUFFICIENT_EVIDENCE
    elif ambiguous:
        risk_flags.append("top candidates are too close to uniquely confirm identity")
        state = ConfirmationState.AMBIGUOUS_CANDIDATES
    elif (
        strong_sources >= 2
        and corroboration >= 2
        and is_confirmable_match(media_type, best, content_evidence)
    ):
        state = ConfirmationState.CONFIRMED
    else:
        state = ConfirmationState.HIGH_CONFIDENCE_CANDIDATE

    evidence_refs = [
        f"strong_content_sources={strong_sources}",
        f"corroboration_score={corroboration}",
    ]
    if runtime_secs is not None:
        evidence_refs.append(f"runtime_secs={runtime_secs}")
    evidence_refs.extend(
        f"title_candidate={title}" for title in content_evidence.title_candidates[:3]
    )

    return IdentityResolution(
        confirmation_state=state,
        best=best,
        candidates=copy.deepcopy(list(candidates)),
        evidence_refs=evidence_refs,
        risk_flags=list(risk_flags),
    )