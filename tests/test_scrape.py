import pytest

from medio.models import (
    ConfirmationState,
    ContentEvidence,
    MediaType,
    ParsedInfo,
    ParseSource,
    QualityInfo,
    ScrapeResult,
    ScrapeSource,
)
from medio.musicbrainz import MusicBrainzScraper
from medio.openlibrary import OpenLibraryScraper
from medio.scrape import ScrapeContext, ScrapeRequest, scrape_with_fallback
from medio.tmdb import TmdbScraper


def _parsed(title, year=None, season=None, episode=None, source=ParseSource.REGEX):
    return ParsedInfo(
        raw_title=title,
        year=year,
        season=season,
        episode=episode,
        parse_source=source,
        confidence=0.9,
    )


def _context(chain, **kwargs):
    values = dict(
        tmdb=TmdbScraper(),
        musicbrainz=MusicBrainzScraper(),
        openlibrary=OpenLibraryScraper(),
        fallback_chain=chain,
    )
    values.update(kwargs)
    return ScrapeContext(**values)


class _FakeTmdb:
    def __init__(self, candidates=None, episode=None):
        self.candidates = candidates or []
        self.episode = episode
        self.langs = []
        self.episode_calls = []

    def _copies(self, limit):
        return [ScrapeResult(**{**vars(c), "evidence": list(c.evidence)}) for c in self.candidates][:limit]

    async def search_movie_candidates(self, title, year, lang, limit):
        self.langs.append(lang)
        return self._copies(limit)

    async def search_tv_candidates(self, title, year, lang, limit):
        self.langs.append(lang)
        return self._copies(limit)

    async def get_episode_with_lang(self, tv_id, season, episode, lang):
        self.episode_calls.append((tv_id, season, episode, lang))
        return self.episode


class _FakeAi:
    def __init__(self, result=None, suggestion=None, error=None):
        self.result = result
        self.suggestion = suggestion
        self.error = error

    async def identify_with_context(self, filename, parent_context, parsed):
        if self.error:
            raise self.error
        return self.result

    async def suggest_title(self, filename, title):
        return self.suggestion


class _FakeMusicBrainz:
    def __init__(self):
        self.queries = []

    async def search_recording(self, artist, title):
        self.queries.append((artist, title))
        result = ScrapeResult.empty(ScrapeSource.MUSICBRAINZ, title).with_confidence(0.86)
        result.artist = artist
        return result


class _FakeOpenLibrary:
    async def search(self, title, author):
        if title == "Dune":
            return ScrapeResult.empty(ScrapeSource.OPENLIBRARY, "Dune").with_confidence(0.83)
        return None


@pytest.mark.asyncio
async def test_guess_fallback_chain_returns_guess():
    request = ScrapeRequest(
        path="/tmp/Arrival.2016.mkv",
        parsed=_parsed("Arrival", 2016),
        media_type=MediaType.MOVIE,
        content_evidence=ContentEvidence(),
    )
    resolution = await scrape_with_fallback(request, _context(["guess"], ai_client=_FakeAi()))
    assert resolution.result is not None
    assert any("guess" in line for line in resolution.details)
    assert resolution.result.source == ScrapeSource.GUESS
    assert resolution.result.title == "Arrival"


@pytest.mark.asyncio
async def test_result_evidence_carries_details_and_source():
    request = ScrapeRequest(
        path="/tmp/Arrival.2016.mkv", parsed=_parsed("Arrival", 2016), media_type=MediaType.MOVIE
    )
    resolution = await scrape_with_fallback(request, _context([" GUESS "]))
    evidence = resolution.result.evidence
    assert "content_probe: titles=0 subtitles=0 seasons=0 episodes=0" in evidence
    assert evidence[-1] == "selected source Guess"
    assert resolution.details[-1] == "selected source: Guess"


@pytest.mark.asyncio
async def test_unconfigured_tmdb_falls_back_to_guess():
    request = ScrapeRequest(
        path="/tmp/Arrival.2016.mkv", parsed=_parsed("Arrival", 2016), media_type=MediaType.MOVIE
    )
    resolution = await scrape_with_fallback(request, _context(["tmdb", "guess"]))
    assert "tmdb: 0 candidates" in resolution.details
    assert resolution.result.source == ScrapeSource.GUESS


@pytest.mark.asyncio
async def test_no_source_yields_insufficient_evidence():
    request = ScrapeRequest(
        path="/tmp/x.mkv", parsed=None, media_type=MediaType.MOVIE,
        content_evidence=ContentEvidence(risk_flags=["low bitrate"]),
    )
    resolution = await scrape_with_fallback(request, _context(["guess", "unknown"]))
    assert resolution.result is None
    assert resolution.details[-1] == "selected source: none"
    assert "guess: no parsed title" in resolution.details
    identity = resolution.identity_resolution
    assert identity.confirmation_state == ConfirmationState.INSUFFICIENT_EVIDENCE
    assert identity.evidence_refs == ["no scrape source produced a candidate"]
    assert identity.risk_flags == ["low bitrate"]


@pytest.mark.asyncio
async def test_local_nfo_is_used(tmp_path):
    media = tmp_path / "movie.mkv"
    media.write_bytes(b"")
    (tmp_path / "movie.nfo").write_text("<movie><title>Inception</title></movie>")
    request = ScrapeRequest(path=media, parsed=_parsed("movie"), media_type=MediaType.MOVIE)
    resolution = await scrape_with_fallback(request, _context(["local", "guess"]))
    assert resolution.result.source == ScrapeSource.LOCAL_NFO
    assert resolution.result.title == "Inception"
    assert f"local: found nfo {tmp_path / 'movie.nfo'}" in resolution.details


@pytest.mark.asyncio
async def test_local_without_nfo_reports_miss(tmp_path):
    media = tmp_path / "movie.mkv"
    media.write_bytes(b"")
    request = ScrapeRequest(path=media, parsed=None, media_type=MediaType.MOVIE)
    resolution = await scrape_with_fallback(request, _context(["local"]))
    assert resolution.result is None
    assert "local: no nfo found" in resolution.details


@pytest.mark.asyncio
async def test_tmdb_tv_single_candidate_is_enriched():
    show = ScrapeResult.empty(ScrapeSource.TMDB, "Breaking Bad").with_confidence(0.9)
    show.tmdb_id = 1396
    show.poster_url = "https://example.com/show.jpg"
    episode = ScrapeResult.empty(ScrapeSource.TMDB, "").with_confidence(0.94)
    episode.season_number = 1
    episode.episode_number = 1
    episode.episode_name = "Pilot"
    tmdb = _FakeTmdb([show], episode)
    request = ScrapeRequest(
        path="/media/Breaking Bad/Season 01/Breaking.Bad.S01E01.mkv",
        parsed=_parsed("Breaking Bad", season=1, episode=1),
        media_type=MediaType.TV_SHOW,
        quality=QualityInfo(duration_secs=3480),
    )
    resolution = await scrape_with_fallback(
        request, _context(["tmdb"], tmdb=tmdb, chinese_priority=True)
    )
    result = resolution.result
    assert result.episode_name == "Pilot"
    assert result.confidence == pytest.approx(0.95)
    assert result.poster_url == "https://example.com/show.jpg"
    assert "tmdb: selected only candidate" in resolution.details
    assert "tmdb: enriched tv episode S01E01" in resolution.details
    assert tmdb.episode_calls == [(1396, 1, 1, "zh-CN")]
    assert set(tmdb.langs) == {"zh-CN"}
    identity = resolution.identity_resolution
    assert [c.title for c in identity.candidates] == ["Breaking Bad"]
    assert "runtime_secs=3480" in identity.evidence_refs
    assert identity.confirmation_state == ConfirmationState.INSUFFICIENT_EVIDENCE


@pytest.mark.asyncio
async def test_tmdb_multiple_candidates_picks_best():
    wrong = ScrapeResult.empty(ScrapeSource.TMDB, "Interstellar").with_confidence(0.9)
    wrong.year, wrong.tmdb_id = 2014, 1
    right = ScrapeResult.empty(ScrapeSource.TMDB, "Inception").with_confidence(0.9)
    right.year, right.tmdb_id = 2010, 2
    request = ScrapeRequest(
        path="/tmp/Inception.2010.mkv", parsed=_parsed("Inception", 2010), media_type=MediaType.MOVIE
    )
    resolution = await scrape_with_fallback(
        request, _context(["tmdb"], tmdb=_FakeTmdb([wrong, right]))
    )
    assert resolution.result.title == "Inception"
    assert resolution.identity_resolution.candidates[0].title == "Inception"


@pytest.mark.asyncio
async def test_ai_disabled_is_reported():
    request = ScrapeRequest(path="/tmp/a.mkv", parsed=_parsed("a"), media_type=MediaType.MOVIE)
    resolution = await scrape_with_fallback(request, _context(["ai"]))
    assert resolution.result is None
    assert "ai: provider disabled or unconfigured" in resolution.details


@pytest.mark.asyncio
async def test_ai_error_counts_as_no_result():
    request = ScrapeRequest(path="/tmp/a.mkv", parsed=_parsed("a"), media_type=MediaType.MOVIE)
    ai = _FakeAi(error=RuntimeError("quota"))
    resolution = await scrape_with_fallback(request, _context(["ai"], ai_client=ai))
    assert resolution.result is None
    assert "ai: no result" in resolution.details


@pytest.mark.asyncio
async def test_ai_suggestion_accepted_by_tmdb():
    ai_result = ScrapeResult.empty(ScrapeSource.AI, "Arival").with_confidence(0.7)
    ai_result.year = 2016
    tmdb_hit = ScrapeResult.empty(ScrapeSource.TMDB, "Arrival").with_confidence(0.9)
    request = ScrapeRequest(path="/tmp/arival.mkv", parsed=_parsed("arival"), media_type=MediaType.MOVIE)
    resolution = await scrape_with_fallback(
        request,
        _context(["ai"], ai_client=_FakeAi(ai_result, "Arrival"), tmdb=_FakeTmdb([tmdb_hit])),
    )
    assert resolution.result.source == ScrapeSource.TMDB
    assert resolution.result.confidence == pytest.approx(0.9)
    assert "AI suggested title 'Arrival' accepted by TMDB" in resolution.result.evidence
    assert "ai: tmdb accepted suggested title" in resolution.details


@pytest.mark.asyncio
async def test_ai_keeps_direct_result_when_tmdb_misses():
    ai_result = ScrapeResult.empty(ScrapeSource.AI, "Arival").with_confidence(0.7)
    request = ScrapeRequest(path="/tmp/arival.mkv", parsed=_parsed("arival"), media_type=MediaType.MOVIE)
    resolution = await scrape_with_fallback(
        request, _context(["ai"], ai_client=_FakeAi(ai_result, "Arrival"))
    )
    assert resolution.result.source == ScrapeSource.AI
    assert "ai: keeping direct AI result" in resolution.details
    assert "kept direct AI identification after TMDB retry miss" in resolution.result.evidence


@pytest.mark.asyncio
async def test_ai_without_suggestion_returns_direct_result():
    ai_result = ScrapeResult.empty(ScrapeSource.AI, "Song").with_confidence(0.7)
    request = ScrapeRequest(path="/tmp/song.mp3", parsed=_parsed("song"), media_type=MediaType.MUSIC)
    resolution = await scrape_with_fallback(request, _context(["ai"], ai_client=_FakeAi(ai_result)))
    assert resolution.result.title == "Song"
    assert "AI returned direct identification" in resolution.result.evidence


@pytest.mark.asyncio
async def test_musicbrainz_uses_artist_title_split():
    mb = _FakeMusicBrainz()
    request = ScrapeRequest(
        path="/music/Artist - Song.mp3", parsed=_parsed("Artist - Song"), media_type=MediaType.MUSIC
    )
    resolution = await scrape_with_fallback(request, _context(["musicbrainz"], musicbrainz=mb))
    assert mb.queries == [("Artist", "Song")]
    assert resolution.result.artist == "Artist"
    assert "musicbrainz: tried artist='Artist' title='Song' => match" in resolution.details
    assert "musicbrainz: matched" in resolution.details


@pytest.mark.asyncio
async def test_openlibrary_tries_title_variants():
    request = ScrapeRequest(
        path="/books/Dune.1965.epub", parsed=_parsed("Dune.1965"), media_type=MediaType.NOVEL
    )
    resolution = await scrape_with_fallback(
        request, _context(["ol"], openlibrary=_FakeOpenLibrary())
    )
    assert resolution.result.title == "Dune"
    assert "openlibrary: tried title='Dune.1965' => miss" in resolution.details
    assert "openlibrary: tried title='Dune' => match" in resolution.details
    assert "openlibrary: matched" in resolution.details