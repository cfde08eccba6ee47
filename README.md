# medio

A library for identifying media files. Given what was parsed from a file name
(`ParsedInfo`) and what was found inside the file (`ContentEvidence`), `medio`
looks up candidates from several sources, scores them and decides how firmly
the file's identity is established.

## Installing

```
pip install medio
```

To run the tests:

```
pip install "medio[test]"
pytest
```

## Sources

- **Local NFO** (`medio.local_nfo`): `find_nfo(media_path)` looks for
  `<stem>.nfo` next to the media file, then `tvshow.nfo` in the same folder,
  then `tvshow.nfo` in up to two ancestor folders. `read_nfo(nfo_path)` reads
  a Kodi/Emby style file into a `ScrapeResult`; it returns `None` when the file
  cannot be read or names no title.
- **TMDB** (`medio.tmdb.TmdbScraper`): `search_movie_candidates`,
  `search_tv_candidates` and `get_episode_with_lang`. Without an API key
  (`is_configured()` is false) searches return nothing.
- **MusicBrainz** (`medio.musicbrainz.MusicBrainzScraper`): `search_recording`
  and `search_release`. Without a user agent string nothing is searched.
- **OpenLibrary** (`medio.openlibrary.OpenLibraryScraper`): `search(title, author)`.

The web scrapers are asynchronous and use `httpx`; each accepts an optional
`httpx.AsyncClient` through the `client` keyword. Malformed responses raise
`ValueError`.

## Reading an NFO file

```python
from pathlib import Path
from medio.local_nfo import find_nfo, read_nfo

nfo = find_nfo(Path("/media/Show/Season 01/01.mkv"))
if nfo is not None:
    result = read_nfo(nfo)
    if result is not None:
        print(result.title, result.season_number, result.episode_number)
```

## Scraping with a fallback chain

`medio.scrape.scrape_with_fallback(request, context)` tries each source named
in `context.fallback_chain` — `local`, `tmdb`, `musicbrainz`, `openlibrary`
(or `ol`), `ai`, `guess` — in order and stops at the first that produces a
result. Provider errors count as a miss.

```python
import asyncio
from medio.models import MediaType, ParsedInfo
from medio.musicbrainz import MusicBrainzScraper
from medio.openlibrary import OpenLibraryScraper
from medio.scrape import ScrapeContext, ScrapeRequest, scrape_with_fallback
from medio.tmdb import TmdbScraper

request = ScrapeRequest(
    path="/media/Arrival.2016.mkv",
    parsed=ParsedInfo(raw_title="Arrival", year=2016, confidence=0.9),
    media_type=MediaType.MOVIE,
)
context = ScrapeContext(
    tmdb=TmdbScraper(api_key="placeholder"),
    musicbrainz=MusicBrainzScraper(),
    openlibrary=OpenLibraryScraper(),
    fallback_chain=["local", "tmdb", "guess"],
)
resolution = asyncio.run(scrape_with_fallback(request, context))
print(resolution.result, resolution.identity_resolution.confirmation_state)
```

A `ScrapeResolution` holds the `result` (or `None`), the `content_evidence`
used, an `IdentityResolution` and `details`, a list of trace lines describing
each step. Setting `chinese_priority=True` on the context asks TMDB for
`zh-CN` results.

The identity resolution carries a `ConfirmationState`:

- `InsufficientEvidence`: no strong content evidence (container title,
  chapters or track titles, subtitles, on-screen text, audio transcript)
  backs the result, or no source answered.
- `AmbiguousCandidates`: the two best candidates score within 0.18 of each
  other.
- `Confirmed`: at least two strong evidence sources, at least two of title,
  season and episode corroborated by the content, a best score of at least
  1.05, and a title/season/episode match suited to the media type (movies and
  TV shows only).
- `HighConfidenceCandidate`: everything else.

## Helpers

- `medio.queries`: title normalisation and query variants (release noise such
  as `1080p`, `x264` or `BluRay` removed, years and `SxxEyy` markers stripped
  for identity queries, parent folder names used as hints, artist/title pairs
  for music).
- `medio.scoring`: `score_candidate` scores a candidate on title, year, season
  and episode hints, content evidence and provider rating;
  `build_identity_candidates` returns them best first.
- `medio.candidates`: `fetch_tmdb_candidates`, `select_best_candidate`,
  `guess_from_parsed` and `scrape_cache_key`.
- `medio.identity`: `resolve_identity` and the checks behind it.
- `medio.images`: `collect_urls`, `build_image_path` and `download`, which
  raises `DownloadError` on failure.
- `medio.textutil`: `truncate_str` and `format_size` for display.

## What this package does not do

- It has no command-line program or interactive screen; it is a library only.
- It does not scan folders, parse file names, probe files for content
  evidence, hash, rename, deduplicate or organise files. `ParsedInfo` and
  `ContentEvidence` must be supplied by the caller.
- It has no cache for scrape results.
- It ships no AI client or embedding reranker. The `ai` source and the
  reranking bonus in `select_best_candidate` work only with objects the caller
  passes as `ScrapeContext.ai_client` and `ScrapeContext.reranker`.