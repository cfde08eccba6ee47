"""Media metadata scraping from NFO files, TMDB, MusicBrainz and OpenLibrary, with identity resolution."""

__version__ = "0.1.1"