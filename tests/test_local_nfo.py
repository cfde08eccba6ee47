from pathlib import Path

from medio.local_nfo import (
    TagBlock,
    extract_attr,
    extract_first_tag,
    extract_tag_blocks,
    find_nfo,
    read_nfo,
)
from medio.models import ScrapeSource


def _write(path: Path, lines: list[str]) -> Path:
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path


def test_extract_tag():
    assert extract_first_tag("<title>Inception</title>", "title") == "Inception"
    assert extract_first_tag("<year>2010</year>", "year") == "2010"
    assert extract_first_tag("<empty></empty>", "empty") is None
    assert extract_first_tag("no tag here", "title") is None
    assert (
        extract_first_tag('<uniqueid type="tmdb">24428</uniqueid>', "uniqueid")
        == "24428"
    )


def test_extract_first_tag_skips_blank_values():
    content = "<title>  </title><title> Second </title>"
    assert extract_first_tag(content, "title") == "Second"


def test_extract_tag_blocks_ignores_longer_tag_names():
    content = "<titlex>no</titlex><title lang=\"en\">yes</title>"
    assert extract_tag_blocks(content, "title") == [
        TagBlock(open_tag='<title lang="en">', value="yes")
    ]


def test_extract_tag_blocks_stops_on_unclosed():
    assert extract_tag_blocks("<title>open", "title") == []


def test_extract_attr():
    assert extract_attr('<uniqueid type="tmdb" default="true">', "type") == "tmdb"
    assert extract_attr('<uniqueid default="true">', "type") is None
    assert extract_attr('<uniqueid type="broken>', "type") is None


def test_read_nfo_movie(tmp_path):
    nfo = _write(
        tmp_path / "movie.nfo",
        [
            '<?xml version="1.0"?>',
            "<movie>",
            "  <title>Inception</title>",
            "  <year>2010</year>",
            "  <rating>8.8</rating>",
            "</movie>",
        ],
    )
    result = read_nfo(nfo)
    assert result.title == "Inception"
    assert result.year == 2010
    assert result.rating == 8.8
    assert result.source == ScrapeSource.LOCAL_NFO
    assert result.confidence == 0.98


def test_read_nfo_tv(tmp_path):
    nfo = _write(
        tmp_path / "episode.nfo",
        [
            "<episodedetails>",
            "  <title>Pilot</title>",
            "  <showtitle>Lost</showtitle>",
            "  <season>1</season>",
            "  <episode>1</episode>",
            '  <uniqueid type="tmdb" default="true">4607</uniqueid>',
            "</episodedetails>",
        ],
    )
    result = read_nfo(nfo)
    assert result.title == "Lost"
    assert result.season_number == 1
    assert result.episode_number == 1
    assert result.episode_name == "Pilot"
    assert result.tmdb_id == 4607


def test_read_nfo_empty_title(tmp_path):
    nfo = _write(tmp_path / "empty.nfo", ["<movie><year>2020</year></movie>"])
    assert read_nfo(nfo) is None


def test_read_nfo_missing_file(tmp_path):
    assert read_nfo(tmp_path / "absent.nfo") is None


def test_read_nfo_unique_ids_by_type(tmp_path):
    nfo = _write(
        tmp_path / "album.nfo",
        [
            "<album>",
            "  <title>Blue</title>",
            '  <uniqueid type="MusicBrainz">mb-1</uniqueid>',
            '  <uniqueid type="openlibrary">OL1W</uniqueid>',
            '  <uniqueid type="imdb">77</uniqueid>',
            "</album>",
        ],
    )
    result = read_nfo(nfo)
    assert result.musicbrainz_id == "mb-1"
    assert result.openlibrary_id == "OL1W"
    assert result.tmdb_id == 77


def test_read_nfo_unparseable_year_is_none(tmp_path):
    nfo = _write(tmp_path / "m.nfo", ["<movie><title>X</title><year>20x0</year></movie>"])
    result = read_nfo(nfo)
    assert result.title == "X"
    assert result.year is None


def test_find_nfo(tmp_path):
    media = tmp_path / "movie.mp4"
    nfo = tmp_path / "movie.nfo"
    media.touch()
    nfo.touch()
    assert find_nfo(media) == nfo


def test_find_nfo_tvshow(tmp_path):
    media = tmp_path / "s01e01.mp4"
    nfo = tmp_path / "tvshow.nfo"
    media.touch()
    nfo.touch()
    assert find_nfo(media) == nfo


def test_find_nfo_tvshow_in_ancestor_show_dir(tmp_path):
    show_dir = tmp_path / "Show"
    season_dir = show_dir / "Season 01"
    season_dir.mkdir(parents=True)
    media = season_dir / "01.mkv"
    nfo = show_dir / "tvshow.nfo"
    media.touch()
    nfo.touch()
    assert find_nfo(media) == nfo


def test_find_nfo_none(tmp_path):
    media = tmp_path / "a" / "b" / "c" / "d" / "x.mkv"
    media.parent.mkdir(parents=True)
    media.touch()
    (tmp_path / "tvshow.nfo").touch()
    assert find_nfo(media) is None


def test_read_nfo_nested_fanart_thumb(tmp_path):
    nfo = _write(
        tmp_path / "show.nfo",
        [
            "<tvshow>",
            "  <title>Dark</title>",
            "  <fanart><thumb>https://example.com/fanart.jpg</thumb></fanart>",
            "</tvshow>",
        ],
    )
    result = read_nfo(nfo)
    assert result.fanart_url == "https://example.com/fanart.jpg"