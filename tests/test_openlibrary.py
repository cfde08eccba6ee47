import httpx
import pytest
import respx

from medio.models import ScrapeSource
from medio.openlibrary import OpenLibraryScraper

HOST = "openlibrary.org"


def _doc(**overrides):
    doc = {
        "title": "Dune",
        "author_name": ["Frank Herbert", "Someone Else"],
        "first_publish_year": 1965,
        "cover_i": 12345,
        "key": "/works/OL893415W",
    }
    doc.update(overrides)
    return {"docs": [doc]}


@pytest.mark.asyncio
async def test_search_parses_first_doc():
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        route = router.get(host=HOST, path="/search.json").mock(
            return_value=httpx.Response(200, json=_doc())
        )
        result = await scraper.search("Dune")
        params = route.calls.last.request.url.params
        assert params["q"] == 'title:"Dune"'
        assert params["limit"] == "1"

    assert result.source == ScrapeSource.OPENLIBRARY
    assert result.title == "Dune"
    assert result.author == "Frank Herbert"
    assert result.year == 1965
    assert result.openlibrary_id == "/works/OL893415W"
    assert result.cover_url == "https://covers.openlibrary.org/b/id/12345-L.jpg"
    assert result.confidence == 0.83
    assert "OpenLibrary work key=/works/OL893415W" in result.evidence
    assert "query title 'Dune'" in result.evidence


@pytest.mark.asyncio
async def test_search_with_author_extends_query():
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        route = router.get(host=HOST).mock(return_value=httpx.Response(200, json=_doc()))
        result = await scraper.search("Dune", "Frank Herbert")
        assert route.calls.last.request.url.params["q"] == (
            'title:"Dune" AND author:"Frank Herbert"'
        )
    assert result.title == "Dune"
    assert result.author == "Frank Herbert"
    assert "query title 'Dune'" in result.evidence


@pytest.mark.asyncio
async def test_search_with_sparse_doc():
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        router.get(host=HOST).mock(
            return_value=httpx.Response(
                200,
                json=_doc(title=None, author_name=[], first_publish_year=None, cover_i=None, key=None),
            )
        )
        result = await scraper.search("Dune")
    assert result.title == ""
    assert result.author is None
    assert result.year is None
    assert result.cover_url is None
    assert result.openlibrary_id is None
    assert "OpenLibrary work key=" in result.evidence


@pytest.mark.asyncio
async def test_search_without_docs_returns_none():
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        router.get(host=HOST).mock(return_value=httpx.Response(200, json={"docs": []}))
        assert await scraper.search("Nothing At All") is None


@pytest.mark.asyncio
async def test_search_missing_author_list_raises():
    payload = {"docs": [{"title": "Dune"}]}
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        router.get(host=HOST).mock(return_value=httpx.Response(200, json=payload))
        with pytest.raises(ValueError):
            await scraper.search("Dune")


@pytest.mark.asyncio
async def test_search_non_json_body_raises():
    scraper = OpenLibraryScraper()
    with respx.mock() as router:
        router.get(host=HOST).mock(return_value=httpx.Response(500, text="oops"))
        with pytest.raises(ValueError):
            await scraper.search("Dune")


@pytest.mark.asyncio
async def test_search_uses_given_client():
    async with httpx.AsyncClient() as client:
        scraper = OpenLibraryScraper(client=client)
        with respx.mock() as router:
            route = router.get(host=HOST).mock(return_value=httpx.Response(200, json=_doc()))
            result = await scraper.search("Dune")
            assert route.call_count == 1
    assert result.title == "Dune"