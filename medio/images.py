"""Artwork URL collection and download."""

from __future__ import annotations

from pathlib import Path

import httpx

from medio.models import ScrapeResult


class DownloadError(Exception):
    """Raised when an image cannot be fetched or saved."""


def collect_urls(scraped: ScrapeResult) -> list[str]:
    """Poster, fanart and cover URLs of a result, in that order, skipping absent ones."""
    candidates = (scraped.poster_url, scraped.fanart_url, scraped.cover_url)
    return [url for url in candidates if url is not None]


def build_image_path(target_dir: Path | str, index: int, url: str) -> Path:
    """Where the image at position index of collect_urls is saved."""
    names = {0: "poster", 1: "fanart"}
    name = names.get(index, "image")
    ext = "png" if ".png" in url else "jpg"
    return Path(target_dir) / f"{name}.{ext}"


def download(client: httpx.Client, url: str, dest: Path | str) -> None:
    """Fetch url with client and write the body to dest."""
    dest = Path(dest)
    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        raise DownloadError(f"download {url}: {exc}") from exc
    try:
        body = response.read()
    except httpx.HTTPError as exc:
        raise DownloadError(f"read bytes from {url}: {exc}") from exc
    try:
        dest.write_bytes(body)
    except OSError as exc:
        raise DownloadError(f"write image {dest}: {exc}") from exc