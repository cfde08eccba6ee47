[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "medio"
version = "0.1.1"
description = "Media metadata scraping and identity resolution: local NFO files, TMDB, MusicBrainz and OpenLibrary"
requires-python = ">=3.10"
keywords = ["media", "metadata", "scraper", "nfo", "tmdb", "musicbrainz", "openlibrary"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia",
]
dependencies = [
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[tool.hatch.build.targets.wheel]
packages = ["medio"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
