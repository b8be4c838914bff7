"""Tests for the Gutendex catalog downloader (no network: fake session)."""

import json

import requests

from storyforge.gutenberg import GutenbergDownloader, sanitize_query
from storyforge.models.gutenberg import Book, GutenbergResponse
from tests.helpers import FakeResponse, FakeSession

BASE = "https://catalog.test/books"
QUERY = "?languages=en&topic=sea+stories"


def book_payload(book_id: int, title: str, formats=None) -> dict:
    return {
        "id": book_id,
        "title": title,
        "authors": [{"name": "Melville, Herman", "birth_year": 1819, "death_year": 1891}],
        "summaries": [],
        "subjects": ["Sea stories"],
        "bookshelves": [],
        "languages": ["en"],
        "copyright": False,
        "media_type": "Text",
        "formats": formats if formats is not None else {
            "text/plain; charset=utf-8": f"https://files.test/{book_id}.txt",
            "text/html": f"https://files.test/{book_id}.html",
        },
        "download_count": 1000,
    }


class TestSanitizeQuery:
    """Catalog cache file names."""

    def test_replaces_url_characters(self):
        assert sanitize_query(QUERY) == "languages-en_topic-sea_stories"

    def test_empty_query(self):
        assert sanitize_query(None) == ""


class TestGutenbergModels:
    """Catalog response parsing."""

    def test_formats_are_read_by_mime_type(self):
        """MIME-type keys map onto format fields; UTF-8 text wins."""
        book = Book.model_validate(book_payload(2701, "Moby Dick"))
        assert book.formats.plain_text_url() == "https://files.test/2701.txt"
        assert book.authors[0].name == "Melville, Herman"

    def test_plain_text_fallbacks(self):
        """US-ASCII, then bare text/plain, are used when UTF-8 is missing."""
        ascii_book = Book.model_validate(book_payload(1, "A", {"text/plain; charset=us-ascii": "ascii-url"}))
        plain_book = Book.model_validate(book_payload(2, "B", {"text/plain": "plain-url"}))
        html_book = Book.model_validate(book_payload(3, "C", {"text/html": "html-url"}))
        assert ascii_book.formats.plain_text_url() == "ascii-url"
        assert plain_book.formats.plain_text_url() == "plain-url"
        assert html_book.formats.plain_text_url() is None

    def test_dump_round_trips_through_aliases(self):
        """A cached response (dumped by alias) parses back to the same formats."""
        response = GutenbergResponse.model_validate({"count": 1, "results": [book_payload(5, "E")]})
        again = GutenbergResponse.model_validate_json(response.model_dump_json(by_alias=True))
        assert again.results[0].formats.plain_text_url() == "https://files.test/5.txt"


class TestGutenbergDownloader:
    """Fetching catalog pages and books."""

    def test_get_book_results_follows_next_pages(self, tmp_path):
        """Pages are fetched up to max_pages and their results merged."""
        page_two = BASE + "?page=2"
        session = FakeSession({
            BASE + QUERY: FakeResponse({"count": 3, "next": page_two, "results": [book_payload(1, "One")]}),
            page_two: FakeResponse({"count": 3, "next": BASE + "?page=3", "results": [book_payload(2, "Two")]}),
        })
        downloader = GutenbergDownloader(BASE, tmp_path, session=session)

        results = downloader.get_book_results(QUERY, max_pages=2)

        assert [b.id for b in results.results] == [1, 2]
        assert len(session.calls) == 2, "Should stop after max_pages"
        assert session.headers["User-Agent"], "A User-Agent header should be set"

    def test_download_saves_books_and_caches_catalog(self, tmp_path):
        """Books are saved as {id}.txt and the catalog is cached for the next run."""
        session = FakeSession({
            BASE + QUERY: FakeResponse({"count": 2, "results": [book_payload(1, "One"), book_payload(2, "Two")]}),
            "https://files.test/1.txt": FakeResponse(text="Book one text"),
            "https://files.test/2.txt": FakeResponse(text="Book two text"),
        })
        downloader = GutenbergDownloader(BASE, tmp_path / "books", session=session)

        stats = downloader.download_book_results(QUERY)

        assert stats == {"downloaded": 2, "skipped": 0, "failed": 0}
        assert (tmp_path / "books" / "1.txt").read_text(encoding="utf-8") == "Book one text"
        cache = tmp_path / "books" / "book_results_languages-en_topic-sea_stories.json"
        assert cache.exists(), "Catalog results should be cached"
        assert json.loads(cache.read_text(encoding="utf-8"))["results"][0]["id"] == 1

    def test_second_run_uses_cache_and_skips_existing(self, tmp_path):
        """A rerun reads the cached catalog and skips books already on disk."""
        session = FakeSession({
            BASE + QUERY: FakeResponse({"count": 1, "results": [book_payload(1, "One")]}),
            "https://files.test/1.txt": FakeResponse(text="Book one text"),
        })
        downloader = GutenbergDownloader(BASE, tmp_path, session=session)
        downloader.download_book_results(QUERY)
        calls_after_first_run = len(session.calls)

        stats = downloader.download_book_results(QUERY)

        assert stats == {"downloaded": 0, "skipped": 1, "failed": 0}
        assert len(session.calls) == calls_after_first_run, "No request expected on the second run"

    def test_failures_and_missing_formats_are_skipped(self, tmp_path):
        """A failed download is counted and the run continues; books without text are skipped."""
        session = FakeSession({
            BASE + QUERY: FakeResponse({"count": 3, "results": [
                book_payload(1, "Broken"),
                book_payload(2, "Html only", {"text/html": "https://files.test/2.html"}),
                book_payload(3, "Fine"),
            ]}),
            "https://files.test/1.txt": requests.ConnectionError("connection reset"),
            "https://files.test/3.txt": FakeResponse(text="Fine text"),
        })
        downloader = GutenbergDownloader(BASE, tmp_path, session=session)

        stats = downloader.download_book_results(QUERY)

        assert stats == {"downloaded": 1, "skipped": 1, "failed": 1}
        assert not (tmp_path / "1.txt").exists(), "Failed book should not leave a file"
        assert (tmp_path / "3.txt").exists()

    def test_http_error_counts_as_failure(self, tmp_path):
        """Non-2xx book responses are failures, not crashes."""
        session = FakeSession({
            BASE + QUERY: FakeResponse({"count": 1, "results": [book_payload(1, "Gone")]}),
            "https://files.test/1.txt": FakeResponse(text="gone", status_code=410),
        })
        stats = GutenbergDownloader(BASE, tmp_path, session=session).download_book_results(QUERY)
        assert stats["failed"] == 1
