"""Download public-domain books from Project Gutenberg through the Gutendex catalog API."""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from storyforge.config import DEFAULT_GUTENBERG_BASE_URL
from storyforge.models.gutenberg import Book, GutenbergResponse

logger = logging.getLogger(__name__)

USER_AGENT = "storyforge/1.0"
DEFAULT_TIMEOUT = 60.0


def sanitize_query(query: Optional[str]) -> str:
    """Turn a query string into a file-name fragment ("?" dropped, "&" "=" "+" replaced)."""
    if not query:
        return ""
    return query.replace("?", "").replace("&", "_").replace("=", "-").replace("+", "_")


class GutenbergDownloader:
    """Fetches catalog pages and saves each book's plain text as ``{id}.txt``."""

    def __init__(
        self,
        base_url: str = DEFAULT_GUTENBERG_BASE_URL,
        download_path: Union[str, Path] = "gutenberg",
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the downloader.

        Args:
            base_url: Catalog endpoint; the query string is appended to it verbatim.
            download_path: Folder for cached catalog pages and book files.
            session: Optional requests session (one is created if omitted).
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url
        self.download_path = Path(download_path)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "GutenbergDownloader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get_book_results(self, query: Optional[str] = None, max_pages: int = 1) -> GutenbergResponse:
        """
        Fetch catalog results, following ``next`` links.

        Args:
            query: Query string appended to the base URL, e.g. "?languages=en&topic=fantasy".
            max_pages: Maximum number of pages to fetch.

        Returns:
            One GutenbergResponse with the results of every fetched page merged.

        Raises:
            requests.HTTPError: If a catalog page cannot be fetched.
        """
        url: Optional[str] = f"{self.base_url}{query or ''}"
        merged: Optional[GutenbergResponse] = None
        pages = 0
        while url and pages < max(max_pages, 1):
            logger.info("Fetching catalog page %s", url)
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            page = GutenbergResponse.model_validate(response.json())
            pages += 1
            if merged is None:
                merged = page
            else:
                merged.results.extend(page.results)
                merged.next = page.next
            url = page.next
        return merged

    def _load_or_fetch_results(self, query: Optional[str], max_pages: int) -> GutenbergResponse:
        results_path = self.download_path / f"book_results_{sanitize_query(query)}.json"
        if results_path.exists():
            logger.info("Loading cached book results for query: %s", query)
            return GutenbergResponse.model_validate_json(results_path.read_text(encoding="utf-8"))
        logger.info("Downloading book results for query: %s", query)
        results = self.get_book_results(query, max_pages=max_pages)
        results_path.write_text(results.model_dump_json(by_alias=True), encoding="utf-8")
        return results

    def download_book(self, book: Book) -> str:
        """
        Save one book's plain text unless it is already present.

        Returns:
            "downloaded", "skipped" (file exists or no text format) or "failed".
        """
        book_path = self.download_path / f"{book.id}.txt"
        if book_path.exists():
            logger.info("Book already downloaded: %s", book.title)
            return "skipped"
        url = book.formats.plain_text_url()
        if not url:
            logger.info("No suitable text format found for book: %s", book.title)
            return "skipped"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to download %s: %s", book.title, e)
            return "failed"
        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            response.encoding = "utf-8"
        book_path.write_text(response.text, encoding="utf-8")
        logger.info("Downloaded %s -> %s", book.title, book_path)
        return "downloaded"

    def download_book_results(self, query: Optional[str] = None, max_pages: int = 1) -> Dict[str, int]:
        """
        Download every book matching ``query`` into the download folder.

        The catalog response is cached as ``book_results_{query}.json`` and
        reused on later runs.

        Returns:
            Counts of "downloaded", "skipped" and "failed" books.
        """
        self.download_path.mkdir(parents=True, exist_ok=True)
        results = self._load_or_fetch_results(query, max_pages)
        stats = {"downloaded": 0, "skipped": 0, "failed": 0}
        for book in results.results:
            stats[self.download_book(book)] += 1
        return stats
