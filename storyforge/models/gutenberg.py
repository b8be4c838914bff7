"""Gutendex catalog response models."""

from typing import List, Optional
from pydantic import BaseModel, Field


class Person(BaseModel):
    """Author, editor or translator entry."""

    name: str = ""
    birth_year: Optional[int] = None
    death_year: Optional[int] = None


class BookFormats(BaseModel):
    """Download links keyed by MIME type."""

    text_html: Optional[str] = Field(default=None, alias="text/html")
    epub_zip: Optional[str] = Field(default=None, alias="application/epub+zip")
    mobipocket: Optional[str] = Field(default=None, alias="application/x-mobipocket-ebook")
    text_plain_ascii: Optional[str] = Field(default=None, alias="text/plain; charset=us-ascii")
    text_plain_utf8: Optional[str] = Field(default=None, alias="text/plain; charset=utf-8")
    text_plain: Optional[str] = Field(default=None, alias="text/plain")
    rdf_xml: Optional[str] = Field(default=None, alias="application/rdf+xml")
    image_jpeg: Optional[str] = Field(default=None, alias="image/jpeg")
    octet_stream: Optional[str] = Field(default=None, alias="application/octet-stream")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def plain_text_url(self) -> Optional[str]:
        """Best plain-text download link: UTF-8, then US-ASCII, then bare text/plain."""
        return self.text_plain_utf8 or self.text_plain_ascii or self.text_plain


class Book(BaseModel):
    """A single catalog entry."""

    id: int
    title: str = ""
    authors: List[Person] = Field(default_factory=list)
    summaries: List[str] = Field(default_factory=list)
    editors: List[Person] = Field(default_factory=list)
    translators: List[Person] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    bookshelves: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    copyright: Optional[bool] = None
    media_type: str = ""
    formats: BookFormats = Field(default_factory=BookFormats)
    download_count: int = 0


class GutenbergResponse(BaseModel):
    """One page of catalog results (or several pages merged)."""

    count: int = 0
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[Book] = Field(default_factory=list)
