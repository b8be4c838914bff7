"""Data models for chunks, embeddings, story elements and catalog entries."""

from .chunk import ChunkRecord
from .embedding import EmbeddingRow, SearchResult
from .story_element import StoryElement
from .gutenberg import Book, BookFormats, GutenbergResponse, Person

__all__ = [
    "ChunkRecord",
    "EmbeddingRow",
    "SearchResult",
    "StoryElement",
    "Book",
    "BookFormats",
    "GutenbergResponse",
    "Person",
]
