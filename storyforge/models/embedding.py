"""Persisted embedding rows and similarity search results."""

from typing import List
from pydantic import BaseModel, Field


class EmbeddingRow(BaseModel):
    """A chunk and its embedding vector as stored in the vector store."""

    id: str = Field(description="Unique row key, typically <source stem>_<chunk index>")
    file_path: str = Field(description="Source file the chunk came from")
    chunk_index: int = Field(description="Position of the chunk within its source file")
    chunk_text: str = Field(description="The chunk text")
    hash: str = Field(description="Content hash of the chunk, for change detection")
    vector: List[float] = Field(default_factory=list, description="Embedding vector of length D")


class SearchResult(BaseModel):
    """A ranked similarity hit. The vector is omitted; fetch it with get_by_id."""

    id: str
    file_path: str
    chunk_index: int
    chunk_text: str
    hash: str
    score: float = Field(description="Cosine similarity between the query and the stored vector")
