"""Chunk record produced by the chunker for each emitted text segment."""

from pathlib import Path
from pydantic import BaseModel, Field


class ChunkRecord(BaseModel):
    """A bounded slice of a normalized document, ordered within its source."""

    source_name: str = Field(description="File name of the source document (e.g. 1342.txt)")
    index: int = Field(ge=0, description="Zero-based order of the chunk in its document")
    text: str = Field(description="Chunk text content")
    content_hash: str = Field(description="SHA-256 hex digest of the UTF-8 chunk text")

    model_config = {"frozen": True}

    @property
    def chunk_id(self) -> str:
        """Store key for this chunk: <source name without extension>_<index>."""
        return f"{Path(self.source_name).stem}_{self.index}"
