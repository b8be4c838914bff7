"""Chunk a folder of documents, embed every chunk and upsert it into the vector store."""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from storyforge.chunking import DEFAULT_MAX_CHARS, DEFAULT_OVERLAP_CHARS, chunk_directory
from storyforge.embeddings import embed_texts
from storyforge.models.chunk import ChunkRecord
from storyforge.models.embedding import EmbeddingRow
from storyforge.vector_store import VectorStore

logger = logging.getLogger(__name__)

Embedder = Callable[[List[str]], List[List[float]]]


def to_embedding_row(record: ChunkRecord, vector: List[float]) -> EmbeddingRow:
    """Build the store row for a chunk and its embedding."""
    return EmbeddingRow(
        id=record.chunk_id,
        file_path=record.source_name,
        chunk_index=record.index,
        chunk_text=record.text,
        hash=record.content_hash,
        vector=vector,
    )


def ingest_directory(
    directory: Union[str, Path],
    store: VectorStore,
    embedder: Embedder = embed_texts,
    max_size: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP_CHARS,
    by_bytes: bool = False,
    strip_boilerplate: bool = True,
) -> Dict[str, Any]:
    """
    Chunk, embed and store every .txt document under ``directory``.

    Chunks are embedded one at a time. A chunk whose embedding fails or has
    the wrong length is logged and counted in ``errors``; the run continues.
    Store I/O errors (``sqlite3.Error``) propagate.

    Args:
        directory: Folder with plain-text documents.
        store: Target vector store.
        embedder: Function mapping a list of texts to a list of vectors.
        max_size: Budget per chunk, in characters or bytes.
        overlap: Overlap between consecutive chunks.
        by_bytes: Measure the budget in UTF-8 bytes instead of characters.
        strip_boilerplate: Strip Project Gutenberg header/footer text.

    Returns:
        Stats dict with "files", "chunks_stored" and "errors" (list of messages).
    """
    stats: Dict[str, Any] = {"files": 0, "chunks_stored": 0, "errors": []}
    current_source = None
    records = chunk_directory(
        directory,
        max_size=max_size,
        overlap=overlap,
        by_bytes=by_bytes,
        strip_boilerplate=strip_boilerplate,
    )
    for record in records:
        if record.source_name != current_source:
            current_source = record.source_name
            stats["files"] += 1
            logger.info("Embedding chunks of %s", current_source)
        try:
            vector = embedder([record.text])[0]
            store.insert_or_replace(to_embedding_row(record, vector))
        except sqlite3.Error:
            raise
        except ValueError as e:
            message = f"{record.chunk_id}: {e}"
            logger.warning("Skipping chunk %s", message)
            stats["errors"].append(message)
            continue
        except Exception as e:
            message = f"{record.chunk_id}: embedding failed: {e}"
            logger.error("Skipping chunk %s", message)
            stats["errors"].append(message)
            continue
        stats["chunks_stored"] += 1
    logger.info(
        "Ingested %d chunks from %d files (%d errors)",
        stats["chunks_stored"],
        stats["files"],
        len(stats["errors"]),
    )
    return stats
