"""Tests for directory ingestion into the vector store."""

import sqlite3

import pytest

from storyforge.chunking import compute_chunk_hash
from storyforge.ingestion import ingest_directory, to_embedding_row
from storyforge.models.chunk import ChunkRecord
from tests.helpers import keyword_embedder

KEYWORDS = ["ship", "storm", "rose"]


class TestIngestDirectory:
    """Chunk, embed, upsert."""

    def test_stores_every_chunk(self, books_dir, store):
        """Each chunk of each book is embedded and stored under <stem>_<index>."""
        stats = ingest_directory(books_dir, store, embedder=keyword_embedder(KEYWORDS))

        assert stats == {"files": 2, "chunks_stored": 2, "errors": []}
        assert store.count() == 2
        assert store.get_by_id("11_0") == pytest.approx([1.0, 1.0, 1.0])
        assert store.get_by_id("22_0") == pytest.approx([0.0, 0.0, 2.0])
        row = store.search_by_file("22.txt")[0]
        assert row.hash == compute_chunk_hash(row.chunk_text), "Stored hash should match the text"

    def test_rerun_replaces_rows(self, books_dir, store):
        """Ingesting twice keeps one row per chunk."""
        embedder = keyword_embedder(KEYWORDS)
        ingest_directory(books_dir, store, embedder=embedder)
        ingest_directory(books_dir, store, embedder=embedder)
        assert store.count() == 2

    def test_embedding_failure_is_recorded_and_skipped(self, books_dir, store):
        """A failing chunk is logged in errors; the others are still stored."""
        good = keyword_embedder(KEYWORDS)

        def flaky(texts):
            if "garden" in texts[0]:
                raise RuntimeError("model unavailable")
            return good(texts)

        stats = ingest_directory(books_dir, store, embedder=flaky)

        assert stats["chunks_stored"] == 1
        assert len(stats["errors"]) == 1
        assert stats["errors"][0].startswith("22_0"), "Error should name the chunk"
        assert store.get_by_id("22_0") == [0.0, 0.0, 0.0], "Failed chunk should not be stored"

    def test_wrong_dimension_is_recorded(self, books_dir, store):
        """Vectors of the wrong length are rejected per chunk."""
        stats = ingest_directory(books_dir, store, embedder=lambda texts: [[1.0, 2.0] for _ in texts])
        assert stats["chunks_stored"] == 0
        assert len(stats["errors"]) == 2

    def test_undecodable_file_does_not_stop_the_run(self, books_dir, store):
        """A book with invalid UTF-8 is still ingested, and later books are too."""
        (books_dir / "1.txt").write_bytes(b"Bad \xff byte.")

        stats = ingest_directory(books_dir, store, embedder=keyword_embedder(KEYWORDS))

        assert stats == {"files": 3, "chunks_stored": 3, "errors": []}
        assert store.search_by_file("1.txt")[0].chunk_text == "Bad \ufffd byte."
        assert store.search_by_file("22.txt"), "Books after the bad file should be stored"

    def test_store_errors_propagate(self, books_dir):
        """Database failures stop the run."""

        class BrokenStore:
            def insert_or_replace(self, row):
                raise sqlite3.OperationalError("disk I/O error")

        with pytest.raises(sqlite3.OperationalError):
            ingest_directory(books_dir, BrokenStore(), embedder=keyword_embedder(KEYWORDS))

    def test_by_bytes_budget(self, books_dir, store):
        """A small byte budget produces several chunks per book."""
        stats = ingest_directory(
            books_dir, store, embedder=keyword_embedder(KEYWORDS), max_size=40, overlap=0, by_bytes=True
        )
        assert stats["chunks_stored"] > 2
        assert all(len(r.chunk_text.encode("utf-8")) <= 40 for r in store.search_by_file("11.txt"))

    def test_empty_directory(self, tmp_path, store):
        """No documents means nothing stored and no errors."""
        stats = ingest_directory(tmp_path, store, embedder=keyword_embedder(KEYWORDS))
        assert stats == {"files": 0, "chunks_stored": 0, "errors": []}


class TestToEmbeddingRow:
    """Chunk record to store row."""

    def test_copies_chunk_fields(self):
        record = ChunkRecord(source_name="1342.txt", index=7, text="It is a truth.", content_hash="abc")
        row = to_embedding_row(record, [0.1, 0.2, 0.3])
        assert (row.id, row.file_path, row.chunk_index, row.chunk_text, row.hash) == (
            "1342_7",
            "1342.txt",
            7,
            "It is a truth.",
            "abc",
        )
        assert row.vector == [0.1, 0.2, 0.3]
