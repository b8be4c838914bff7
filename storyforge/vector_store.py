"""SQLite-backed store for chunk embeddings with in-database cosine search.

Each vector component lives in its own REAL column (``e0`` .. ``e{D-1}``) so
SQLite can compute dot products and norms itself; the similarity query is
generated for the store's dimension.
"""

import contextlib
import logging
import math
import sqlite3
from pathlib import Path
from typing import Iterator, List, Sequence, Union

from storyforge.models.embedding import EmbeddingRow, SearchResult

logger = logging.getLogger(__name__)

TABLE_NAME = "chunks"
METADATA_COLUMNS = ("id", "file_path", "chunk_index", "chunk_text", "hash")
SIMILARITY_EPSILON = 1.0e-8
DEFAULT_EMBEDDING_DIMENSION = 768
DEFAULT_TOP_K = 5


def _sqrt(value):
    if value is None:
        return None
    return math.sqrt(value)


def _balanced_sum(terms: Sequence[str]) -> str:
    """Join SQL terms with '+' as a balanced tree so the expression depth stays O(log n)."""
    if len(terms) == 1:
        return terms[0]
    middle = len(terms) // 2
    return f"({_balanced_sum(terms[:middle])} + {_balanced_sum(terms[middle:])})"


class VectorStore:
    """Persists chunk rows with fixed-dimension embeddings and ranks them by cosine similarity."""

    def __init__(
        self,
        db_path: Union[str, Path],
        embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION,
    ):
        """
        Open (or create) a vector store.

        Args:
            db_path: SQLite database file; created with its schema if absent.
            embedding_dimension: Length D of every stored vector.

        Raises:
            ValueError: If the dimension is not positive, or the existing table
                was created for a different dimension.
        """
        if embedding_dimension <= 0:
            raise ValueError(f"embedding_dimension must be positive, got {embedding_dimension}")
        self.db_path = Path(db_path)
        self.embedding_dimension = embedding_dimension
        self._vector_columns = [f"e{i}" for i in range(embedding_dimension)]
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection for a single operation; commit on success and always close."""
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        connection.create_function("SQRT", 1, _sqrt, deterministic=True)
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connect() as connection:
            existing = [
                row["name"]
                for row in connection.execute(f"PRAGMA table_info({TABLE_NAME})")
            ]
            if existing:
                stored_dimension = sum(
                    1 for name in existing if name.startswith("e") and name[1:].isdigit()
                )
                if stored_dimension != self.embedding_dimension:
                    raise ValueError(
                        f"{self.db_path} was created with embedding dimension "
                        f"{stored_dimension}, not {self.embedding_dimension}"
                    )
                return
            vector_columns = ", ".join(f"{name} REAL" for name in self._vector_columns)
            connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    id TEXT PRIMARY KEY,
                    file_path TEXT,
                    chunk_index INTEGER,
                    chunk_text TEXT,
                    hash TEXT,
                    {vector_columns}
                )
                """
            )
            logger.info(
                "Created vector store %s (dimension %d)", self.db_path, self.embedding_dimension
            )

    def _check_dimension(self, vector: Sequence[float]) -> None:
        if len(vector) != self.embedding_dimension:
            raise ValueError(
                f"Embedding must be of length {self.embedding_dimension}, got {len(vector)}"
            )

    def insert_or_replace(self, row: EmbeddingRow) -> None:
        """
        Insert a row, fully replacing any existing row with the same id.

        Raises:
            ValueError: If the vector length does not match the store dimension.
        """
        self._check_dimension(row.vector)
        columns = list(METADATA_COLUMNS) + self._vector_columns
        placeholders = ", ".join(f":{name}" for name in columns)
        params = {
            "id": row.id,
            "file_path": row.file_path,
            "chunk_index": row.chunk_index,
            "chunk_text": row.chunk_text,
            "hash": row.hash,
        }
        params.update(
            {name: float(value) for name, value in zip(self._vector_columns, row.vector)}
        )
        with self._connect() as connection:
            connection.execute(
                f"INSERT OR REPLACE INTO {TABLE_NAME} ({', '.join(columns)}) VALUES ({placeholders})",
                params,
            )

    def delete(self, row_id: str) -> None:
        """Remove a row by id. Deleting a missing id is not an error."""
        with self._connect() as connection:
            connection.execute(f"DELETE FROM {TABLE_NAME} WHERE id = ?", (row_id,))

    def get_by_id(self, row_id: str) -> List[float]:
        """Return the stored vector for ``row_id``, or the zero vector if there is none."""
        with self._connect() as connection:
            row = connection.execute(
                f"SELECT {', '.join(self._vector_columns)} FROM {TABLE_NAME} WHERE id = ?",
                (row_id,),
            ).fetchone()
        if row is None:
            return [0.0] * self.embedding_dimension
        return [float(value) for value in row]

    def search_by_file(self, file_path: str) -> List[EmbeddingRow]:
        """All rows stored for ``file_path``, vectors included, ordered by chunk index."""
        with self._connect() as connection:
            rows = connection.execute(
                f"SELECT * FROM {TABLE_NAME} WHERE file_path = ? ORDER BY chunk_index",
                (file_path,),
            ).fetchall()
        return [self._row_to_embedding(row) for row in rows]

    def count(self) -> int:
        """Number of stored rows."""
        with self._connect() as connection:
            return connection.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]

    def search(self, query_vector: Sequence[float], top_k: int = DEFAULT_TOP_K) -> List[SearchResult]:
        """
        Rank every stored row by cosine similarity to ``query_vector``.

        The score is ``dot(q, e) / (|q| * |e| + 1e-8)`` and is computed by SQLite
        over the whole table.

        Args:
            query_vector: Query embedding of length D.
            top_k: Maximum number of results.

        Returns:
            Up to ``top_k`` results, highest score first, without vectors.

        Raises:
            ValueError: If the query length does not match the store dimension or top_k is negative.
        """
        self._check_dimension(query_vector)
        if top_k < 0:
            raise ValueError(f"top_k must be >= 0, got {top_k}")
        if top_k == 0:
            return []

        dot_product = _balanced_sum([f"{name} * :q{i}" for i, name in enumerate(self._vector_columns)])
        stored_norm = _balanced_sum([f"{name} * {name}" for name in self._vector_columns])
        sql = f"""
            SELECT
                {', '.join(METADATA_COLUMNS)},
                {dot_product} / (:query_norm * SQRT({stored_norm}) + {SIMILARITY_EPSILON!r}) AS score
            FROM {TABLE_NAME}
            ORDER BY score DESC
            LIMIT :top_k
        """
        params = {f"q{i}": float(value) for i, value in enumerate(query_vector)}
        params["query_norm"] = math.sqrt(sum(float(value) ** 2 for value in query_vector))
        params["top_k"] = top_k

        with self._connect() as connection:
            rows = connection.execute(sql, params).fetchall()
        return [
            SearchResult(
                id=row["id"],
                file_path=row["file_path"],
                chunk_index=row["chunk_index"],
                chunk_text=row["chunk_text"],
                hash=row["hash"],
                score=row["score"],
            )
            for row in rows
        ]

    def _row_to_embedding(self, row: sqlite3.Row) -> EmbeddingRow:
        return EmbeddingRow(
            id=row["id"],
            file_path=row["file_path"],
            chunk_index=row["chunk_index"],
            chunk_text=row["chunk_text"],
            hash=row["hash"],
            vector=[float(row[name]) for name in self._vector_columns],
        )
