"""Retrieve relevant chunk context for a user query using vector similarity."""

from typing import Callable, List, Optional

from storyforge import embeddings as emb
from storyforge.models.embedding import SearchResult
from storyforge.vector_store import VectorStore


def _default_embedder(text: str) -> List[float]:
    return emb.embed_text(text)


class ChunkRetriever:
    """Finds the stored chunks most similar to a query and formats them as LLM context."""

    def __init__(
        self,
        store: VectorStore,
        embedder: Optional[Callable[[str], List[float]]] = None,
    ):
        self._store = store
        self._embedder = embedder or _default_embedder

    def search(self, query: str, top_k: int = 5) -> List[SearchResult]:
        """Embed the query and return the ``top_k`` most similar chunks, best first."""
        query_vector = self._embedder(query)
        return self._store.search(query_vector, top_k=top_k)

    def retrieve(
        self,
        query: str,
        top_k: int = 5,
        include_score: bool = True,
    ) -> str:
        """
        Run a similarity search for the query and return a text context for the LLM.

        Args:
            query: User question or search text.
            top_k: Number of chunks to include.
            include_score: Whether to include the similarity score in the context.

        Returns:
            A single string with one block per matching chunk.
        """
        results = self.search(query, top_k=top_k)
        if not results:
            return "No relevant passages found for this query."
        return _format_context(results, include_score=include_score)


def _format_context(results: List[SearchResult], include_score: bool = True) -> str:
    """Format search results as context text."""
    blocks = []
    for r in results:
        header = f"- Source: {r.file_path} (chunk {r.chunk_index})"
        if include_score:
            header += f" [similarity: {r.score:.3f}]"
        blocks.append(f"{header}\n{r.chunk_text}")
    return "\n\n".join(blocks)
