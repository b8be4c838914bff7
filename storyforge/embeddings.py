"""Embedding utilities for chunk text. Used for the vector store and retrieval."""

import logging
from typing import List, Optional

from storyforge.config import Settings, load_settings
from storyforge.model_provider import OllamaClient, create_client
from storyforge.models.chunk import ChunkRecord

logger = logging.getLogger(__name__)

OLLAMA_BACKEND = "ollama"
SENTENCE_TRANSFORMERS_BACKEND = "sentence-transformers"

_settings: Optional[Settings] = None
_embedder = None
_embedding_dimension: Optional[int] = None


def configure_embeddings(settings: Optional[Settings] = None, client: Optional[OllamaClient] = None) -> None:
    """
    Select the embedding backend and drop any previously loaded one.

    Args:
        settings: Settings to use; loaded from the environment when None.
        client: Pre-built Ollama client (only used by the ollama backend).
    """
    global _settings, _embedder, _embedding_dimension
    _settings = settings
    _embedder = client
    _embedding_dimension = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _use_ollama() -> bool:
    return _get_settings().embedding_backend == OLLAMA_BACKEND


def _get_embedder():
    """Lazy-load the active embedder (Ollama client or sentence-transformers model)."""
    global _embedder, _embedding_dimension
    if _embedder is not None:
        return _embedder
    settings = _get_settings()
    if _use_ollama():
        _embedder = create_client(settings)
        _embedding_dimension = settings.embedding_dimension
        logger.info("Using Ollama embeddings (%s)", settings.embedding_model)
        return _embedder
    try:
        from sentence_transformers import SentenceTransformer
    except ImportError:
        raise ImportError(
            "sentence-transformers is required when EMBEDDING_BACKEND=sentence-transformers. "
            "Install with: pip install 'storyforge[local-embeddings]'"
        )
    _embedder = SentenceTransformer(settings.sentence_transformers_model)
    _embedding_dimension = _embedder.get_sentence_embedding_dimension()
    logger.info("Using sentence-transformers embeddings (%s)", settings.sentence_transformers_model)
    return _embedder


def _embed_texts_ollama(client: OllamaClient, texts: List[str]) -> List[List[float]]:
    """Embed using the Ollama embed endpoint."""
    return client.embed(texts, model=_get_settings().embedding_model)


def _embed_texts_sentence_transformers(model, texts: List[str]) -> List[List[float]]:
    """Embed using sentence-transformers."""
    vectors = model.encode(texts, convert_to_numpy=True)
    return [vec.tolist() for vec in vectors]


def embed_texts(texts: List[str]) -> List[List[float]]:
    """Embed several strings; returns one vector per input, in order."""
    if not texts:
        return []
    backend = _get_embedder()
    if _use_ollama():
        vectors = _embed_texts_ollama(backend, texts)
    else:
        vectors = _embed_texts_sentence_transformers(backend, texts)
    if len(vectors) != len(texts):
        raise ValueError(f"Embedding backend returned {len(vectors)} vectors for {len(texts)} texts")
    return vectors


def embed_text(text: str) -> List[float]:
    """Embed a string. Blank text maps to the zero vector of the active dimension."""
    if not text or not text.strip():
        return [0.0] * get_embedding_dimension()
    return embed_texts([text.strip()])[0]


def embed_chunk(chunk: ChunkRecord) -> List[float]:
    """Embed a chunk (its text content) for vector search."""
    return embed_text(chunk.text)


def get_embedding_dimension() -> int:
    """Return the embedding dimension of the active backend."""
    if _embedding_dimension is not None:
        return _embedding_dimension
    _get_embedder()
    if _embedding_dimension is None:
        # A client was injected through configure_embeddings
        return _get_settings().embedding_dimension
    return _embedding_dimension
