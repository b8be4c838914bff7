"""Run a natural-language query against the vector store and show the most similar chunks."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import requests

from storyforge import embeddings as emb
from storyforge.config import load_settings
from storyforge.retriever import ChunkRetriever
from storyforge.vector_store import VectorStore


def main():
    query = " ".join(sys.argv[1:]) if len(sys.argv) > 1 else "a storm at sea"
    top_k = 10

    settings = load_settings()
    emb.configure_embeddings(settings)
    if not Path(settings.vector_db_path).exists():
        print(f"Error: vector store not found at {settings.vector_db_path}.")
        print("Run `python main.py --extract-chunks` first.")
        sys.exit(1)

    print(f"Query: {query!r}")
    print(f"Top {top_k} most similar chunks (cosine similarity)")
    print("-" * 60)

    store = VectorStore(settings.vector_db_path, emb.get_embedding_dimension())
    retriever = ChunkRetriever(store)
    try:
        results = retriever.search(query, top_k=top_k)
    except requests.ConnectionError:
        print(f"✗ Could not reach the embedding server at {settings.ollama_base_url}")
        sys.exit(1)

    if not results:
        print("No chunks found. Ingest some documents with --extract-chunks.")
        sys.exit(0)

    print("Results:")
    for i, r in enumerate(results, 1):
        preview = r.chunk_text[:80].replace("\n", " ")
        print(f"  {i:2}. {r.id} ({r.file_path}#{r.chunk_index})  score={r.score:.4f}")
        print(f"      {preview}...")

    print()
    print("Formatted context for LLM:")
    print("-" * 60)
    context = retriever.retrieve(query, top_k=top_k, include_score=True)
    # Avoid UnicodeEncodeError on Windows console (cp1252)
    try:
        print(context)
    except UnicodeEncodeError:
        enc = getattr(sys.stdout, "encoding", None) or "utf-8"
        print(context.encode(enc, errors="replace").decode(enc))


if __name__ == "__main__":
    main()
