"""Main entry point for storyforge."""

import sys
import argparse
from pathlib import Path
from typing import Optional

import requests
from pydantic import ValidationError

from storyforge import embeddings as emb
from storyforge.agents.story_graph import StoryGenerationGraph
from storyforge.config import Settings, load_settings
from storyforge.gutenberg import GutenbergDownloader
from storyforge.ingestion import ingest_directory
from storyforge.logger import configure_logging
from storyforge.model_provider import create_client
from storyforge.vector_store import VectorStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a long-form story with a local LLM, or prepare source texts for retrieval"
    )
    parser.add_argument(
        "--download-from-gutenberg",
        action="store_true",
        help="Download books matching --query from Project Gutenberg into GUTENBERG_DOWNLOAD_PATH",
    )
    parser.add_argument(
        "--query",
        default=None,
        help="Catalog query string, e.g. '?languages=en&topic=adventure' (default: GUTENBERG_QUERY)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=1,
        help="Maximum number of catalog result pages to fetch (default: 1)",
    )
    parser.add_argument(
        "--extract-chunks",
        action="store_true",
        help="Chunk and embed every downloaded .txt book into the vector store",
    )
    parser.add_argument(
        "--by-bytes",
        action="store_true",
        help="Measure the chunk budget in UTF-8 bytes instead of characters",
    )
    parser.add_argument(
        "--force-new",
        action="store_true",
        help="Delete previous story checkpoints and regenerate every phase (default: resume)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser


def download_books(settings: Settings, query: Optional[str], max_pages: int) -> None:
    query = query or settings.gutenberg_query
    print(f"Downloading books for query: {query or '(all)'}")
    print("-" * 50)
    with GutenbergDownloader(
        base_url=settings.gutenberg_base_url,
        download_path=settings.gutenberg_download_path,
    ) as downloader:
        stats = downloader.download_book_results(query, max_pages=max_pages)
    print(f"\n✓ Download complete!")
    print(f"  - Downloaded: {stats['downloaded']}")
    print(f"  - Skipped: {stats['skipped']}")
    print(f"  - Failed: {stats['failed']}")


def extract_chunks(settings: Settings, by_bytes: bool) -> None:
    directory = Path(settings.gutenberg_download_path)
    if not directory.exists():
        print(f"Error: no books found at {directory}. Run with --download-from-gutenberg first.")
        sys.exit(1)

    emb.configure_embeddings(settings)
    dimension = emb.get_embedding_dimension()
    print(f"Chunking and embedding books in {directory}")
    print(f"  - Vector store: {settings.vector_db_path} (dimension {dimension})")
    print("-" * 50)

    store = VectorStore(settings.vector_db_path, dimension)
    stats = ingest_directory(
        directory,
        store,
        embedder=emb.embed_texts,
        max_size=settings.chunk_max_size,
        overlap=settings.chunk_overlap,
        by_bytes=by_bytes,
    )
    print(f"\n✓ Extraction complete!")
    print(f"  - Files: {stats['files']}")
    print(f"  - Chunks stored: {stats['chunks_stored']}")
    print(f"  - Rows in store: {store.count()}")
    if stats["errors"]:
        print(f"  - Errors: {len(stats['errors'])}")
        for error in stats["errors"][:5]:
            print(f"    - {error}")


def generate_story(settings: Settings, force_new: bool) -> None:
    print(f"Generating story with {settings.ollama_model}")
    print(f"  - Prompts: {settings.story_prompts_dir}")
    print(f"  - Output: {settings.story_output_dir}")
    print("-" * 50)

    with create_client(settings) as client:
        graph = StoryGenerationGraph(
            client,
            output_dir=settings.story_output_dir,
            prompts_dir=settings.story_prompts_dir,
            temperature=settings.story_temperature,
        )
        result = graph.generate(force_new=force_new)

    print(f"\n✓ Story generation complete!")
    print(f"  - Bible elements: {len(result.bible)}")
    print(f"  - Chapters: {len(result.chapters)}")
    print(f"  - Scenes: {sum(len(s) for s in result.scenes.values())}")

    print("\nSample Elements:")
    for element in result.elements[:5]:
        print(f"  - [{element.type or '?'}] {element.name or element.summary or element.id}")
    if len(result.elements) > 5:
        print(f"  ... and {len(result.elements) - 5} more elements")


def main():
    """Main function to run storyforge."""
    args = build_parser().parse_args()
    configure_logging(args.log_level.upper())

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"✗ Invalid configuration: {e}")
        sys.exit(1)

    try:
        if args.download_from_gutenberg:
            download_books(settings, args.query, args.max_pages)
        elif args.extract_chunks:
            extract_chunks(settings, args.by_bytes)
        else:
            generate_story(settings, args.force_new)
    except requests.ConnectionError as e:
        print(f"\n✗ Could not connect: {e}")
        print(f"  Check that Ollama is running at {settings.ollama_base_url}.")
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"\n✗ {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"\n✗ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
