"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import shutil
from pathlib import Path

from storyforge import embeddings as emb
from storyforge.vector_store import VectorStore

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


@pytest.fixture(scope="function")
def temp_output_dir():
    """Create a temporary directory for test outputs."""
    temp_dir = tempfile.mkdtemp(prefix="test_storyforge_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def store(tmp_path):
    """A three-dimensional vector store in a temporary file."""
    return VectorStore(tmp_path / "vectors.db", embedding_dimension=3)


@pytest.fixture(scope="function")
def prompts_dir(tmp_path):
    """A copy of the default prompt templates."""
    target = tmp_path / "prompts"
    shutil.copytree(PROMPTS_DIR, target)
    return target


@pytest.fixture(scope="function")
def books_dir(tmp_path):
    """A folder with two small books, one wrapped in Gutenberg boilerplate."""
    folder = tmp_path / "books"
    folder.mkdir()
    (folder / "11.txt").write_text(
        "The Project Gutenberg eBook of a small test\n\n"
        "*** START OF THE PROJECT GUTENBERG EBOOK SMALL TEST ***\n\n"
        "The ship left the harbor at dawn.  The sea was calm.\n\n"
        "By noon a storm rose over the water.\n\n"
        "*** END OF THE PROJECT GUTENBERG EBOOK SMALL TEST ***\n\n"
        "Project Gutenberg License terms follow here.\n",
        encoding="utf-8",
    )
    (folder / "22.txt").write_text(
        "A garden of roses grew behind the house.\r\n\r\n\r\nThe roses were red.",
        encoding="utf-8",
    )
    return folder


@pytest.fixture(autouse=True)
def reset_embeddings():
    """Keep the lazily loaded embedding backend from leaking between tests."""
    emb.configure_embeddings(None)
    yield
    emb.configure_embeddings(None)
