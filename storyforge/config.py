"""Runtime settings read from environment variables (and an optional .env file)."""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434/api/"
DEFAULT_OLLAMA_MODEL = "dolphin3:latest"
DEFAULT_EMBEDDING_MODEL = "jina/jina-embeddings-v2-base-en:latest"
DEFAULT_GUTENBERG_BASE_URL = "https://gutendex.com/books"


class Settings(BaseModel):
    """Application settings. Each field maps to the upper-cased environment variable of its name."""

    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    embedding_backend: str = Field(default="ollama", pattern=r"^(ollama|sentence-transformers)$")
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimension: int = Field(default=768, gt=0)
    sentence_transformers_model: str = "all-MiniLM-L6-v2"
    vector_db_path: str = "storyforge.db"
    story_output_dir: str = "outputs"
    story_prompts_dir: str = "prompts"
    story_temperature: Optional[float] = Field(default=None, ge=0.0)
    gutenberg_base_url: str = DEFAULT_GUTENBERG_BASE_URL
    gutenberg_download_path: str = "gutenberg"
    gutenberg_query: Optional[str] = None
    chunk_max_size: int = Field(default=1600, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    request_timeout: float = Field(default=300.0, gt=0)


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env file to load first. When None, python-dotenv
            searches for a .env file from the working directory upwards.
            Variables already set in the environment win.

    Returns:
        Validated Settings.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(name.upper())
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return Settings(**values)
