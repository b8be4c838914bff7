"""Story generation with a local LLM, plus a chunking and vector search pipeline for source texts."""

__version__ = "0.1.0"
