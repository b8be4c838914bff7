"""Clean raw public-domain text before chunking.

Project Gutenberg files wrap the book in a license header and footer. The
body sits between ``*** START OF ... ***`` and ``*** END OF ... ***`` markers,
and a trailing license block may still follow. ``normalize`` removes that
boilerplate and tidies whitespace while keeping paragraph breaks, which the
chunker relies on.
"""

import re

START_MARKER = re.compile(r"\*{3,}\s*START OF.*?\*{3,}", re.IGNORECASE | re.DOTALL)
END_MARKER = re.compile(r"\*{3,}\s*END OF.*?\*{3,}", re.IGNORECASE | re.DOTALL)
LICENSE_MARKER = re.compile(
    r"Project Gutenberg.*?License|End of the Project Gutenberg", re.IGNORECASE
)

# Two or more newlines with only horizontal whitespace between them
BLANK_LINES = re.compile(r"\n[^\S\n]*(?:\n[^\S\n]*)+")
MULTI_SPACE = re.compile(r"\s{2,}")

PARAGRAPH_BREAK = "\n\n"


def extract_body(text: str) -> str:
    """
    Keep only the book body of a Project Gutenberg text.

    Args:
        text: Raw file contents.

    Returns:
        Text strictly between the START and END markers (when both exist and
        are in order), cut at the first trailing license marker. Text without
        markers is returned unchanged.
    """
    start = START_MARKER.search(text)
    end = END_MARKER.search(text)
    if start and end and end.start() > start.start():
        text = text[start.end():end.start()]
    return LICENSE_MARKER.split(text, maxsplit=1)[0]


def normalize_whitespace(text: str) -> str:
    """Unify line endings, collapse whitespace runs and keep single blank lines between paragraphs."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    paragraphs = []
    for part in BLANK_LINES.split(text):
        part = MULTI_SPACE.sub(" ", part).strip()
        if part:
            paragraphs.append(part)
    return PARAGRAPH_BREAK.join(paragraphs)


def normalize(raw: str, strip_boilerplate: bool = True) -> str:
    """
    Normalize a raw document for chunking.

    Args:
        raw: Raw document text.
        strip_boilerplate: Remove Project Gutenberg header, footer and license text first.

    Returns:
        Normalized text; empty when nothing but boilerplate or whitespace was present.
    """
    if strip_boilerplate:
        raw = extract_body(raw)
    return normalize_whitespace(raw)
