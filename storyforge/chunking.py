"""Chunk normalized document text into bounded, overlapping segments.

Two budgets are supported: characters (``chunk_text_by_chars``) and UTF-8
bytes (``chunk_text_by_bytes``). Both walk the text paragraph by paragraph,
fall back to sentences for paragraphs over budget and hard-split sentences
that are still too long. Consecutive chunks share a short overlap taken from
the tail of the previous chunk.
"""

import hashlib
import logging
import re
from pathlib import Path
from typing import Iterator, List, Union

from storyforge.models.chunk import ChunkRecord
from storyforge.text_normalizer import normalize

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

PARAGRAPH_SPLIT = re.compile(r"(?:\r?\n){2,}")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

DEFAULT_MAX_CHARS = 1600
DEFAULT_OVERLAP_CHARS = 200
DEFAULT_MAX_BYTES = 12000
DEFAULT_OVERLAP_BYTES = 2000


class CharMeasure:
    """Measures and cuts text in characters."""

    def size(self, text: str) -> int:
        return len(text)

    def head(self, text: str, limit: int) -> str:
        """Longest prefix of at most ``limit`` units (never empty for non-empty text)."""
        return text[:max(limit, 1)]

    def tail(self, text: str, limit: int) -> str:
        """Longest suffix of at most ``limit`` units."""
        if limit <= 0:
            return ""
        return text[-limit:]


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


class Utf8Measure(CharMeasure):
    """Measures and cuts text in UTF-8 bytes without splitting a code point."""

    def size(self, text: str) -> int:
        return len(text.encode("utf-8"))

    def head(self, text: str, limit: int) -> str:
        data = text.encode("utf-8")
        if len(data) <= limit:
            return text
        cut = max(limit, 1)
        # Back up to the first byte of the code point that straddles the cut
        while cut > 0 and _is_continuation(data[cut]):
            cut -= 1
        if cut == 0:
            # A single code point is wider than the budget: emit it whole
            cut = 1
            while cut < len(data) and _is_continuation(data[cut]):
                cut += 1
        return data[:cut].decode("utf-8")

    def tail(self, text: str, limit: int) -> str:
        if limit <= 0:
            return ""
        data = text.encode("utf-8")
        if len(data) <= limit:
            return text
        start = len(data) - limit
        while start < len(data) and _is_continuation(data[start]):
            start += 1
        return data[start:].decode("utf-8")


def compute_chunk_hash(chunk: str) -> str:
    """Compute the SHA-256 hex digest of a chunk's UTF-8 text, for change detection."""
    return hashlib.sha256(chunk.encode("utf-8")).hexdigest()


def split_paragraphs(text: str) -> List[str]:
    """Split text on blank lines; paragraphs are stripped and empty ones dropped."""
    return [p.strip() for p in PARAGRAPH_SPLIT.split(text) if p.strip()]


def split_sentences(paragraph: str) -> List[str]:
    """Split a paragraph at the whitespace following '.', '!' or '?'."""
    return [s for s in SENTENCE_SPLIT.split(paragraph) if s]


def _hard_split(text: str, max_size: int, measure: CharMeasure) -> Iterator[str]:
    while text:
        piece = measure.head(text, max_size)
        yield piece
        text = text[len(piece):]


def _sentence_fragments(paragraph: str, max_size: int, measure: CharMeasure) -> Iterator[str]:
    """Regroup an oversized paragraph into sentence runs that fit the budget."""
    current = ""
    for sentence in split_sentences(paragraph):
        if measure.size(sentence) > max_size:
            if current:
                yield current
                current = ""
            yield from _hard_split(sentence, max_size, measure)
            continue
        candidate = current + SENTENCE_SEPARATOR + sentence if current else sentence
        if measure.size(candidate) <= max_size:
            current = candidate
        else:
            yield current
            current = sentence
    if current:
        yield current


class _ChunkBuffer:
    """Accumulates paragraphs into chunks and seeds each new chunk with overlap."""

    def __init__(self, max_size: int, overlap: int, measure: CharMeasure):
        self.max_size = max_size
        self.overlap = overlap
        self.measure = measure
        self.text = ""

    def add(self, piece: str) -> Iterator[str]:
        if not self.text:
            self.text = piece
            yield from self._drain()
            return
        joined = self.text + PARAGRAPH_SEPARATOR + piece
        if self.measure.size(joined) <= self.max_size:
            self.text = joined
            return
        chunk = self.text
        yield chunk
        seed = self._overlap_seed(chunk, piece)
        self.text = seed + PARAGRAPH_SEPARATOR + piece if seed else piece
        yield from self._drain()

    def flush(self) -> Iterator[str]:
        if self.text:
            yield self.text
            self.text = ""

    def _drain(self) -> Iterator[str]:
        """Emit budget-sized slices while the buffer is over budget, each seeding the next."""
        while self.measure.size(self.text) > self.max_size:
            head = self.measure.head(self.text, self.max_size)
            yield head
            # Carry strictly less than the slice so the buffer always shrinks
            carry = self.measure.tail(head, min(self.overlap, self.measure.size(head) - 1))
            self.text = carry + self.text[len(head):]

    def _overlap_seed(self, chunk: str, piece: str) -> str:
        """
        Tail of ``chunk`` to carry into the next chunk.

        The seed is shrunk so ``piece`` still fits after it. When ``piece`` leaves
        no room the full overlap is kept and ``_drain`` emits the budget-worth.
        """
        room = self.max_size - self.measure.size(piece) - self.measure.size(PARAGRAPH_SEPARATOR)
        budget = min(self.overlap, room) if room > 0 else self.overlap
        if budget <= 0:
            return ""
        tail = self.measure.tail(chunk, budget)
        boundary = tail.find(PARAGRAPH_SEPARATOR)
        if boundary != -1 and boundary + len(PARAGRAPH_SEPARATOR) < len(tail):
            tail = tail[boundary + len(PARAGRAPH_SEPARATOR):]
        return tail


def _validate_budget(max_size: int, overlap: int) -> None:
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap < 0 or overlap >= max_size:
        raise ValueError(
            f"overlap must be in [0, max_size), got overlap={overlap} with max_size={max_size}"
        )


def _build_chunks(text: str, max_size: int, overlap: int, measure: CharMeasure) -> Iterator[str]:
    buffer = _ChunkBuffer(max_size, overlap, measure)
    for paragraph in split_paragraphs(text):
        if measure.size(paragraph) > max_size:
            pieces = _sentence_fragments(paragraph, max_size, measure)
        else:
            pieces = [paragraph]
        for piece in pieces:
            yield from buffer.add(piece)
    yield from buffer.flush()


def chunk_text_by_chars(
    text: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    overlap_chars: int = DEFAULT_OVERLAP_CHARS,
) -> Iterator[str]:
    """
    Split normalized text into chunks of at most ``max_chars`` characters.

    Args:
        text: Normalized text (paragraphs separated by blank lines).
        max_chars: Character budget per chunk.
        overlap_chars: Characters of the previous chunk to repeat at the start of the next.

    Returns:
        Lazy iterator over chunk strings in document order.

    Raises:
        ValueError: If ``max_chars <= 0`` or ``overlap_chars`` is not in ``[0, max_chars)``.
    """
    _validate_budget(max_chars, overlap_chars)
    return _build_chunks(text, max_chars, overlap_chars, CharMeasure())


def chunk_text_by_bytes(
    text: str,
    max_bytes: int = DEFAULT_MAX_BYTES,
    overlap_bytes: int = DEFAULT_OVERLAP_BYTES,
) -> Iterator[str]:
    """
    Split normalized text into chunks of at most ``max_bytes`` UTF-8 bytes.

    Chunk boundaries never fall inside a multi-byte character.

    Args:
        text: Normalized text (paragraphs separated by blank lines).
        max_bytes: UTF-8 byte budget per chunk.
        overlap_bytes: Bytes of the previous chunk to repeat at the start of the next.

    Returns:
        Lazy iterator over chunk strings in document order.

    Raises:
        ValueError: If ``max_bytes <= 0`` or ``overlap_bytes`` is not in ``[0, max_bytes)``.
    """
    _validate_budget(max_bytes, overlap_bytes)
    return _build_chunks(text, max_bytes, overlap_bytes, Utf8Measure())


def chunk_document(
    source_name: str,
    text: str,
    max_size: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP_CHARS,
    by_bytes: bool = False,
) -> Iterator[ChunkRecord]:
    """
    Chunk one normalized document into indexed, hashed records.

    Args:
        source_name: Name recorded on every chunk (usually the file name).
        text: Normalized document text.
        max_size: Budget per chunk, in characters or bytes.
        overlap: Overlap between consecutive chunks, same unit as ``max_size``.
        by_bytes: Measure the budget in UTF-8 bytes instead of characters.

    Returns:
        Iterator of ChunkRecord with indices 0, 1, 2, ... in document order.
    """
    if by_bytes:
        chunks = chunk_text_by_bytes(text, max_size, overlap)
    else:
        chunks = chunk_text_by_chars(text, max_size, overlap)
    return (
        ChunkRecord(
            source_name=source_name,
            index=index,
            text=chunk,
            content_hash=compute_chunk_hash(chunk),
        )
        for index, chunk in enumerate(chunks)
    )


def chunk_file(
    path: Union[str, Path],
    max_size: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP_CHARS,
    by_bytes: bool = False,
    strip_boilerplate: bool = True,
) -> Iterator[ChunkRecord]:
    """
    Read a UTF-8 text file, normalize it and chunk it. Empty documents yield nothing.

    Invalid UTF-8 bytes are replaced with U+FFFD and a warning is logged.
    """
    path = Path(path)
    data = path.read_bytes()
    try:
        raw = data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Invalid UTF-8 in %s (%s); replacing undecodable bytes", path.name, e.reason)
        raw = data.decode("utf-8", errors="replace")
    text = normalize(raw, strip_boilerplate=strip_boilerplate)
    if not text:
        logger.info("Skipping %s: no text after normalization", path.name)
        return iter(())
    return chunk_document(path.name, text, max_size, overlap, by_bytes=by_bytes)


def chunk_directory(
    directory: Union[str, Path],
    max_size: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP_CHARS,
    by_bytes: bool = False,
    strip_boilerplate: bool = True,
    extension: str = ".txt",
) -> Iterator[ChunkRecord]:
    """
    Chunk every matching file under a directory, recursively, in path order.

    Args:
        directory: Folder with plain-text documents.
        max_size: Budget per chunk, in characters or bytes.
        overlap: Overlap between consecutive chunks.
        by_bytes: Measure the budget in UTF-8 bytes instead of characters.
        strip_boilerplate: Strip Project Gutenberg header/footer text.
        extension: File extension to include.

    Returns:
        Iterator of ChunkRecord, file by file.
    """
    _validate_budget(max_size, overlap)
    paths = sorted(Path(directory).rglob(f"*{extension}"), key=lambda p: p.as_posix())
    return (
        record
        for path in paths
        if path.is_file()
        for record in chunk_file(
            path,
            max_size=max_size,
            overlap=overlap,
            by_bytes=by_bytes,
            strip_boilerplate=strip_boilerplate,
        )
    )
