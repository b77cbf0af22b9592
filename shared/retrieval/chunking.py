"""Boundary-aware, overlapping text chunking for agent source documents."""

import math
import re

from shared.models.chunk import TextChunk

DEFAULT_CHUNK_SIZE = 1200    # characters per chunk
DEFAULT_CHUNK_OVERLAP = 220  # characters shared by consecutive chunks
MIN_PARAGRAPH_CUT = 250      # a paragraph cut must leave at least this many chars in the chunk
MIN_SENTENCE_CUT = 200       # same for a sentence cut

_SENTENCE_TERMINATORS = (". ", "? ", "! ")


def normalize_text(text: str) -> str:
    """Normalize line endings and whitespace before chunking."""
    text = text.replace("\r\n", "\n").replace("\u00a0", " ")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def estimate_tokens(text: str) -> int:
    """Cheap token estimate (~4 characters per token), not a real tokenizer."""
    return math.ceil(len(text) / 4)


def _last_index(text: str, needle: str, at_or_before: int) -> int:
    # last occurrence starting at or before the given position, -1 if none
    return text.rfind(needle, 0, at_or_before + len(needle))


def _find_cut(text: str, cursor: int, max_end: int) -> int:
    paragraph_break = _last_index(text, "\n\n", max_end)
    if paragraph_break > cursor + MIN_PARAGRAPH_CUT:
        return paragraph_break

    sentence_break = max(_last_index(text, t, max_end) for t in _SENTENCE_TERMINATORS)
    if sentence_break > cursor + MIN_SENTENCE_CUT:
        # keep the punctuation mark inside the chunk
        return sentence_break + 1

    return max_end


def split_into_chunks(
    raw_text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[TextChunk]:
    """Split raw document text into ordered, overlapping chunks.

    Cuts prefer paragraph breaks, then sentence ends, and fall back to a hard
    cut at chunk_size. The cursor always advances by at least one character,
    so tiny or irregular inputs terminate.

    Args:
        raw_text (str): Extracted document text.
        chunk_size (int): Maximum characters per chunk.
        overlap (int): Characters repeated at the start of the next chunk.

    Returns:
        list[TextChunk]: Chunks with zero-based chunk_index. Empty for blank input.
    """
    text = normalize_text(raw_text or "")
    if not text:
        return []

    chunks: list[TextChunk] = []
    cursor = 0
    length = len(text)

    while cursor < length:
        max_end = min(cursor + chunk_size, length)
        end = _find_cut(text, cursor, max_end)

        content = text[cursor:end].strip()
        if content:
            chunks.append(
                TextChunk(
                    content=content,
                    chunk_index=len(chunks),
                    token_count=estimate_tokens(content),
                )
            )

        if end >= length:
            break
        cursor = max(end - overlap, cursor + 1)

    return chunks
