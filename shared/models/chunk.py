"""Pydantic models for chunks and their vectors.

Hierarchy:
  TextChunk       — one slice of a document, produced by the chunker.
  CandidateChunk  — a stored, agent-scoped chunk handed to the ranker.
  RetrievedChunk  — a candidate scored against one query (never persisted).
"""

import math
from typing import Annotated

from pydantic import AfterValidator, BaseModel


def _check_embedding(values: list[float]) -> list[float]:
    if not values:
        raise ValueError("Embedding vector must not be empty.")
    if not all(math.isfinite(v) for v in values):
        raise ValueError("Embedding vector contains non-finite values.")
    return values


def _check_sparse(values: dict[str, float]) -> dict[str, float]:
    for token, weight in values.items():
        if not token:
            raise ValueError("Sparse term vector contains an empty token.")
        if not math.isfinite(weight) or weight < 0:
            raise ValueError(f"Sparse term vector weight for '{token}' must be a finite value >= 0, got {weight}.")
    return values


# Dense vector, fixed dimension per (provider, model).
EmbeddingVector = Annotated[list[float], AfterValidator(_check_embedding)]

# token -> normalized frequency, all weights >= 0.
SparseTermVector = Annotated[dict[str, float], AfterValidator(_check_sparse)]


class TextChunk(BaseModel, frozen=True):
    """A bounded, overlap-aware slice of a document's text."""

    content: str
    chunk_index: int
    token_count: int


class CandidateChunk(BaseModel):
    """A ready chunk of the agent's scoped document set.

    Attributes:
        id:               Chunk point ID in the vector store.
        document_id:      ID of the source document.
        document_title:   Human-readable document title.
        content:          Raw chunk text.
        embedding_vector: Dense embedding stored at index time.
        lexical_vector:   Precomputed term-frequency vector, or None for chunks indexed
                          before lexical vectors existed.
        file_path:        Locator of the original file for "view source" links.
    """

    id: str
    document_id: str
    document_title: str
    content: str
    embedding_vector: EmbeddingVector
    lexical_vector: SparseTermVector | None = None
    file_path: str | None = None


class RetrievedChunk(BaseModel):
    """A candidate chunk scored against a single query."""

    id: str
    document_id: str
    document_title: str
    content: str
    score: float
