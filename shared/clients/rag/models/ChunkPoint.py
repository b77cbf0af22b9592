"""ChunkPoint model — metadata stored alongside each chunk vector in a RAG backend."""

import uuid

from pydantic import BaseModel

from shared.models.chunk import CandidateChunk, EmbeddingVector, SparseTermVector


class ChunkPoint(BaseModel):
    """Payload stored next to every chunk embedding.

    This is the persistence boundary for vectors: lexical vectors are
    validated here on write and again when points are read back, instead of
    being cast blindly at query time.

    Attributes:
        agent_id:           MANDATORY — agent that owns the document; every query filters on it.
        document_id:        ID of the source document.
        document_title:     Human-readable document title.
        chunk_index:        Zero-based position of this chunk within the document.
        content:            Raw chunk text.
        token_count:        Cheap token estimate of the chunk.
        lexical_vector:     Sparse term-frequency vector of the content.
        embedding_provider: Provider that produced the stored embedding (e.g. "primary").
        embedding_model:    Model that produced the stored embedding.
        file_path:          Locator of the original file for "view source" links.
    """

    # Core identity
    agent_id: str
    document_id: str
    document_title: str
    chunk_index: int

    # Chunk content
    content: str
    token_count: int

    # Vectors and their provenance
    lexical_vector: SparseTermVector | None = None
    embedding_provider: str
    embedding_model: str

    file_path: str | None = None


def make_point_id(agent_id: str, document_id: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 point ID, so re-indexing overwrites instead of duplicating."""
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{agent_id}:{document_id}:{chunk_index}"))


def point_to_candidate(point: dict) -> CandidateChunk:
    """Convert a raw RAG point (id, vector, payload) into a ranker candidate.

    Raises:
        pydantic.ValidationError: If the stored payload or vector is invalid.
    """
    payload = ChunkPoint.model_validate(point.get("payload") or {})
    vector = point.get("vector")
    # named-vector collections return {"name": [...]}
    if isinstance(vector, dict):
        vector = next(iter(vector.values()), None)
    return CandidateChunk(
        id=str(point.get("id")),
        document_id=payload.document_id,
        document_title=payload.document_title,
        content=payload.content,
        embedding_vector=vector,
        lexical_vector=payload.lexical_vector,
        file_path=payload.file_path,
    )


def build_point(payload: ChunkPoint, vector: EmbeddingVector) -> dict:
    return {
        "id": make_point_id(payload.agent_id, payload.document_id, payload.chunk_index),
        "vector": vector,
        "payload": payload.model_dump(),
    }
