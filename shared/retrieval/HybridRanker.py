"""Hybrid semantic + lexical ranking of candidate chunks."""

from shared.models.chunk import CandidateChunk, RetrievedChunk
from shared.models.config import RankerSettings
from shared.retrieval.lexical import build_lexical_vector
from shared.retrieval.similarity import (
    concept_similarity,
    cosine_similarity,
    lexical_similarity_from_vectors,
    token_coverage_from_vectors,
)


class HybridRanker:
    """Scores chunks against a query by blending four signals.

    - semantic: cosine of the dense embeddings
    - lexical:  cosine of the sparse term vectors
    - coverage: share of query terms present in the chunk; tolerates long chunks
    - concept:  agreement of the single heaviest term on each side

    The ranker only consumes vectors, so the embedding backend can change
    without touching it.
    """

    def __init__(self, settings: RankerSettings | None = None) -> None:
        self.settings = settings or RankerSettings()

    def score_chunk(
        self,
        query_vector: list[float],
        query_lexical: dict[str, float],
        chunk: CandidateChunk,
    ) -> float:
        """Return the blended score of one candidate chunk."""
        chunk_lexical = chunk.lexical_vector
        if chunk_lexical is None:
            chunk_lexical = build_lexical_vector(chunk.content)

        semantic = cosine_similarity(query_vector, chunk.embedding_vector)
        lexical = lexical_similarity_from_vectors(query_lexical, chunk_lexical)
        coverage = token_coverage_from_vectors(query_lexical, chunk_lexical)
        concept = concept_similarity(query_lexical, chunk_lexical)

        s = self.settings
        return (
            semantic * s.semantic_weight
            + lexical * s.lexical_weight
            + coverage * s.coverage_weight
            + concept * s.concept_weight
        )

    def rank(
        self,
        query_text: str,
        query_vector: list[float],
        chunks: list[CandidateChunk],
        top_k: int | None = None,
    ) -> list[RetrievedChunk]:
        """Rank candidates by blended score, best first.

        Args:
            query_text (str): Retrieval query (question, optionally with image context).
            query_vector (list[float]): Embedding of query_text.
            chunks (list[CandidateChunk]): Agent-scoped candidate chunks.
            top_k (int | None): Max results; defaults to the configured top_k.

        Returns:
            list[RetrievedChunk]: At most top_k chunks sorted by descending score.
        """
        limit = top_k if top_k is not None else self.settings.top_k
        query_lexical = build_lexical_vector(query_text)

        scored = [
            RetrievedChunk(
                id=chunk.id,
                document_id=chunk.document_id,
                document_title=chunk.document_title,
                content=chunk.content,
                score=self.score_chunk(query_vector, query_lexical, chunk),
            )
            for chunk in chunks
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:limit]


def rank_chunks_by_similarity(
    query_text: str,
    query_vector: list[float],
    chunks: list[CandidateChunk],
    top_k: int = 6,
    settings: RankerSettings | None = None,
) -> list[RetrievedChunk]:
    """Functional shortcut around HybridRanker.rank()."""
    return HybridRanker(settings).rank(query_text, query_vector, chunks, top_k=top_k)
