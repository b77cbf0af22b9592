import math

import pytest

from shared.models.chunk import CandidateChunk
from shared.models.config import RankerSettings
from shared.retrieval.HybridRanker import HybridRanker, rank_chunks_by_similarity
from shared.retrieval.lexical import build_lexical_vector
from shared.retrieval.similarity import (
    concept_similarity,
    cosine_similarity,
    extract_main_concept,
    lexical_similarity_from_vectors,
    token_coverage_from_vectors,
)


def make_chunk(chunk_id: str, content: str, vector: list[float], with_lexical: bool = True) -> CandidateChunk:
    return CandidateChunk(
        id=chunk_id,
        document_id=f"doc-{chunk_id}",
        document_title=f"Documento {chunk_id}",
        content=content,
        embedding_vector=vector,
        lexical_vector=build_lexical_vector(content) if with_lexical else None,
    )


class TestCosineSimilarity:
    def test_identical_and_orthogonal(self):
        assert cosine_similarity([0.3, 0.4], [0.3, 0.4]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_degenerate_inputs_score_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0
        assert cosine_similarity([], []) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


class TestSparseSignals:
    def test_lexical_similarity(self):
        assert lexical_similarity_from_vectors({}, {"a": 1.0}) == 0.0
        assert lexical_similarity_from_vectors({"a": 1.0}, {}) == 0.0
        assert lexical_similarity_from_vectors({"a": 0.5, "b": 0.5}, {"a": 1.0}) == pytest.approx(1 / math.sqrt(2))

    def test_token_coverage(self):
        assert token_coverage_from_vectors({"a": 0.5, "b": 0.5}, {"a": 1.0}) == 0.5
        assert token_coverage_from_vectors({}, {"a": 1.0}) == 0.0

    def test_main_concept_first_wins_ties(self):
        assert extract_main_concept({"x": 0.5, "y": 0.5}) == "x"
        assert extract_main_concept({"x": 0.2, "y": 0.8}) == "y"
        assert extract_main_concept({}) is None

    def test_concept_similarity_levels(self):
        assert concept_similarity({"vaca": 1.0}, {"vaca": 0.6, "dias": 0.4}) == 1.0
        assert concept_similarity({"phishing": 1.0}, {"correo": 0.6, "phishing": 0.4}) == 0.85
        assert concept_similarity({"configura": 1.0}, {"config": 1.0}) == 0.65
        assert concept_similarity({"abc": 1.0}, {"xyz": 1.0}) == 0.0
        assert concept_similarity({}, {"xyz": 1.0}) == 0.0


class TestHybridRanker:
    def test_blended_score_and_order(self):
        relevant = make_chunk("a", "politica de vacaciones", [1.0, 0.0])
        unrelated = make_chunk("b", "manual de seguridad", [0.0, 1.0])

        ranked = HybridRanker().rank("vacaciones", [1.0, 0.0], [unrelated, relevant])

        assert [c.id for c in ranked] == ["a", "b"]
        # 0.30 * 1 + 0.25 * 0.7071 + 0.35 * 1 + 0.10 * 0.85
        assert ranked[0].score == pytest.approx(0.9118, abs=1e-3)
        assert ranked[1].score == pytest.approx(0.0)

    def test_top_k_limits_results(self):
        chunks = [make_chunk(str(i), f"texto {i}", [1.0, float(i)]) for i in range(8)]

        assert len(rank_chunks_by_similarity("texto", [1.0, 0.0], chunks)) == 6
        assert len(HybridRanker().rank("texto", [1.0, 0.0], chunks, top_k=2)) == 2

    def test_missing_lexical_vector_is_computed_from_content(self):
        stored = make_chunk("a", "politica de vacaciones", [1.0, 0.0])
        legacy = make_chunk("a", "politica de vacaciones", [1.0, 0.0], with_lexical=False)
        ranker = HybridRanker()
        query_lexical = build_lexical_vector("vacaciones")

        assert ranker.score_chunk([1.0, 0.0], query_lexical, legacy) == pytest.approx(
            ranker.score_chunk([1.0, 0.0], query_lexical, stored)
        )

    def test_empty_stored_lexical_vector_is_kept(self):
        empty = make_chunk("a", "politica de vacaciones", [1.0, 0.0])
        empty.lexical_vector = {}
        ranker = HybridRanker(RankerSettings(semantic_weight=0.0))

        assert ranker.score_chunk([1.0, 0.0], build_lexical_vector("vacaciones"), empty) == 0.0

    def test_ties_keep_input_order(self):
        first = make_chunk("first", "mismo texto", [1.0, 0.0])
        second = make_chunk("second", "mismo texto", [1.0, 0.0])

        ranked = HybridRanker().rank("mismo texto", [1.0, 0.0], [first, second])
        assert [c.id for c in ranked] == ["first", "second"]

    def test_weights_come_from_settings(self):
        settings = RankerSettings(semantic_weight=1.0, lexical_weight=0.0, coverage_weight=0.0, concept_weight=0.0)
        chunk = make_chunk("a", "politica de vacaciones", [0.6, 0.8])

        ranked = HybridRanker(settings).rank("vacaciones", [1.0, 0.0], [chunk])
        assert ranked[0].score == pytest.approx(0.6)

    def test_dimension_mismatch_only_loses_semantic_signal(self):
        chunk = make_chunk("a", "politica de vacaciones", [1.0, 0.0, 0.0])

        ranked = HybridRanker().rank("vacaciones", [1.0, 0.0], [chunk])
        assert ranked[0].score == pytest.approx(0.9118 - 0.30, abs=1e-3)
