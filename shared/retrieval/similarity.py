"""Similarity signals used by the hybrid ranker and by question clustering.

None of these raise on odd input: empty, zero-norm or dimension-mismatched
vectors simply score 0.
"""

import math
from typing import Sequence

CONCEPT_EXACT = 1.0
CONCEPT_CONTAINED = 0.85
CONCEPT_PREFIX = 0.65
CONCEPT_PREFIX_LENGTH = 4


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if not denominator:
        return 0.0
    return dot / denominator


def lexical_similarity_from_vectors(query_vector: dict[str, float], chunk_vector: dict[str, float]) -> float:
    """Cosine similarity of two sparse term vectors."""
    if not query_vector:
        return 0.0

    dot = sum(weight * chunk_vector.get(token, 0.0) for token, weight in query_vector.items())
    norm_a = math.sqrt(sum(w * w for w in query_vector.values()))
    norm_b = math.sqrt(sum(w * w for w in chunk_vector.values()))

    denominator = norm_a * norm_b
    if not denominator:
        return 0.0
    return dot / denominator


def token_coverage_from_vectors(query_vector: dict[str, float], chunk_vector: dict[str, float]) -> float:
    """Fraction of the query's distinct tokens present anywhere in the chunk."""
    if not query_vector:
        return 0.0
    matched = sum(1 for token in query_vector if chunk_vector.get(token, 0.0) > 0)
    return matched / len(query_vector)


def extract_main_concept(vector: dict[str, float]) -> str | None:
    """Highest-weight token; the first one wins on ties."""
    best_token: str | None = None
    best_weight = 0.0
    for token, weight in vector.items():
        if weight > best_weight:
            best_token = token
            best_weight = weight
    return best_token


def concept_similarity(query_vector: dict[str, float], chunk_vector: dict[str, float]) -> float:
    query_main = extract_main_concept(query_vector)
    chunk_main = extract_main_concept(chunk_vector)
    if not query_main or not chunk_main:
        return 0.0
    if query_main == chunk_main:
        return CONCEPT_EXACT
    if chunk_vector.get(query_main):
        return CONCEPT_CONTAINED
    if (
        len(query_main) >= CONCEPT_PREFIX_LENGTH
        and len(chunk_main) >= CONCEPT_PREFIX_LENGTH
        and (
            query_main.startswith(chunk_main[:CONCEPT_PREFIX_LENGTH])
            or chunk_main.startswith(query_main[:CONCEPT_PREFIX_LENGTH])
        )
    ):
        return CONCEPT_PREFIX
    return 0.0
