import pytest

from shared.models.chunk import RetrievedChunk
from shared.models.config import DeciderSettings
from shared.models.evidence import AnswerMode
from shared.retrieval.EvidenceDecider import EvidenceDecider, decide_evidence_mode


def ranked(*scores: float) -> list[RetrievedChunk]:
    return [
        RetrievedChunk(
            id=chr(ord("A") + i),
            document_id=f"doc-{i}",
            document_title=f"Documento {i}",
            content=f"contenido {i}",
            score=score,
        )
        for i, score in enumerate(scores)
    ]


def selected_ids(decision) -> list[str]:
    return [c.id for c in decision.selected]


def test_clear_winner_is_grounded():
    decision = decide_evidence_mode(ranked(0.6, 0.25))

    assert decision.mode == AnswerMode.GROUNDED
    assert selected_ids(decision) == ["A"]
    assert decision.confidence == pytest.approx(0.6)


def test_close_competitors_are_ambiguous():
    decision = decide_evidence_mode(ranked(0.55, 0.50))

    assert decision.mode == AnswerMode.AMBIGUOUS
    assert selected_ids(decision) == ["A", "B"]
    assert decision.confidence == pytest.approx(0.55)


def test_weak_top_score_falls_back():
    decision = decide_evidence_mode(ranked(0.30))

    assert decision.mode == AnswerMode.FALLBACK
    assert decision.selected == []
    assert decision.confidence == pytest.approx(0.30)


def test_no_chunks_falls_back_with_zero_confidence():
    decision = decide_evidence_mode([])

    assert decision.mode == AnswerMode.FALLBACK
    assert decision.confidence == 0.0


def test_grounded_keeps_chunks_before_the_score_cliff():
    # second is too weak to be an alternative, but close enough to support the answer
    decision = decide_evidence_mode(ranked(0.50, 0.44, 0.30))

    assert decision.mode == AnswerMode.GROUNDED
    assert selected_ids(decision) == ["A", "B"]


def test_ambiguous_alternatives_are_capped():
    decision = decide_evidence_mode(ranked(0.90, 0.88, 0.86, 0.85, 0.84))

    assert decision.mode == AnswerMode.AMBIGUOUS
    assert selected_ids(decision) == ["A", "B", "C"]


def test_grounded_selection_is_capped():
    settings = DeciderSettings(ambiguity_min_score=0.99, grounded_cap=2)
    decision = EvidenceDecider(settings).decide(ranked(0.90, 0.89, 0.88, 0.87))

    assert decision.mode == AnswerMode.GROUNDED
    assert selected_ids(decision) == ["A", "B"]


def test_confidence_is_clamped():
    decision = decide_evidence_mode(ranked(1.3, 0.1))

    assert decision.mode == AnswerMode.GROUNDED
    assert decision.confidence == 1.0


def test_image_context_is_passed_through():
    decision = decide_evidence_mode(ranked(0.30), has_image_context=True)

    assert decision.has_image_context is True
    assert decision.mode == AnswerMode.FALLBACK


def test_thresholds_come_from_settings():
    settings = DeciderSettings(fallback_floor=0.2)
    decision = EvidenceDecider(settings).decide(ranked(0.30))

    assert decision.mode == AnswerMode.GROUNDED
    assert selected_ids(decision) == ["A"]
