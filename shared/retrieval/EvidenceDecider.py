"""Evidence-mode decision: grounded, ambiguous or fallback."""

from shared.models.chunk import RetrievedChunk
from shared.models.config import DeciderSettings
from shared.models.evidence import AnswerMode, EvidenceDecision


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


class EvidenceDecider:
    """Turns a ranked chunk list into an answer mode with selected evidence.

    Every input yields a valid decision; fallback is the graceful outcome
    when the documents do not support an answer.
    """

    def __init__(self, settings: DeciderSettings | None = None) -> None:
        self.settings = settings or DeciderSettings()

    def decide(self, ranked: list[RetrievedChunk], has_image_context: bool = False) -> EvidenceDecision:
        """Decide how to answer from chunks already sorted by descending score.

        Args:
            ranked (list[RetrievedChunk]): Output of the hybrid ranker.
            has_image_context (bool): Image-derived text was part of the query. Passed
                through for the generator; thresholds are the same either way.

        Returns:
            EvidenceDecision: mode, confidence (top score) and selected chunks.
        """
        s = self.settings
        if not ranked or ranked[0].score < s.fallback_floor:
            top_score = ranked[0].score if ranked else 0.0
            return EvidenceDecision(
                mode=AnswerMode.FALLBACK,
                confidence=_clamp(top_score),
                selected=[],
                has_image_context=has_image_context,
            )

        top = ranked[0]
        second = ranked[1] if len(ranked) > 1 else None

        if (
            second is not None
            and top.score >= s.ambiguity_min_score
            and second.score >= s.ambiguity_min_score
            and top.score - second.score <= s.ambiguity_margin
        ):
            alternatives = [c for c in ranked if top.score - c.score <= s.ambiguity_margin]
            return EvidenceDecision(
                mode=AnswerMode.AMBIGUOUS,
                confidence=_clamp(top.score),
                selected=alternatives[: s.ambiguity_cap],
                has_image_context=has_image_context,
            )

        # keep the top chunk plus anything before the score cliff
        supporting = [c for c in ranked if top.score - c.score <= s.grounded_margin]
        return EvidenceDecision(
            mode=AnswerMode.GROUNDED,
            confidence=_clamp(top.score),
            selected=supporting[: s.grounded_cap],
            has_image_context=has_image_context,
        )


def decide_evidence_mode(
    ranked: list[RetrievedChunk],
    has_image_context: bool = False,
    settings: DeciderSettings | None = None,
) -> EvidenceDecision:
    return EvidenceDecider(settings).decide(ranked, has_image_context=has_image_context)
