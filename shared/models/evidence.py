from enum import Enum

from pydantic import BaseModel, Field

from shared.models.chunk import RetrievedChunk


class AnswerMode(str, Enum):
    GROUNDED = "grounded"
    AMBIGUOUS = "ambiguous"
    FALLBACK = "fallback"


class EvidenceDecision(BaseModel):
    """Outcome of the evidence-mode decision for one question.

    Attributes:
        mode:              grounded, ambiguous or fallback.
        confidence:        Top retrieval score clamped to [0, 1].
        selected:          Evidence handed to the generator (empty in fallback mode).
        has_image_context: Whether image-derived text was part of the retrieval query.
    """

    mode: AnswerMode
    confidence: float = Field(ge=0.0, le=1.0)
    selected: list[RetrievedChunk] = []
    has_image_context: bool = False
