"""Pydantic models for question analytics records.

A QuestionEvent always belongs to exactly one QuestionTopic and one
QuestionCluster. AmbiguityEvents exist only for ambiguous answers that
offered alternatives.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Resolution(str, Enum):
    ANSWERED = "ANSWERED"
    UNRESOLVED = "UNRESOLVED"
    AMBIGUOUS = "AMBIGUOUS"


class ImageAnalysisStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"
    NONE = "none"


class ImageMetadata(BaseModel):
    has_image: bool = False
    image_type: str | None = None
    analysis_status: ImageAnalysisStatus = ImageAnalysisStatus.NONE


class SourceAlternative(BaseModel):
    """One candidate source offered to the user in ambiguous mode."""

    chunk_id: str
    document_id: str
    title: str
    summary: str
    score: float


class QuestionTopic(BaseModel):
    id: str = Field(default_factory=_new_id)
    agent_id: str
    normalized_key: str
    name: str
    question_count: int = 0
    answered_count: int = 0
    unresolved_count: int = 0
    ambiguous_count: int = 0
    last_asked_at: datetime = Field(default_factory=_utcnow)


class QuestionCluster(BaseModel):
    """Near-duplicate group of questions under a topic.

    The centroid is the embedding of the most recent question, not an average.
    """

    id: str = Field(default_factory=_new_id)
    agent_id: str
    topic_id: str
    canonical_question: str
    normalized_question_key: str
    centroid_embedding: list[float] | None = None
    question_count: int = 0
    answered_count: int = 0
    unresolved_count: int = 0
    ambiguous_count: int = 0
    last_answer: str | None = None
    last_mode: str | None = None
    last_confidence: float | None = None
    last_asked_at: datetime = Field(default_factory=_utcnow)


class QuestionEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    agent_id: str
    topic_id: str
    cluster_id: str
    conversation_id: str | None = None
    user_id: str | None = None
    question_text: str
    normalized_question: str
    question_embedding: list[float] | None = None
    answer_text: str | None = None
    mode: str | None = None
    confidence: float | None = None
    has_answer: bool = False
    resolution: Resolution
    image_metadata: ImageMetadata = ImageMetadata()
    citations_snapshot: list[dict] | None = None
    selected_source_document_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class AmbiguityEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    agent_id: str
    conversation_id: str | None = None
    question_event_id: str | None = None
    question_text: str
    alternatives: list[SourceAlternative] = []
    selected_source_document_id: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class RecordQuestionInput(BaseModel):
    """Everything known about one answered (or unanswered) question."""

    agent_id: str
    question_text: str
    conversation_id: str | None = None
    user_id: str | None = None
    question_embedding: list[float] | None = None
    answer_text: str | None = None
    mode: str | None = None
    confidence: float | None = None
    citations_snapshot: list[dict] | None = None
    image_metadata: ImageMetadata = ImageMetadata()
    selected_source_document_id: str | None = None
    alternatives: list[SourceAlternative] = []


class RecordQuestionResult(BaseModel):
    event_id: str
    topic_id: str
    cluster_id: str
    ambiguity_event_id: str | None = None


class InsightSummary(BaseModel):
    total_questions: int = 0
    total_answered: int = 0
    total_unresolved: int = 0
    total_ambiguous: int = 0


class AmbiguityGroup(BaseModel):
    question_text: str
    count: int
    resolved_count: int
    last_created_at: datetime


class AgentInsights(BaseModel):
    """Analytics report for one agent over a time window."""

    summary: InsightSummary = InsightSummary()
    top_answered: list[QuestionCluster] = []
    top_unresolved: list[QuestionCluster] = []
    top_ambiguous: list[AmbiguityGroup] = []
    top_topics: list[QuestionTopic] = []
    unresolved_ambiguities: list[AmbiguityEvent] = []
