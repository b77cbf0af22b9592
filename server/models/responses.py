from pydantic import BaseModel

from shared.models.evidence import AnswerMode
from shared.models.insight import SourceAlternative


class Citation(BaseModel):
    chunk_id: str
    document_id: str
    title: str
    excerpt: str
    score: float
    file_url: str | None = None


class EvidenceResponse(BaseModel):
    """Evidence selected for one question; answer generation happens downstream."""

    agent_id: str
    question: str
    retrieval_query: str
    mode: AnswerMode
    confidence: float
    has_image_context: bool
    citations: list[Citation]
    alternatives: list[SourceAlternative]
    requires_source_selection: bool
    query_embedding: list[float]
    embedding_provider: str
    embedding_model: str


class DeleteSourceResponse(BaseModel):
    agent_id: str
    document_id: str
    deleted: bool = True
