from pydantic import BaseModel, Field

from shared.models.insight import ImageMetadata, SourceAlternative


class IngestSourceRequest(BaseModel):
    document_id: str
    title: str
    text: str
    file_path: str | None = None


class EvidenceRequest(BaseModel):
    question: str = Field(min_length=1)
    image_context: str | None = None
    top_k: int | None = Field(default=None, gt=0)


class RecordQuestionRequest(BaseModel):
    question_text: str = Field(min_length=1)
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


class ResolveAmbiguityRequest(BaseModel):
    selected_source_document_id: str
