from fastapi import APIRouter, Depends, HTTPException, Query, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import RecordQuestionRequest, ResolveAmbiguityRequest
from shared.models.insight import AgentInsights, AmbiguityEvent, RecordQuestionInput, RecordQuestionResult

router = APIRouter(prefix="/agents/{agent_id}", tags=["insights"])


@router.post("/questions")
async def record_question(
    request: Request,
    agent_id: str,
    body: RecordQuestionRequest,
    _: None = Depends(verify_api_key),
) -> RecordQuestionResult:
    """Record the outcome of one answered (or unanswered) question.

    Args:
        request (Request): FastAPI request (provides app.state.insight_service).
        agent_id (str): Agent that answered.
        body (RecordQuestionRequest): Question, answer, mode and optional embedding.
        _ (None): Auth dependency result (unused).

    Returns:
        RecordQuestionResult: IDs of the stored event, topic, cluster and ambiguity event.

    Raises:
        HTTPException: 503 if the insight store could not record the question.
    """
    insight_service = request.app.state.insight_service
    data = RecordQuestionInput(agent_id=agent_id, **body.model_dump())
    result = await insight_service.record_question_event_safely(data)
    if result is None:
        raise HTTPException(status_code=503, detail="Question could not be recorded")
    return result


@router.post("/ambiguities/{ambiguity_event_id}/resolve")
async def resolve_ambiguity(
    request: Request,
    agent_id: str,
    ambiguity_event_id: str,
    body: ResolveAmbiguityRequest,
    _: None = Depends(verify_api_key),
) -> AmbiguityEvent:
    """Store which source the user picked for an ambiguous answer."""
    insight_service = request.app.state.insight_service
    try:
        event = await insight_service.resolve_ambiguity_event(
            ambiguity_event_id, body.selected_source_document_id, agent_id=agent_id
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return event


@router.get("/insights")
async def get_insights(
    request: Request,
    agent_id: str,
    days: int = Query(default=30),
    _: None = Depends(verify_api_key),
) -> AgentInsights:
    """Question analytics of the agent over the last `days` days (clamped to 1..120)."""
    return await request.app.state.insight_service.get_agent_insights(agent_id, days=days)
