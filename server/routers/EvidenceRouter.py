from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import EvidenceRequest
from server.models.responses import EvidenceResponse
from server.routers.errors import EMBEDDING_ERRORS, embedding_http_error

router = APIRouter(prefix="/agents/{agent_id}/evidence", tags=["evidence"])


@router.post("")
async def select_evidence(
    request: Request,
    agent_id: str,
    body: EvidenceRequest,
    _: None = Depends(verify_api_key),
) -> EvidenceResponse:
    """Rank the agent's chunks for a question and decide how to answer.

    Args:
        request (Request): FastAPI request (provides app.state.answer_service).
        agent_id (str): Agent whose documents are searched.
        body (EvidenceRequest): Question, optional image context and top_k.
        _ (None): Auth dependency result (unused).

    Returns:
        EvidenceResponse: Mode, confidence, citations and alternatives.
    """
    answer_service = request.app.state.answer_service
    try:
        return await answer_service.build_evidence(
            agent_id=agent_id,
            question=body.question,
            image_context=body.image_context,
            top_k=body.top_k,
        )
    except EMBEDDING_ERRORS as exc:
        raise embedding_http_error(exc)
