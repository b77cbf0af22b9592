from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import IngestSourceRequest
from server.models.responses import DeleteSourceResponse
from server.routers.errors import EMBEDDING_ERRORS, embedding_http_error
from services.agent_ingestion.IngestionService import IngestResult

router = APIRouter(prefix="/agents/{agent_id}/sources", tags=["sources"])


@router.post("")
async def ingest_source(
    request: Request,
    agent_id: str,
    body: IngestSourceRequest,
    _: None = Depends(verify_api_key),
) -> IngestResult:
    """Index (or re-index) one source document of an agent.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        agent_id (str): Owner agent.
        body (IngestSourceRequest): Document ID, title, extracted text and file path.
        _ (None): Auth dependency result (unused).

    Returns:
        IngestResult: Number of chunks indexed and the embedding tags used.
    """
    ingestion_service = request.app.state.ingestion_service
    try:
        return await ingestion_service.do_ingest_source(
            agent_id=agent_id,
            document_id=body.document_id,
            title=body.title,
            raw_text=body.text,
            file_path=body.file_path,
        )
    except EMBEDDING_ERRORS as exc:
        raise embedding_http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.delete("/{document_id}")
async def delete_source(
    request: Request,
    agent_id: str,
    document_id: str,
    _: None = Depends(verify_api_key),
) -> DeleteSourceResponse:
    """Remove every indexed chunk of one source document."""
    await request.app.state.ingestion_service.do_delete_source(agent_id, document_id)
    return DeleteSourceResponse(agent_id=agent_id, document_id=document_id)
