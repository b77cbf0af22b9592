"""FastAPI application entry point for the knowledge agent core."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.helper.settings_loader import load_agent_settings
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.insight.InsightStoreManager import InsightStoreManager
from services.agent_ingestion.IngestionService import IngestionService
from services.question_insights.QuestionInsightService import QuestionInsightService
from server.core.AnswerService import AnswerService
from server.routers.SourceRouter import router as source_router
from server.routers.EvidenceRouter import router as evidence_router
from server.routers.InsightRouter import router as insight_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    # fails fast on a missing key or an unknown provider
    settings = load_agent_settings(app.state.helper_config)
    embed_client = EmbedClientManager(helper_config=app.state.helper_config, settings=settings.embedding).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    insight_store = InsightStoreManager(helper_config=app.state.helper_config).get_store()

    logging.info("Booting all clients...")
    for client in [embed_client, rag_client, insight_store]:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.settings = settings
    app.state.embed_client = embed_client
    app.state.rag_client = rag_client
    app.state.insight_store = insight_store

    app.state.ingestion_service = IngestionService(
        helper_config=app.state.helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
        settings=settings.chunking,
    )
    app.state.answer_service = AnswerService(
        helper_config=app.state.helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
        settings=settings,
    )
    app.state.insight_service = QuestionInsightService(
        helper_config=app.state.helper_config,
        insight_store=insight_store,
        settings=settings.insight,
    )

    await check_connections(rag_client, embed_client)
    await app.state.ingestion_service.do_ensure_collection()

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, rag_client, insight_store]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="knowledge_agent_core",
    description=(
        "Retrieval core of a company knowledge agent. Source documents are chunked, "
        "embedded and indexed per agent; POST /agents/{agent_id}/evidence ranks them "
        "against a question and decides whether to answer grounded, ask the user to "
        "pick a source, or fall back. Question outcomes feed per-agent analytics."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(source_router)
app.include_router(evidence_router)
app.include_router(insight_router)


async def check_connections(rag_client: RAGClientInterface, embed_client: EmbedClientInterface) -> None:
    """Check connectivity to the configured backends on startup.

    Both are fatal: evidence cannot be selected without the vector store or
    the embedding provider.

    Raises:
        Exception: If a backend is not reachable.
    """
    result: httpx.Response = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot serve queries."
        )

    result = await embed_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"Embed client '{embed_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Ingestion and retrieval will not work."
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting knowledge_agent_core API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
