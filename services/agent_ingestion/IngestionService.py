"""Source ingestion service.

Splits a document's extracted text into chunks, embeds them in one batch,
computes their lexical vectors and replaces the document's points in the RAG
backend. Also deletes sources and refreshes lexical vectors of stored chunks.
"""

from pydantic import BaseModel, ValidationError

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.ChunkPoint import ChunkPoint, build_point
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import ChunkingSettings
from shared.retrieval.chunking import split_into_chunks
from shared.retrieval.lexical import build_lexical_vector

UPSERT_BATCH_SIZE = 100 # max points per upsert call


class IngestResult(BaseModel):
    agent_id: str
    document_id: str
    chunk_count: int
    embedding_provider: str
    embedding_model: str


class ReindexResult(BaseModel):
    updated: int = 0
    skipped: int = 0


class IngestionService:
    """Keeps an agent's chunk points in the RAG backend in line with its sources."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface | None = None,
        settings: ChunkingSettings | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self.settings = settings or ChunkingSettings()

    ##########################################
    ############## COLLECTION ################
    ##########################################

    async def do_ensure_collection(self) -> bool:
        """Create the chunk collection if missing, sized for the configured embedding model.

        Returns:
            bool: True if the collection was created, False if it already existed.
        """
        if await self._rag_client.do_existence_check():
            return False
        if self._embed_client is None:
            raise RuntimeError("Cannot size a new collection without an embed client.")

        probe = await self._embed_client.embed_single_text("dimension probe")
        await self._rag_client.do_create_collection(vector_size=len(probe.vector))
        self.logging.info(
            "Created RAG collection on %s with %d dimensions (%s/%s).",
            self._rag_client.get_engine_name(), len(probe.vector), probe.provider, probe.model,
        )
        return True

    ##########################################
    ############### INGESTION ################
    ##########################################

    async def do_ingest_source(
        self,
        agent_id: str,
        document_id: str,
        title: str,
        raw_text: str,
        file_path: str | None = None,
    ) -> IngestResult:
        """Index (or re-index) one source document of an agent.

        Args:
            agent_id (str): Owner agent, stored on every point.
            document_id (str): Source document ID.
            title (str): Human-readable document title.
            raw_text (str): Extracted text of the document.
            file_path (str | None): Locator of the original file.

        Returns:
            IngestResult: Number of chunks written and the embedding tags used.

        Raises:
            ValueError: If the text produces no chunks.
            EmbeddingConfigurationError | EmbeddingProviderError: If embedding fails.
        """
        if self._embed_client is None:
            raise RuntimeError("IngestionService was created without an embed client.")

        chunks = split_into_chunks(raw_text, chunk_size=self.settings.chunk_size, overlap=self.settings.overlap)
        if not chunks:
            raise ValueError(f"Document '{document_id}' produced no chunks; nothing to index.")

        # one request for all chunks of this document
        embeddings = await self._embed_client.embed_texts([chunk.content for chunk in chunks])

        points: list[dict] = []
        for chunk, vector in zip(chunks, embeddings.vectors):
            payload = ChunkPoint(
                agent_id=agent_id,
                document_id=document_id,
                document_title=title,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                token_count=chunk.token_count,
                lexical_vector=build_lexical_vector(chunk.content),
                embedding_provider=embeddings.provider,
                embedding_model=embeddings.model,
                file_path=file_path,
            )
            points.append(build_point(payload, vector))

        # a shorter re-index must not leave chunks of the old version behind
        await self.do_delete_source(agent_id, document_id)

        for batch_start in range(0, len(points), UPSERT_BATCH_SIZE):
            await self._rag_client.do_upsert_points(points[batch_start: batch_start + UPSERT_BATCH_SIZE])

        self.logging.info(
            "Indexed document '%s' ('%s') for agent %s: %d chunks (%s/%s).",
            document_id, title, agent_id, len(points), embeddings.provider, embeddings.model,
        )
        return IngestResult(
            agent_id=agent_id,
            document_id=document_id,
            chunk_count=len(points),
            embedding_provider=embeddings.provider,
            embedding_model=embeddings.model,
        )

    async def do_delete_source(self, agent_id: str, document_id: str) -> None:
        """Remove every chunk point of one source document of an agent."""
        await self._rag_client.do_delete_points([
            self._rag_client.get_match_filter("agent_id", agent_id),
            self._rag_client.get_match_filter("document_id", document_id),
        ])
        self.logging.debug("Deleted chunks of document '%s' for agent %s.", document_id, agent_id)

    ##########################################
    ############ LEXICAL REINDEX #############
    ##########################################

    async def do_reindex_lexical(self, agent_id: str | None = None) -> ReindexResult:
        """Recompute the lexical vector of stored chunks without re-embedding them.

        Args:
            agent_id (str | None): Limit the pass to one agent; None for all agents.

        Returns:
            ReindexResult: Counts of updated and skipped points.
        """
        filters = [self._rag_client.get_match_filter("agent_id", agent_id)] if agent_id else []
        scroll = await self._rag_client.do_scroll_all(filters=filters, with_payload=True, with_vector=True)

        result = ReindexResult()
        batch: list[dict] = []
        for point in scroll.result:
            try:
                payload = ChunkPoint.model_validate(point.get("payload") or {})
            except ValidationError as exc:
                self.logging.warning("Skipping point %s with invalid payload: %s", point.get("id"), exc)
                result.skipped += 1
                continue
            if not point.get("vector"):
                self.logging.warning("Skipping point %s without a stored vector.", point.get("id"))
                result.skipped += 1
                continue

            payload.lexical_vector = build_lexical_vector(payload.content)
            batch.append({"id": point.get("id"), "vector": point["vector"], "payload": payload.model_dump()})
            if len(batch) >= UPSERT_BATCH_SIZE:
                await self._rag_client.do_upsert_points(batch)
                result.updated += len(batch)
                batch = []

        if batch:
            await self._rag_client.do_upsert_points(batch)
            result.updated += len(batch)

        self.logging.info(
            "Lexical reindex done%s: %d updated, %d skipped.",
            f" for agent {agent_id}" if agent_id else "", result.updated, result.skipped,
        )
        return result
