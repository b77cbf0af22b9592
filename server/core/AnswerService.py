from pydantic import ValidationError

from server.models.responses import Citation, EvidenceResponse
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.ChunkPoint import point_to_candidate
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import CandidateChunk
from shared.models.config import AgentSettings
from shared.models.evidence import AnswerMode, EvidenceDecision
from shared.models.insight import SourceAlternative
from shared.retrieval.EvidenceDecider import EvidenceDecider
from shared.retrieval.HybridRanker import HybridRanker

EXCERPT_LENGTH = 240
SUMMARY_LENGTH = 260
SCORE_DECIMALS = 4


class AnswerService:
    """Selects the evidence for a question: embed -> load agent chunks -> rank -> decide."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        settings: AgentSettings | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        settings = settings or AgentSettings()
        self._ranker = HybridRanker(settings.ranker)
        self._decider = EvidenceDecider(settings.decider)

    ##########################################
    ############### CHUNKS ###################
    ##########################################

    async def load_agent_chunks(self, agent_id: str) -> list[CandidateChunk]:
        """Load every stored chunk of one agent, with its vectors.

        Points whose payload or vector fail validation are logged and skipped,
        so one corrupt point cannot break answering for the whole agent.
        """
        scroll_result = await self._rag_client.do_scroll_all(
            filters=[self._rag_client.get_match_filter("agent_id", agent_id)],
            with_payload=True,
            with_vector=True,
        )
        candidates: list[CandidateChunk] = []
        for point in scroll_result.result:
            try:
                candidates.append(point_to_candidate(point))
            except ValidationError as exc:
                self.logging.warning("Skipping invalid chunk point %s of agent %s: %s", point.get("id"), agent_id, exc)
        self.logging.debug("Loaded %d candidate chunks for agent %s.", len(candidates), agent_id)
        return candidates

    ##########################################
    ############### CORE #####################
    ##########################################

    async def build_evidence(
        self,
        agent_id: str,
        question: str,
        image_context: str | None = None,
        top_k: int | None = None,
    ) -> EvidenceResponse:
        """Rank the agent's chunks against a question and decide the answer mode.

        Args:
            agent_id (str): Agent whose documents are searched.
            question (str): The user's question.
            image_context (str | None): Text extracted from an attached image, if any.
            top_k (int | None): Max ranked chunks; defaults to the configured top_k.

        Returns:
            EvidenceResponse: Mode, confidence, citations, alternatives and the query embedding.

        Raises:
            EmbeddingConfigurationError | EmbeddingProviderError: If the query cannot be embedded.
        """
        has_image_context = bool(image_context and image_context.strip())
        retrieval_query = f"{question}\n{image_context}" if has_image_context else question

        embedding = await self._embed_client.embed_single_text(retrieval_query)
        chunks = await self.load_agent_chunks(agent_id)

        if not chunks:
            self.logging.warning("Agent %s has no indexed chunks. Answering in fallback mode.", agent_id)
            decision = EvidenceDecision(mode=AnswerMode.FALLBACK, confidence=0.0, has_image_context=has_image_context)
        else:
            ranked = self._ranker.rank(retrieval_query, embedding.vector, chunks, top_k=top_k)
            decision = self._decider.decide(ranked, has_image_context=has_image_context)

        file_paths = {chunk.id: chunk.file_path for chunk in chunks}
        citations = [
            Citation(
                chunk_id=chunk.id,
                document_id=chunk.document_id,
                title=chunk.document_title,
                excerpt=chunk.content[:EXCERPT_LENGTH],
                score=round(chunk.score, SCORE_DECIMALS),
                file_url=file_paths.get(chunk.id),
            )
            for chunk in decision.selected
        ]

        alternatives: list[SourceAlternative] = []
        if decision.mode == AnswerMode.AMBIGUOUS:
            alternatives = [
                SourceAlternative(
                    chunk_id=chunk.id,
                    document_id=chunk.document_id,
                    title=chunk.document_title,
                    summary=chunk.content[:SUMMARY_LENGTH],
                    score=round(chunk.score, SCORE_DECIMALS),
                )
                for chunk in decision.selected
            ]

        self.logging.info(
            "Evidence for agent %s: mode=%s confidence=%.4f selected=%d",
            agent_id, decision.mode.value, decision.confidence, len(decision.selected),
        )
        return EvidenceResponse(
            agent_id=agent_id,
            question=question,
            retrieval_query=retrieval_query,
            mode=decision.mode,
            confidence=round(decision.confidence, SCORE_DECIMALS),
            has_image_context=has_image_context,
            citations=citations,
            alternatives=alternatives,
            requires_source_selection=decision.mode == AnswerMode.AMBIGUOUS,
            query_embedding=embedding.vector,
            embedding_provider=embedding.provider,
            embedding_model=embedding.model,
        )
