"""Question insight recording.

Logs every question/answer outcome and keeps rollups for product analytics:
topics (coarse keyword buckets), clusters (near-duplicate questions) and
ambiguity events (moments where the user had to pick a source).
"""

from datetime import datetime, timedelta, timezone

from services.question_insights.question_topics import derive_topic, normalize_question, tokenize_for_topic
from shared.clients.insight.InsightStoreInterface import InsightStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import InsightSettings
from shared.models.evidence import AnswerMode
from shared.models.insight import (
    AgentInsights,
    AmbiguityEvent,
    AmbiguityGroup,
    InsightSummary,
    QuestionCluster,
    QuestionEvent,
    QuestionTopic,
    RecordQuestionInput,
    RecordQuestionResult,
    Resolution,
)
from shared.retrieval.similarity import cosine_similarity

DEFAULT_INSIGHT_DAYS = 30
MAX_INSIGHT_DAYS = 120
TOP_LIST_SIZE = 12
AMBIGUITY_SCAN_LIMIT = 200
UNRESOLVED_AMBIGUITY_LIMIT = 20


def derive_resolution(mode: str | None, answer_text: str | None) -> Resolution:
    if mode == AnswerMode.AMBIGUOUS.value:
        return Resolution.AMBIGUOUS
    if mode == AnswerMode.FALLBACK.value:
        return Resolution.UNRESOLVED
    if answer_text and answer_text.strip():
        return Resolution.ANSWERED
    return Resolution.UNRESOLVED


def _bump_counts(record: QuestionTopic | QuestionCluster, resolution: Resolution) -> None:
    record.question_count += 1
    if resolution == Resolution.ANSWERED:
        record.answered_count += 1
    elif resolution == Resolution.UNRESOLVED:
        record.unresolved_count += 1
    else:
        record.ambiguous_count += 1


class QuestionInsightService:
    """Records question outcomes into the insight store and reports on them."""

    def __init__(
        self,
        helper_config: HelperConfig,
        insight_store: InsightStoreInterface,
        settings: InsightSettings | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = insight_store
        self.settings = settings or InsightSettings()

    ##########################################
    ############### RECORDING ################
    ##########################################

    async def record_question_event(self, data: RecordQuestionInput) -> RecordQuestionResult:
        """Record one question and update its topic and cluster rollups.

        Topic upsert, cluster lookup-or-create, event insert, cluster update and
        the optional ambiguity insert run in one store transaction, so a failure
        leaves no partial counts behind.

        Args:
            data (RecordQuestionInput): Question, outcome and optional embedding.

        Returns:
            RecordQuestionResult: IDs of the event, its topic and cluster, and the
                                  ambiguity event when one was created.
        """
        normalized = normalize_question(data.question_text)
        topic_key, topic_label = derive_topic(tokenize_for_topic(data.question_text))
        resolution = derive_resolution(data.mode, data.answer_text)
        has_answer = bool(data.answer_text and data.answer_text.strip())
        now = datetime.now(timezone.utc)

        async with self._store.transaction(data.agent_id):
            topic = await self._upsert_topic(data.agent_id, topic_key, topic_label, resolution, now)
            cluster = await self._find_or_create_cluster(data, topic, normalized)

            event = QuestionEvent(
                agent_id=data.agent_id,
                topic_id=topic.id,
                cluster_id=cluster.id,
                conversation_id=data.conversation_id,
                user_id=data.user_id,
                question_text=data.question_text,
                normalized_question=normalized,
                question_embedding=data.question_embedding,
                answer_text=data.answer_text,
                mode=data.mode,
                confidence=data.confidence,
                has_answer=has_answer,
                resolution=resolution,
                image_metadata=data.image_metadata,
                citations_snapshot=data.citations_snapshot,
                selected_source_document_id=data.selected_source_document_id,
                created_at=now,
            )
            await self._store.save_question_event(event)

            _bump_counts(cluster, resolution)
            if data.answer_text:
                cluster.last_answer = data.answer_text
            if data.mode:
                cluster.last_mode = data.mode
            if data.confidence is not None:
                cluster.last_confidence = data.confidence
            cluster.last_asked_at = now
            if data.question_embedding:
                # latest question wins; the centroid is not averaged
                cluster.centroid_embedding = list(data.question_embedding)
            await self._store.save_cluster(cluster)

            ambiguity_event_id = None
            if data.mode == AnswerMode.AMBIGUOUS.value and data.alternatives:
                ambiguity = AmbiguityEvent(
                    agent_id=data.agent_id,
                    conversation_id=data.conversation_id,
                    question_event_id=event.id,
                    question_text=data.question_text,
                    alternatives=data.alternatives,
                    created_at=now,
                )
                await self._store.save_ambiguity_event(ambiguity)
                ambiguity_event_id = ambiguity.id

        self.logging.info(
            "Recorded question for agent %s: topic=%s cluster=%s resolution=%s",
            data.agent_id, topic.normalized_key, cluster.id, resolution.value,
        )
        return RecordQuestionResult(
            event_id=event.id,
            topic_id=topic.id,
            cluster_id=cluster.id,
            ambiguity_event_id=ambiguity_event_id,
        )

    async def record_question_event_safely(self, data: RecordQuestionInput) -> RecordQuestionResult | None:
        """Best-effort variant for the answer path: never raises.

        Returns:
            RecordQuestionResult | None: The result, or None if recording failed.
        """
        try:
            return await self.record_question_event(data)
        except Exception as exc:
            self.logging.error("Recording question insight failed for agent %s: %s", data.agent_id, exc)
            return None

    async def resolve_ambiguity_event(
        self,
        ambiguity_event_id: str,
        selected_source_document_id: str,
        agent_id: str | None = None,
    ) -> AmbiguityEvent:
        """Store the source the user picked for an ambiguous answer.

        Marks the ambiguity event resolved and flips its originating question
        event to ANSWERED with the chosen source.

        Raises:
            LookupError: If the ambiguity event does not exist, or belongs to
                         another agent when agent_id is given.
        """
        existing = await self._store.get_ambiguity_event(ambiguity_event_id)
        if existing is None or (agent_id is not None and existing.agent_id != agent_id):
            raise LookupError(f"Ambiguity event '{ambiguity_event_id}' not found.")

        async with self._store.transaction(existing.agent_id):
            ambiguity = await self._store.get_ambiguity_event(ambiguity_event_id)
            ambiguity.selected_source_document_id = selected_source_document_id
            ambiguity.resolved_at = datetime.now(timezone.utc)
            await self._store.save_ambiguity_event(ambiguity)

            if ambiguity.question_event_id:
                event = await self._store.get_question_event(ambiguity.question_event_id)
                if event is not None:
                    event.selected_source_document_id = selected_source_document_id
                    event.resolution = Resolution.ANSWERED
                    await self._store.save_question_event(event)
                else:
                    self.logging.warning(
                        "Ambiguity event %s points to missing question event %s.",
                        ambiguity_event_id, ambiguity.question_event_id,
                    )

        self.logging.info("Ambiguity event %s resolved with source %s", ambiguity_event_id, selected_source_document_id)
        return ambiguity

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _upsert_topic(
        self,
        agent_id: str,
        topic_key: str,
        topic_label: str,
        resolution: Resolution,
        now: datetime,
    ) -> QuestionTopic:
        topic = await self._store.get_topic(agent_id, topic_key)
        if topic is None:
            topic = QuestionTopic(agent_id=agent_id, normalized_key=topic_key, name=topic_label)
        topic.name = topic_label
        topic.last_asked_at = now
        _bump_counts(topic, resolution)
        return await self._store.save_topic(topic)

    async def _find_or_create_cluster(
        self,
        data: RecordQuestionInput,
        topic: QuestionTopic,
        normalized: str,
    ) -> QuestionCluster:
        """Exact normalized match first, then nearest centroid, else a new cluster."""
        candidates = await self._store.list_recent_clusters(
            data.agent_id, topic.id, self.settings.cluster_candidate_window
        )
        for cluster in candidates:
            if cluster.normalized_question_key == normalized:
                return cluster

        if data.question_embedding:
            best: QuestionCluster | None = None
            best_score = -1.0
            for cluster in candidates:
                centroid = cluster.centroid_embedding
                if not centroid or len(centroid) != len(data.question_embedding):
                    continue
                score = cosine_similarity(data.question_embedding, centroid)
                if score > best_score:
                    best, best_score = cluster, score
            if best is not None and best_score >= self.settings.cluster_similarity_threshold:
                self.logging.debug("Question joins cluster %s (similarity %.3f)", best.id, best_score)
                return best

        cluster = QuestionCluster(
            agent_id=data.agent_id,
            topic_id=topic.id,
            canonical_question=data.question_text,
            normalized_question_key=normalized,
            centroid_embedding=list(data.question_embedding) if data.question_embedding else None,
        )
        return await self._store.save_cluster(cluster)

    ##########################################
    ############### REPORTING ################
    ##########################################

    async def get_agent_insights(self, agent_id: str, days: int = DEFAULT_INSIGHT_DAYS) -> AgentInsights:
        """Analytics report for one agent over the last `days` days (clamped to 1..120).

        Returns:
            AgentInsights: Totals by resolution, top answered/unresolved clusters,
                           top topics, grouped ambiguities and open ambiguity events.
        """
        days = min(MAX_INSIGHT_DAYS, max(1, days or DEFAULT_INSIGHT_DAYS))
        since = datetime.now(timezone.utc) - timedelta(days=days)

        events = await self._store.list_question_events(agent_id, since)
        clusters = await self._store.list_clusters(agent_id, since)
        topics = await self._store.list_topics(agent_id, since)
        ambiguities = await self._store.list_ambiguity_events(agent_id, since)

        summary = InsightSummary(
            total_questions=len(events),
            total_answered=sum(1 for e in events if e.resolution == Resolution.ANSWERED),
            total_unresolved=sum(1 for e in events if e.resolution == Resolution.UNRESOLVED),
            total_ambiguous=sum(1 for e in events if e.resolution == Resolution.AMBIGUOUS),
        )

        top_answered = sorted(
            (c for c in clusters if c.answered_count > 0),
            key=lambda c: (c.answered_count, c.question_count),
            reverse=True,
        )[:TOP_LIST_SIZE]
        top_unresolved = sorted(
            (c for c in clusters if c.unresolved_count > 0),
            key=lambda c: (c.unresolved_count, c.question_count),
            reverse=True,
        )[:TOP_LIST_SIZE]
        top_topics = sorted(topics, key=lambda t: t.question_count, reverse=True)[:TOP_LIST_SIZE]

        return AgentInsights(
            summary=summary,
            top_answered=top_answered,
            top_unresolved=top_unresolved,
            top_ambiguous=self._group_ambiguities(ambiguities[:AMBIGUITY_SCAN_LIMIT]),
            top_topics=top_topics,
            unresolved_ambiguities=[a for a in ambiguities if a.resolved_at is None][:UNRESOLVED_AMBIGUITY_LIMIT],
        )

    def _group_ambiguities(self, ambiguities: list[AmbiguityEvent]) -> list[AmbiguityGroup]:
        """Group ambiguity events by trimmed, lowercased question text, most frequent first."""
        groups: dict[str, AmbiguityGroup] = {}
        for event in ambiguities:
            key = event.question_text.strip().lower()
            group = groups.get(key)
            if group is None:
                groups[key] = AmbiguityGroup(
                    question_text=event.question_text,
                    count=1,
                    resolved_count=1 if event.resolved_at else 0,
                    last_created_at=event.created_at,
                )
                continue
            group.count += 1
            if event.resolved_at:
                group.resolved_count += 1
            if event.created_at > group.last_created_at:
                group.last_created_at = event.created_at
        return sorted(groups.values(), key=lambda g: g.count, reverse=True)[:TOP_LIST_SIZE]
