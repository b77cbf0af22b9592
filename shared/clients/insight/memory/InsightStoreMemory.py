import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from shared.clients.insight.InsightStoreInterface import InsightStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.insight import AmbiguityEvent, QuestionCluster, QuestionEvent, QuestionTopic

_ABSENT = object()


class InsightStoreMemory(InsightStoreInterface):
    """Process-local insight store.

    Good for a single API worker, the runners and tests. transaction()
    serialises writers of the same agent with a lock. Every save inside the
    block journals the prior value of the record it replaces, and only those
    records are restored if the block raises.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._topics: dict[str, QuestionTopic] = {}
        self._clusters: dict[str, QuestionCluster] = {}
        self._events: dict[str, QuestionEvent] = {}
        self._ambiguities: dict[str, AmbiguityEvent] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # agent_id -> {(table, record id): prior record or _ABSENT}
        self._journals: dict[str, dict[tuple[str, str], object]] = {}
        self._tables: dict[str, dict] = {
            "topics": self._topics,
            "clusters": self._clusters,
            "events": self._events,
            "ambiguities": self._ambiguities,
        }

    def _get_engine_name(self) -> str:
        return "Memory"

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def _lock_for(self, agent_id: str) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = self._locks[agent_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def transaction(self, agent_id: str) -> AsyncIterator[None]:
        async with self._lock_for(agent_id):
            journal: dict[tuple[str, str], object] = {}
            self._journals[agent_id] = journal
            try:
                yield
            except BaseException:
                self._undo(journal)
                self.logging.warning(
                    "Insight transaction for agent %s rolled back (%d records restored).", agent_id, len(journal)
                )
                raise
            finally:
                self._journals.pop(agent_id, None)

    def _put(self, table_name: str, agent_id: str, record_id: str, record) -> None:
        """Store a record, journaling the replaced value inside a transaction."""
        table = self._tables[table_name]
        journal = self._journals.get(agent_id)
        if journal is not None and (table_name, record_id) not in journal:
            # stored records are replaced, never mutated, so keeping the reference is enough
            journal[(table_name, record_id)] = table.get(record_id, _ABSENT)
        table[record_id] = record

    def _undo(self, journal: dict[tuple[str, str], object]) -> None:
        for (table_name, record_id), prior in journal.items():
            table = self._tables[table_name]
            if prior is _ABSENT:
                table.pop(record_id, None)
            else:
                table[record_id] = prior

    ##########################################
    ################ TOPICS ##################
    ##########################################

    async def get_topic(self, agent_id: str, normalized_key: str) -> QuestionTopic | None:
        for topic in self._topics.values():
            if topic.agent_id == agent_id and topic.normalized_key == normalized_key:
                return topic.model_copy(deep=True)
        return None

    async def save_topic(self, topic: QuestionTopic) -> QuestionTopic:
        self._put("topics", topic.agent_id, topic.id, topic.model_copy(deep=True))
        return topic

    async def list_topics(self, agent_id: str, since: datetime) -> list[QuestionTopic]:
        return [
            t.model_copy(deep=True)
            for t in self._topics.values()
            if t.agent_id == agent_id and t.last_asked_at >= since
        ]

    ##########################################
    ############### CLUSTERS #################
    ##########################################

    async def list_recent_clusters(self, agent_id: str, topic_id: str, limit: int) -> list[QuestionCluster]:
        clusters = [c for c in self._clusters.values() if c.agent_id == agent_id and c.topic_id == topic_id]
        clusters.sort(key=lambda c: c.last_asked_at, reverse=True)
        return [c.model_copy(deep=True) for c in clusters[:limit]]

    async def save_cluster(self, cluster: QuestionCluster) -> QuestionCluster:
        self._put("clusters", cluster.agent_id, cluster.id, cluster.model_copy(deep=True))
        return cluster

    async def list_clusters(self, agent_id: str, since: datetime) -> list[QuestionCluster]:
        return [
            c.model_copy(deep=True)
            for c in self._clusters.values()
            if c.agent_id == agent_id and c.last_asked_at >= since
        ]

    ##########################################
    ################ EVENTS ##################
    ##########################################

    async def get_question_event(self, event_id: str) -> QuestionEvent | None:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event else None

    async def save_question_event(self, event: QuestionEvent) -> QuestionEvent:
        self._put("events", event.agent_id, event.id, event.model_copy(deep=True))
        return event

    async def list_question_events(self, agent_id: str, since: datetime) -> list[QuestionEvent]:
        return [
            e.model_copy(deep=True)
            for e in self._events.values()
            if e.agent_id == agent_id and e.created_at >= since
        ]

    async def get_ambiguity_event(self, ambiguity_event_id: str) -> AmbiguityEvent | None:
        event = self._ambiguities.get(ambiguity_event_id)
        return event.model_copy(deep=True) if event else None

    async def save_ambiguity_event(self, event: AmbiguityEvent) -> AmbiguityEvent:
        self._put("ambiguities", event.agent_id, event.id, event.model_copy(deep=True))
        return event

    async def list_ambiguity_events(self, agent_id: str, since: datetime) -> list[AmbiguityEvent]:
        events = [a for a in self._ambiguities.values() if a.agent_id == agent_id and a.created_at >= since]
        events.sort(key=lambda a: a.created_at, reverse=True)
        return [a.model_copy(deep=True) for a in events]
