from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from shared.helper.HelperConfig import HelperConfig
from shared.models.insight import AmbiguityEvent, QuestionCluster, QuestionEvent, QuestionTopic


class InsightStoreInterface(ABC):
    """Persistence for question analytics: topics, clusters, events and ambiguity events.

    Natural keys: topics are unique per (agent_id, normalized_key). Every
    multi-step write of the recorder runs inside transaction(), so an engine
    must make the enclosed reads and writes atomic and isolated per agent.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the storage engine in lowercase. E.g. "memory"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Open connections or other resources. No-op by default."""
        return None

    async def close(self) -> None:
        """Release resources. No-op by default."""
        return None

    @abstractmethod
    def transaction(self, agent_id: str) -> AbstractAsyncContextManager[None]:
        """
        Unit of work for one agent. Writes inside the block are committed together
        when it exits normally and discarded when it raises.

        Args:
            agent_id (str): Agent whose records are written.
        """
        pass

    ##########################################
    ################ TOPICS ##################
    ##########################################

    @abstractmethod
    async def get_topic(self, agent_id: str, normalized_key: str) -> QuestionTopic | None:
        pass

    @abstractmethod
    async def save_topic(self, topic: QuestionTopic) -> QuestionTopic:
        """Insert or replace a topic by id."""
        pass

    @abstractmethod
    async def list_topics(self, agent_id: str, since: datetime) -> list[QuestionTopic]:
        """Topics of the agent asked about at or after `since`."""
        pass

    ##########################################
    ############### CLUSTERS #################
    ##########################################

    @abstractmethod
    async def list_recent_clusters(self, agent_id: str, topic_id: str, limit: int) -> list[QuestionCluster]:
        """The topic's clusters ordered by last_asked_at, newest first."""
        pass

    @abstractmethod
    async def save_cluster(self, cluster: QuestionCluster) -> QuestionCluster:
        """Insert or replace a cluster by id."""
        pass

    @abstractmethod
    async def list_clusters(self, agent_id: str, since: datetime) -> list[QuestionCluster]:
        pass

    ##########################################
    ################ EVENTS ##################
    ##########################################

    @abstractmethod
    async def get_question_event(self, event_id: str) -> QuestionEvent | None:
        pass

    @abstractmethod
    async def save_question_event(self, event: QuestionEvent) -> QuestionEvent:
        """Insert or replace a question event by id."""
        pass

    @abstractmethod
    async def list_question_events(self, agent_id: str, since: datetime) -> list[QuestionEvent]:
        pass

    @abstractmethod
    async def get_ambiguity_event(self, ambiguity_event_id: str) -> AmbiguityEvent | None:
        pass

    @abstractmethod
    async def save_ambiguity_event(self, event: AmbiguityEvent) -> AmbiguityEvent:
        """Insert or replace an ambiguity event by id."""
        pass

    @abstractmethod
    async def list_ambiguity_events(self, agent_id: str, since: datetime) -> list[AmbiguityEvent]:
        """Ambiguity events created at or after `since`, newest first."""
        pass
