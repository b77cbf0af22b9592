import asyncio
import math
from datetime import datetime, timezone

import pytest

from services.question_insights.QuestionInsightService import QuestionInsightService, derive_resolution
from shared.models.insight import RecordQuestionInput, Resolution, SourceAlternative

AGENT = "agent-1"
EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(helper_config, insight_store) -> QuestionInsightService:
    return QuestionInsightService(helper_config=helper_config, insight_store=insight_store)


def question(text: str, **kwargs) -> RecordQuestionInput:
    kwargs.setdefault("answer_text", "Respuesta.")
    kwargs.setdefault("mode", "grounded")
    kwargs.setdefault("confidence", 0.7)
    return RecordQuestionInput(agent_id=kwargs.pop("agent_id", AGENT), question_text=text, **kwargs)


def alternatives() -> list[SourceAlternative]:
    return [
        SourceAlternative(chunk_id="c1", document_id="d1", title="Politica A", summary="...", score=0.61),
        SourceAlternative(chunk_id="c2", document_id="d2", title="Politica B", summary="...", score=0.58),
    ]


@pytest.mark.parametrize(
    "mode, answer, expected",
    [
        ("grounded", "Se solicitan en el portal.", Resolution.ANSWERED),
        ("ambiguous", "¿Cual de estas fuentes?", Resolution.AMBIGUOUS),
        ("fallback", "No encuentro esa informacion.", Resolution.UNRESOLVED),
        ("grounded", "   ", Resolution.UNRESOLVED),
        (None, None, Resolution.UNRESOLVED),
        (None, "Texto", Resolution.ANSWERED),
    ],
)
def test_derive_resolution(mode, answer, expected):
    assert derive_resolution(mode, answer) == expected


class TestClustering:
    def test_similar_phrasings_share_a_cluster(self, service, insight_store):
        e1 = [1.0, 0.0]
        e2 = [0.9, math.sqrt(1 - 0.81)]  # cosine 0.9 with e1
        e3 = [0.0, 1.0]  # cosine ~0.44 with e2

        async def scenario():
            r1 = await service.record_question_event(question("¿qué es el phishing?", question_embedding=e1))
            r2 = await service.record_question_event(question("que es phishing", question_embedding=e2))
            r3 = await service.record_question_event(question("phishing", question_embedding=e3))
            topics = await insight_store.list_topics(AGENT, EPOCH)
            clusters = await insight_store.list_clusters(AGENT, EPOCH)
            return r1, r2, r3, topics, clusters

        r1, r2, r3, topics, clusters = asyncio.run(scenario())

        assert r1.topic_id == r2.topic_id == r3.topic_id
        assert r1.cluster_id == r2.cluster_id
        assert r3.cluster_id != r1.cluster_id
        assert len(topics) == 1
        assert topics[0].normalized_key == "phishing"
        assert topics[0].name == "Phishing"
        assert topics[0].question_count == 3
        by_id = {c.id: c for c in clusters}
        assert by_id[r1.cluster_id].question_count == 2
        assert by_id[r1.cluster_id].canonical_question == "¿qué es el phishing?"
        # the centroid follows the latest question
        assert by_id[r1.cluster_id].centroid_embedding == e2

    def test_same_normalized_text_without_embedding(self, service):
        async def scenario():
            first = await service.record_question_event(question("¿Cómo funciona la VPN?"))
            second = await service.record_question_event(question("como funciona la vpn"))
            return first, second

        first, second = asyncio.run(scenario())
        assert first.cluster_id == second.cluster_id

    def test_dimension_mismatch_creates_new_cluster(self, service):
        async def scenario():
            first = await service.record_question_event(question("¿la vpn?", question_embedding=[1.0, 0.0]))
            second = await service.record_question_event(question("vpn", question_embedding=[1.0, 0.0, 0.0]))
            return first, second

        first, second = asyncio.run(scenario())
        assert first.topic_id == second.topic_id
        assert first.cluster_id != second.cluster_id

    def test_agents_are_isolated(self, service, insight_store):
        async def scenario():
            await service.record_question_event(question("vacaciones", agent_id="agent-a"))
            await service.record_question_event(question("vacaciones", agent_id="agent-b"))
            return await insight_store.list_topics("agent-a", EPOCH)

        topics = asyncio.run(scenario())
        assert len(topics) == 1
        assert topics[0].question_count == 1

    def test_distinct_non_latin_questions_get_their_own_clusters(self, service):
        async def scenario():
            first = await service.record_question_event(question("Что такое VPN?", question_embedding=[1.0, 0.0]))
            second = await service.record_question_event(question("Как настроить VPN?", question_embedding=[0.0, 1.0]))
            return first, second

        first, second = asyncio.run(scenario())
        assert first.cluster_id != second.cluster_id

    def test_concurrent_records_do_not_double_count(self, service, insight_store):
        count = 12

        async def scenario():
            await asyncio.gather(*(
                service.record_question_event(question("¿Cómo pido vacaciones?" if i % 2 else "como pido vacaciones"))
                for i in range(count)
            ))
            return (
                await insight_store.list_topics(AGENT, EPOCH),
                await insight_store.list_clusters(AGENT, EPOCH),
                await insight_store.list_question_events(AGENT, EPOCH),
            )

        topics, clusters, events = asyncio.run(scenario())
        assert len(topics) == 1
        assert len(clusters) == 1
        assert topics[0].question_count == clusters[0].question_count == len(events) == count


class TestRecording:
    def test_counts_by_resolution(self, service, insight_store):
        async def scenario():
            await service.record_question_event(question("nominas", mode="grounded"))
            await service.record_question_event(question("nominas", mode="fallback"))
            await service.record_question_event(question("nominas", mode="ambiguous", alternatives=alternatives()))
            return await insight_store.list_topics(AGENT, EPOCH)

        (topic,) = asyncio.run(scenario())
        assert (topic.question_count, topic.answered_count, topic.unresolved_count, topic.ambiguous_count) == (3, 1, 1, 1)

    def test_cluster_keeps_last_known_values(self, service, insight_store):
        async def scenario():
            await service.record_question_event(question("horario oficina", answer_text="De 9 a 18.", confidence=0.8))
            await service.record_question_event(question("horario oficina", answer_text=None, mode=None, confidence=None))
            return await insight_store.list_clusters(AGENT, EPOCH)

        (cluster,) = asyncio.run(scenario())
        assert cluster.question_count == 2
        assert cluster.last_answer == "De 9 a 18."
        assert cluster.last_mode == "grounded"
        assert cluster.last_confidence == 0.8

    def test_event_fields(self, service, insight_store):
        async def scenario():
            result = await service.record_question_event(
                question("¿Dónde está el manual?", conversation_id="conv-1", user_id="user-1")
            )
            return result, await insight_store.get_question_event(result.event_id)

        result, event = asyncio.run(scenario())
        assert event.normalized_question == "donde esta el manual"
        assert event.has_answer is True
        assert event.resolution == Resolution.ANSWERED
        assert event.conversation_id == "conv-1"
        assert event.topic_id == result.topic_id
        assert result.ambiguity_event_id is None

    def test_ambiguous_answer_creates_ambiguity_event(self, service, insight_store):
        async def scenario():
            result = await service.record_question_event(
                question("politica de gastos", mode="ambiguous", alternatives=alternatives())
            )
            return result, await insight_store.get_ambiguity_event(result.ambiguity_event_id)

        result, ambiguity = asyncio.run(scenario())
        assert ambiguity.question_event_id == result.event_id
        assert [a.document_id for a in ambiguity.alternatives] == ["d1", "d2"]
        assert ambiguity.resolved_at is None

    def test_ambiguous_without_alternatives_has_no_ambiguity_event(self, service):
        result = asyncio.run(service.record_question_event(question("politica de gastos", mode="ambiguous")))
        assert result.ambiguity_event_id is None

    def test_failure_rolls_back_every_write(self, service, insight_store, monkeypatch):
        async def broken_save(event):
            raise RuntimeError("disk full")

        monkeypatch.setattr(insight_store, "save_question_event", broken_save)

        async def scenario():
            with pytest.raises(RuntimeError):
                await service.record_question_event(question("vacaciones"))
            return await insight_store.list_topics(AGENT, EPOCH), await insight_store.list_clusters(AGENT, EPOCH)

        topics, clusters = asyncio.run(scenario())
        assert topics == []
        assert clusters == []

    def test_rollback_after_long_history(self, service, insight_store, monkeypatch):
        embedding = [1.0] + [0.0] * 1535

        async def scenario():
            for _ in range(50):
                await service.record_question_event(question("nominas", question_embedding=embedding))
            await service.record_question_event(question("vacaciones"))

            async def broken_save(event):
                raise RuntimeError("disk full")

            monkeypatch.setattr(insight_store, "save_question_event", broken_save)
            with pytest.raises(RuntimeError):
                await service.record_question_event(question("nominas", question_embedding=embedding))
            with pytest.raises(RuntimeError):
                await service.record_question_event(question("contratos"))
            return (
                await insight_store.list_topics(AGENT, EPOCH),
                await insight_store.list_clusters(AGENT, EPOCH),
                await insight_store.list_question_events(AGENT, EPOCH),
            )

        topics, clusters, events = asyncio.run(scenario())
        assert sorted((t.normalized_key, t.question_count) for t in topics) == [("nominas", 50), ("vacaciones", 1)]
        assert sorted(c.question_count for c in clusters) == [1, 50]
        assert len(events) == 51

    def test_safe_recording_swallows_failures(self, service, insight_store, monkeypatch):
        async def broken_save(event):
            raise RuntimeError("disk full")

        monkeypatch.setattr(insight_store, "save_question_event", broken_save)

        assert asyncio.run(service.record_question_event_safely(question("vacaciones"))) is None


class TestAmbiguityResolution:
    def test_resolve_flips_question_to_answered(self, service, insight_store):
        async def scenario():
            result = await service.record_question_event(
                question("politica de gastos", mode="ambiguous", alternatives=alternatives())
            )
            resolved = await service.resolve_ambiguity_event(result.ambiguity_event_id, "d2")
            event = await insight_store.get_question_event(result.event_id)
            return resolved, event

        resolved, event = asyncio.run(scenario())
        assert resolved.selected_source_document_id == "d2"
        assert resolved.resolved_at is not None
        assert event.resolution == Resolution.ANSWERED
        assert event.selected_source_document_id == "d2"

    def test_unknown_event(self, service):
        with pytest.raises(LookupError):
            asyncio.run(service.resolve_ambiguity_event("missing", "d1"))

    def test_event_of_another_agent(self, service):
        async def scenario():
            result = await service.record_question_event(
                question("politica de gastos", mode="ambiguous", alternatives=alternatives())
            )
            await service.resolve_ambiguity_event(result.ambiguity_event_id, "d1", agent_id="other-agent")

        with pytest.raises(LookupError):
            asyncio.run(scenario())


class TestAgentInsights:
    def test_report(self, service):
        async def scenario():
            for _ in range(3):
                await service.record_question_event(question("¿Cómo pido vacaciones?"))
            await service.record_question_event(question("¿Quién firma los contratos?", mode="fallback"))
            first = await service.record_question_event(
                question("politica de gastos", mode="ambiguous", alternatives=alternatives())
            )
            await service.record_question_event(
                question("Politica de gastos ", mode="ambiguous", alternatives=alternatives())
            )
            await service.resolve_ambiguity_event(first.ambiguity_event_id, "d1")
            return await service.get_agent_insights(AGENT)

        report = asyncio.run(scenario())

        # the resolved ambiguous question now counts as answered
        assert report.summary.total_questions == 6
        assert report.summary.total_answered == 4
        assert report.summary.total_unresolved == 1
        assert report.summary.total_ambiguous == 1

        assert report.top_answered[0].canonical_question == "¿Cómo pido vacaciones?"
        assert report.top_answered[0].answered_count == 3
        assert [c.canonical_question for c in report.top_unresolved] == ["¿Quién firma los contratos?"]
        assert report.top_topics[0].question_count == 3

        (group,) = report.top_ambiguous
        assert group.count == 2
        assert group.resolved_count == 1
        assert len(report.unresolved_ambiguities) == 1

    def test_empty_report(self, service):
        report = asyncio.run(service.get_agent_insights("nobody", days=0))

        assert report.summary.total_questions == 0
        assert report.top_topics == []
