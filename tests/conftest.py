import json
import logging
import os

# keep test runs from writing logs/app.log; must be set before server.api_server is imported
os.environ.setdefault("LOG_TO_FILE", "false")

import httpx
import pytest

from shared.clients.embed.mock.EmbedClientMock import EmbedClientMock
from shared.clients.insight.memory.InsightStoreMemory import InsightStoreMemory
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EmbeddingSettings


class FakeQdrantServer:
    """Just enough of the Qdrant REST API for the chunk collection, kept in memory."""

    def __init__(self, collection: str = "agent_chunks"):
        self.collection = collection
        self.exists = False
        self.vector_size: int | None = None
        self.points: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _matches(payload: dict, conditions: list[dict]) -> bool:
        return all(payload.get(c["key"]) == c["match"]["value"] for c in conditions)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        base = f"/collections/{self.collection}"
        body = json.loads(request.content) if request.content else {}

        if path == "/healthz":
            return httpx.Response(200, text="healthz check passed")
        if path == f"{base}/exists":
            return httpx.Response(200, json={"result": {"exists": self.exists}, "status": "ok"})
        if path == base and request.method == "PUT":
            self.exists = True
            self.vector_size = body["vectors"]["size"]
            return httpx.Response(200, json={"result": True, "status": "ok"})
        if path == f"{base}/points" and request.method == "PUT":
            for point in body["points"]:
                self.points[str(point["id"])] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if path == f"{base}/points/delete":
            conditions = body["filter"]["must"]
            for point_id in [pid for pid, p in self.points.items() if self._matches(p["payload"], conditions)]:
                del self.points[point_id]
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if path == f"{base}/points/scroll":
            conditions = body["filter"]["must"]
            matching = [p for p in self.points.values() if self._matches(p["payload"], conditions)]
            start = int(body.get("offset") or 0)
            limit = body.get("limit") or 10
            page = matching[start: start + limit]
            next_offset = start + limit if start + limit < len(matching) else None
            result = [
                {
                    "id": p["id"],
                    "payload": p["payload"] if body.get("with_payload") else None,
                    "vector": p["vector"] if body.get("with_vector") else None,
                }
                for p in page
            ]
            return httpx.Response(200, json={"result": {"points": result, "next_page_offset": next_offset}, "status": "ok"})
        return httpx.Response(404, json={"status": {"error": f"unknown path {path}"}})


class MockTransportQdrant(RAGClientQdrant):
    """Qdrant client whose HTTP traffic goes to a FakeQdrantServer."""

    server: FakeQdrantServer

    def _build_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.server.handler), timeout=self.timeout)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("knowledge_agent.tests"))


@pytest.fixture
def embed_client(helper_config) -> EmbedClientMock:
    return EmbedClientMock(helper_config=helper_config, settings=EmbeddingSettings(provider="mock"))


@pytest.fixture
def qdrant_server() -> FakeQdrantServer:
    return FakeQdrantServer()


@pytest.fixture
def rag_client(helper_config, qdrant_server, monkeypatch) -> MockTransportQdrant:
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test:6333")
    client = MockTransportQdrant(helper_config=helper_config)
    client.server = qdrant_server
    return client


@pytest.fixture
def insight_store(helper_config) -> InsightStoreMemory:
    return InsightStoreMemory(helper_config=helper_config)
