import json
from datetime import datetime, timedelta, timezone
from itertools import count

import httpx
import pytest

from skincheck.clients.leancloud import LeanCloudClient
from skincheck.repositories.evaluation_repository import EvaluationRepository
from skincheck.services.evaluation_feed import EvaluationFeed

SERVER_URL = "https://api.leancloud.cn"
CLASS_PATH = "/1.1/classes/Evaluation"


class FakeLeanCloud:
    """In-memory stand-in for the Evaluation class behind LeanCloud REST."""

    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_reads = False
        self.fail_writes = False
        self._ids = count(1)
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _next_created_at(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    def insert(self, **fields) -> str:
        object_id = fields.pop("objectId", None) or f"eval-{next(self._ids)}"
        document = {"objectId": object_id, "createdAt": self._next_created_at(), **fields}
        self.documents[object_id] = document
        return object_id

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path == CLASS_PATH:
            if self.fail_reads:
                return httpx.Response(503, json={"error": "unavailable"})
            ordered = sorted(
                self.documents.values(), key=lambda doc: doc["createdAt"], reverse=True
            )
            skip = int(request.url.params.get("skip", 0))
            limit = int(request.url.params.get("limit", 100))
            return httpx.Response(200, json={"results": ordered[skip : skip + limit]})
        if request.method == "POST" and path == CLASS_PATH:
            if self.fail_writes:
                return httpx.Response(400, json={"code": 1, "error": "rejected"})
            payload = json.loads(request.content.decode() or "{}")
            object_id = self.insert(**payload)
            document = self.documents[object_id]
            return httpx.Response(
                201, json={"objectId": object_id, "createdAt": document["createdAt"]}
            )
        if request.method == "DELETE" and path.startswith(f"{CLASS_PATH}/"):
            if self.fail_writes:
                return httpx.Response(400, json={"code": 1, "error": "rejected"})
            object_id = path.rsplit("/", 1)[-1]
            if object_id not in self.documents:
                return httpx.Response(
                    404, json={"code": 101, "error": "Object not found."}
                )
            del self.documents[object_id]
            return httpx.Response(200, json={})
        return httpx.Response(404, json={"code": 101, "error": "not found"})


@pytest.fixture(autouse=True)
def _set_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LEAN_APP_ID", "app")
    monkeypatch.setenv("LEAN_APP_KEY", "key")
    monkeypatch.setenv("LEAN_MASTER_KEY", "master")
    monkeypatch.setenv("LEAN_SERVER_URL", SERVER_URL)
    monkeypatch.setenv("APP_ACCESS_KEY", "ward-secret")
    monkeypatch.setenv("APP_TIMEZONE", "UTC")
    monkeypatch.setenv("ASSESSOR_STORE_PATH", str(tmp_path / "assessors.json"))


@pytest.fixture
def fake_store():
    return FakeLeanCloud()


@pytest.fixture
async def leancloud_client(fake_store):
    client = LeanCloudClient(
        app_id="app",
        app_key="key",
        master_key="master",
        server_url=SERVER_URL,
        retries=0,
        transport=httpx.MockTransport(fake_store.handler),
    )
    yield client
    await client.close()


@pytest.fixture
def repository(leancloud_client):
    return EvaluationRepository(leancloud_client)


@pytest.fixture
def feed(repository):
    feed = EvaluationFeed(repository, latest_limit=10)
    yield feed
    feed.close()
