import pytest
from fastapi.testclient import TestClient

from fakes import RecordingNotifier, ScriptedProvider
from mailbrief.api.service import create_app
from mailbrief.config import RuntimeProviderSettings
from mailbrief.data.models import TaskExtraction, TaskPriority
from mailbrief.engine.provider_router import ProviderRouter
from mailbrief.infrastructure.memory_store import MemoryStore
from mailbrief.services.pipeline import SummaryPipeline


class BrokenCacheStore(MemoryStore):
    def get_cached(self, account_id, email_ids):
        raise RuntimeError("supabase unavailable")


class BrokenLookupStore(MemoryStore):
    def get_message(self, account_id, email_id):
        raise RuntimeError("supabase: connection refused")


def build_pipeline(store=None, local=None, hosted=None):
    store = store or MemoryStore()
    local = local or ScriptedProvider("ollama", summarize="Summary.")
    return SummaryPipeline(
        store=store,
        messages=store,
        router=ProviderRouter(local=local, hosted=hosted, call_timeout=2),
        notifier=RecordingNotifier(),
        runtime_settings=RuntimeProviderSettings("http://localhost:11434", "llama3"),
    )


@pytest.fixture
def pipeline():
    return build_pipeline()


@pytest.fixture
def client(pipeline):
    with TestClient(create_app(pipeline=pipeline)) as test_client:
        yield test_client


# ------------------------------------------------------------------
# Summaries
# ------------------------------------------------------------------
def test_queue_returns_cached_and_queued_count(client, pipeline):
    pipeline.store.put("acc-1", "m1", "Already summarized.")
    pipeline.store.add_message("acc-1", "m2", "Lunch", "Friday?")

    response = client.post("/api/summaries/queue", json={"account_id": "acc-1", "email_ids": ["m1", "m2", "m404"]})

    assert response.status_code == 200
    assert response.json() == {"summaries": {"m1": "Already summarized."}, "queued": 1}


def test_queue_empty_list(client):
    response = client.post("/api/summaries/queue", json={"account_id": "acc-1", "email_ids": []})

    assert response.status_code == 200
    assert response.json() == {"summaries": {}, "queued": 0}


def test_queue_requires_account(client):
    response = client.post("/api/summaries/queue", json={"account_id": "", "email_ids": ["m1"]})
    assert response.status_code == 422


def test_queue_store_failure_is_500():
    with TestClient(create_app(pipeline=build_pipeline(store=BrokenCacheStore()))) as client:
        response = client.post("/api/summaries/queue", json={"account_id": "acc-1", "email_ids": ["m1"]})

    assert response.status_code == 500
    assert response.json()["detail"] == "failed to get summaries"


def test_queue_message_lookup_failure_is_500():
    with TestClient(create_app(pipeline=build_pipeline(store=BrokenLookupStore()))) as client:
        response = client.post("/api/summaries/queue", json={"account_id": "acc-1", "email_ids": ["m1"]})

    assert response.status_code == 500
    assert response.json()["detail"] == "failed to get summaries"


def test_get_cached_summaries(client, pipeline):
    pipeline.store.put("acc-1", "m1", "One.")
    pipeline.store.put("acc-1", "m2", "Two.")

    response = client.get("/api/summaries", params={"account_id": "acc-1", "email_ids": "m1, m3"})

    assert response.status_code == 200
    assert response.json() == {"summaries": {"m1": "One."}}


def test_get_cached_summaries_without_ids(client):
    response = client.get("/api/summaries", params={"account_id": "acc-1"})
    assert response.json() == {"summaries": {}}


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------
def test_ollama_settings_round_trip(client):
    assert client.get("/api/settings/ollama").json() == {
        "ollama_base_url": "http://localhost:11434",
        "ollama_model": "llama3",
    }

    response = client.put("/api/settings/ollama", json={"ollama_base_url": "http://gpu-box:11434/"})

    assert response.status_code == 200
    assert response.json() == {"ollama_base_url": "http://gpu-box:11434", "ollama_model": "llama3"}


def test_ollama_settings_rejects_empty_url(client):
    response = client.put("/api/settings/ollama", json={"ollama_base_url": ""})
    assert response.status_code == 422


# ------------------------------------------------------------------
# On-demand AI operations
# ------------------------------------------------------------------
def test_extract_tasks():
    hosted = ScriptedProvider("mistral", extract_tasks=[[TaskExtraction(title="Pay invoice", priority=TaskPriority.HIGH)]])
    with TestClient(create_app(pipeline=build_pipeline(hosted=hosted))) as client:
        response = client.post("/api/ai/tasks", json={"text": "Please pay invoice #42 by Friday"})

    assert response.status_code == 200
    tasks = response.json()["tasks"]
    assert tasks[0]["title"] == "Pay invoice"
    assert tasks[0]["priority"] == "high"
    assert hosted.calls == [("extract_tasks", "Please pay invoice #42 by Friday")]


def test_extract_tasks_providers_down():
    local = ScriptedProvider("ollama", extract_tasks=ConnectionError("connection refused"))
    hosted = ScriptedProvider("mistral", extract_tasks=ValueError("invalid api key"))
    with TestClient(create_app(pipeline=build_pipeline(local=local, hosted=hosted))) as client:
        response = client.post("/api/ai/tasks", json={"text": "anything"})

    assert response.status_code == 503
    assert response.json()["detail"] == "AI providers unavailable"


def test_related_terms():
    local = ScriptedProvider("ollama", suggest_terms=[["invoice", "payment"]])
    with TestClient(create_app(pipeline=build_pipeline(local=local))) as client:
        response = client.get("/api/ai/related-terms", params={"term": "billing"})

    assert response.status_code == 200
    assert response.json() == {"term": "billing", "terms": ["invoice", "payment"]}


# ------------------------------------------------------------------
# Health and lifecycle
# ------------------------------------------------------------------
def test_health_reports_pipeline(client):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["providers_configured"] is True
    assert body["pipeline"]["running"] is True
    assert body["pipeline"]["workers"] == 3


def test_requests_before_startup_are_503(pipeline):
    # Without the context manager the lifespan never runs
    client = TestClient(create_app(pipeline=pipeline))

    assert client.get("/health").json() == {"status": "starting"}
    assert client.get("/api/settings/ollama").status_code == 503


def test_shutdown_stops_workers(pipeline):
    with TestClient(create_app(pipeline=pipeline)):
        assert pipeline.pool.running
    assert not pipeline.pool.running
