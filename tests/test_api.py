import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from janitor.api.runs import _run_lock, get_orchestrator
from janitor.core.constants import AGENT_VERSION
from janitor.models.issue import Issue
from janitor.models.run import Run, RunResult
from janitor.services.learning_store import InMemoryLearningStore
from janitor.services.persistence import InMemoryRunRepository
from main import app


@pytest.fixture
def orchestrator():
    fake = MagicMock()
    fake.context.repository = InMemoryRunRepository()
    fake.context.learning = InMemoryLearningStore()
    fake.run = AsyncMock(return_value=RunResult(
        run_id="r1", status="completed", trigger_type="api", summary="Fixed 1/1 issues: 1 lint",
    ))
    app.dependency_overrides[get_orchestrator] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(orchestrator):
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": AGENT_VERSION}


def test_start_run_defaults(client, orchestrator):
    response = client.post("/runs")
    assert response.status_code == 200
    assert response.json()["summary"] == "Fixed 1/1 issues: 1 lint"
    orchestrator.run.assert_awaited_once_with(trigger_type="api", dry_run=None, max_tasks=None)


def test_start_run_with_options(client, orchestrator):
    response = client.post("/runs", json={"dry_run": True, "max_tasks": 2, "trigger_type": "cron"})
    assert response.status_code == 200
    orchestrator.run.assert_awaited_once_with(trigger_type="cron", dry_run=True, max_tasks=2)


def test_start_run_rejects_negative_cap(client):
    assert client.post("/runs", json={"max_tasks": -1}).status_code == 422


def test_second_run_is_refused_while_one_is_active(client, orchestrator):
    asyncio.run(_run_lock.acquire())
    try:
        response = client.post("/runs")
    finally:
        _run_lock.release()
    assert response.status_code == 409
    orchestrator.run.assert_not_called()


def test_cancel_without_active_run(client, orchestrator):
    assert client.post("/runs/cancel").json()["cancelled"] is False
    orchestrator.cancel.assert_not_called()


def test_list_and_get_runs(client, orchestrator):
    repo = orchestrator.context.repository
    run = Run(status="completed", summary="done")
    repo.save_run(run)
    repo.save_issue(run.id, Issue(type="lint", file="a.py", description="E501: line too long"))

    listed = client.get("/runs").json()
    assert [r["id"] for r in listed] == [run.id]

    detail = client.get(f"/runs/{run.id}").json()
    assert detail["run"]["summary"] == "done"
    assert detail["issues"][0]["file"] == "a.py"
    assert detail["fix_attempts"] == []


def test_unknown_run_is_404(client):
    assert client.get("/runs/nope").status_code == 404


def test_learning_stats(client, orchestrator):
    issue = Issue(type="lint", file="a.py", description="E501: line too long")
    orchestrator.context.learning.record_success(issue, "minimal", "gpt-4o-mini", "r1")
    stats = client.get("/learning/stats").json()
    assert stats["patterns"] == 1
    assert stats["total_successes"] == 1
    assert stats["strategies"]["minimal"]["successes"] == 1
