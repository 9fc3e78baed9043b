"""
Tests for the FastAPI health check and dry run.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from listing_watch.app import app

client = TestClient(app)


def test_health() -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_dry_run_classifies_samples() -> None:
    response = client.post("/dry-run")
    assert response.status_code == 200
    body = response.json()
    assert body["result"] == "new-found"
    assert body["already_seen"] == ["njk-1001"]
    assert body["reposts"] == ["ogl-9999"]
    assert body["genuinely_new"] == ["idx-2001"]
    assert len(body["messages"]) == 1
    assert "View on Index Oglasi" in body["messages"][0]
