import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from infraflow.api.dependencies import rate_limiter
from infraflow.db.models import Base
from infraflow.db.repository import UsageLogRepository
from infraflow.db.session import get_db
from infraflow.main import app
from infraflow.parser.templates import TEMPLATE_CATALOG

THREE_TIER = {
    "nodes": [
        {"id": "fw-1", "type": "firewall"},
        {"id": "web-1", "type": "web-server"},
        {"id": "db-1", "type": "db-server"},
    ],
    "connections": [
        {"source": "fw-1", "target": "web-1"},
        {"source": "web-1", "target": "db-1"},
    ],
}


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    # no context manager: startup (knowledge load + create_all on the real engine) is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()
    rate_limiter.reset()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_parse_creates_from_a_template(client, session_factory) -> None:
    response = client.post("/api/parse", json={"prompt": "3-tier web app"}, headers={"X-User-Id": "alice"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["templateUsed"] == "3tier"
    assert body["usedLlm"] is False
    assert body["fallbackReason"] == "provider_unavailable"
    assert body["spec"]["nodes"]
    assert body["knowledgeSection"].startswith("## 인프라 지식 기반 가이드")

    db = session_factory()
    try:
        assert UsageLogRepository(db).count("alice") == 1
    finally:
        db.close()


def test_parse_edits_the_current_spec(client) -> None:
    response = client.post(
        "/api/parse",
        json={"prompt": "add waf", "currentSpec": THREE_TIER, "useLlm": False},
    )

    body = response.json()
    assert body["commandType"] == "add"
    assert "waf" in {n["type"] for n in body["spec"]["nodes"]}


def test_empty_prompt_is_rejected(client) -> None:
    assert client.post("/api/parse", json={"prompt": ""}).status_code == 422


def test_modify_reports_change_risk(client) -> None:
    response = client.post("/api/modify", json={"prompt": "remove the firewall", "spec": THREE_TIER})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["risk"]["summary"]["removedNodes"] == 1
    assert body["risk"]["level"] in ("high", "critical")
    assert "SECURITY_NODE_REMOVED" in {f["code"] for f in body["risk"]["factors"]}


def test_modify_rejects_a_dangling_connection(client) -> None:
    spec = {
        "nodes": [{"id": "fw-1", "type": "firewall"}],
        "connections": [{"source": "fw-1", "target": "web-1"}],
    }
    assert client.post("/api/modify", json={"prompt": "add waf", "spec": spec}).status_code == 422


def test_risk_endpoint(client) -> None:
    response = client.post("/api/risk", json={"before": THREE_TIER, "after": {"nodes": [], "connections": []}})

    body = response.json()
    assert body["level"] == "critical"
    assert body["factors"][0]["code"] == "ALL_NODES_REMOVED"
    assert body["recommendation"] == "review-required"


def test_enrich_endpoint(client) -> None:
    spec = {
        "nodes": [{"id": "internet-1", "type": "internet"}, {"id": "db-1", "type": "db-server"}],
        "connections": [{"source": "internet-1", "target": "db-1"}],
    }

    response = client.post("/api/knowledge/enrich", json={"spec": spec})

    assert response.status_code == 200
    body = response.json()
    assert "AP-SEC-001" in {v["id"] for v in body["enriched"]["violations"]}
    assert "⛔" in body["promptSection"]
    assert isinstance(body["patterns"], list)


def test_templates_and_stats(client) -> None:
    templates = client.get("/api/templates").json()
    assert len(templates) == len(TEMPLATE_CATALOG)
    assert {"id", "name", "description"} == set(templates[0])

    stats = client.get("/api/knowledge/stats").json()
    assert stats["anti_patterns"] == 22


def test_diagram_store_round_trip(client) -> None:
    assert client.get("/api/diagrams/d1").status_code == 404

    layout = [{"id": "fw-1", "position": {"x": 0, "y": 0}}]
    saved = client.put(
        "/api/diagrams/d1",
        json={"spec": THREE_TIER, "nodesJson": layout},
        headers={"X-User-Id": "alice"},
    )
    assert saved.status_code == 200
    assert saved.json()["nodesJson"] == layout

    fetched = client.get("/api/diagrams/d1").json()
    assert [n["id"] for n in fetched["spec"]["nodes"]] == ["fw-1", "web-1", "db-1"]
    assert fetched["updatedAt"]


def test_only_the_owner_may_overwrite(client) -> None:
    client.put("/api/diagrams/d2", json={"spec": THREE_TIER}, headers={"X-User-Id": "alice"})

    response = client.put("/api/diagrams/d2", json={"spec": THREE_TIER}, headers={"X-User-Id": "bob"})

    assert response.status_code == 403


def test_rate_limit(client, monkeypatch) -> None:
    monkeypatch.setattr(rate_limiter, "limit", 2)
    payload = {"before": THREE_TIER, "after": THREE_TIER}

    codes = [client.post("/api/risk", json=payload).status_code for _ in range(3)]

    assert codes == [200, 200, 429]
