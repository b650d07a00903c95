import pytest

from infraflow import config
from infraflow.knowledge.store import get_knowledge_store
from infraflow.spec.model import InfraSpec


@pytest.fixture(autouse=True)
def no_llm_keys(monkeypatch):
    """Tests never reach a real provider; the local parser is the default path."""
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(config, "LLM_PROVIDER", "")


@pytest.fixture(scope="session")
def store():
    return get_knowledge_store()


@pytest.fixture
def make_spec():
    """make_spec({"fw-1": "firewall", ...}, [("fw-1", "web-1"), ...])"""

    def _make(nodes, edges=()):
        return InfraSpec.model_validate({
            "nodes": [{"id": node_id, "type": node_type} for node_id, node_type in nodes.items()],
            "connections": [{"source": s, "target": t} for s, t in edges],
        })

    return _make
