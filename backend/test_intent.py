import pytest
import requests

from infraflow import config
from infraflow.errors import FailureKind, ProviderError
from infraflow.llm import providers
from infraflow.llm.base import LLMClient
from infraflow.llm.json_extract import iter_json_objects
from infraflow.llm.providers import AnthropicClient, OpenAIClient, detect_llm_provider, get_llm_client
from infraflow.parser.intent import IntentFallback, IntentOk, parse_intent_response
from infraflow.parser.intent_parser import PARSE_FAILURE_MESSAGE, analyze_intent


class StubClient(LLMClient):
    provider = "stub"

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate(self, messages, system=""):
        self.calls.append((messages, system))
        if self.error:
            raise self.error
        return self.reply


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


# ============================
# JSON extraction
# ============================

def _first(text):
    return next(iter_json_objects(text), None)


def test_first_json_object_from_bare_fenced_and_prose() -> None:
    assert _first('{"a": 1}') == {"a": 1}
    assert _first('```json\n{"a": 2}\n```') == {"a": 2}
    assert _first('```\n{"a": 3}\n```') == {"a": 3}
    assert _first('Sure! Here it is: {"a": {"b": "}"}} hope that helps') == {"a": {"b": "}"}}


def test_json_extraction_never_raises() -> None:
    assert _first("") is None
    assert _first(None) is None
    assert _first("[1, 2, 3]") is None
    assert _first("{not json}") is None


def test_iter_json_objects_yields_every_candidate() -> None:
    found = list(iter_json_objects('first {"x": 1} then {"y": 2}'))
    assert {"x": 1} in found
    assert {"y": 2} in found


# ============================
# Intent response parsing
# ============================

def test_parse_intent_normalizes_fields() -> None:
    intent = parse_intent_response(
        '```json\n{"intent": "ADD", "confidence": 1.7, '
        '"components": [{"type": "WAF"}, {"type": "mainframe"}, "web_server"], '
        '"position": {"type": "after", "reference": "fw-1"}}\n```'
    )

    assert intent.action == "add"
    assert intent.confidence == 1.0
    assert intent.component_types == ["waf", "web-server"]
    assert intent.position.type == "after"
    assert intent.position.reference == "fw-1"


def test_parse_intent_skips_non_intent_objects() -> None:
    intent = parse_intent_response('{"note": "thinking"} {"action": "remove", "components": ["cache"]}')
    assert intent.action == "remove"
    assert intent.component_types == ["cache"]


def test_parse_intent_drops_invalid_position() -> None:
    intent = parse_intent_response('{"action": "add", "position": {"type": "sideways"}}')
    assert intent.position is None
    assert intent.confidence == 0.5


def test_parse_intent_tolerates_wrongly_typed_fields() -> None:
    intent = parse_intent_response('{"action": "add", "confidence": [0.9], "components": {"type": "waf"}}')
    assert intent.action == "add"
    assert intent.confidence == 0.5
    assert intent.components == []

    assert parse_intent_response('{"action": "add", "confidence": {"v": 1}}').confidence == 0.5
    assert parse_intent_response('{"action": "add", "confidence": "high"}').confidence == 0.5
    assert parse_intent_response('{"action": "add", "position": "after fw-1"}').position is None
    assert parse_intent_response('{"action": ["add"], "confidence": 0.9}') is None


def test_parse_intent_returns_none_for_garbage() -> None:
    assert parse_intent_response("I cannot help with that") is None
    assert parse_intent_response('{"action": "explode"}') is None
    assert parse_intent_response(None) is None


# ============================
# analyze_intent
# ============================

def test_analyze_without_key_falls_back() -> None:
    outcome = analyze_intent("add waf", None, provider=None, api_key=None)
    assert isinstance(outcome, IntentFallback)
    assert outcome.reason == FailureKind.PROVIDER_UNAVAILABLE
    assert outcome.intent is None


def test_analyze_with_stub_client(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall"})
    client = StubClient('{"action": "add", "components": [{"type": "waf"}]}')

    outcome = analyze_intent("add waf", spec, None, None, knowledge_section="## extra", client=client)

    assert isinstance(outcome, IntentOk)
    assert outcome.intent.component_types == ["waf"]
    assert outcome.error is None
    messages, system = client.calls[0]
    assert "add waf" in messages[0]["content"]
    assert system.endswith("## extra")


def test_analyze_provider_error_falls_back() -> None:
    client = StubClient(error=ProviderError("OpenAI API Error: 500 - boom", status_code=500))
    outcome = analyze_intent("add waf", None, None, None, client=client)
    assert outcome.reason == FailureKind.PROVIDER_UNAVAILABLE
    assert "500" in outcome.error


def test_analyze_unparseable_reply_is_a_parse_failure() -> None:
    outcome = analyze_intent("add waf", None, None, None, client=StubClient("no idea"))
    assert outcome.reason == FailureKind.PARSE_FAILURE
    assert outcome.error == PARSE_FAILURE_MESSAGE
    assert outcome.raw_response == "no idea"


def test_analyze_odd_confidence_still_yields_an_intent() -> None:
    client = StubClient('{"action": "add", "confidence": {"v": 1}, "components": ["waf"]}')

    outcome = analyze_intent("add waf", None, None, None, client=client)

    assert isinstance(outcome, IntentOk)
    assert outcome.intent.confidence == 0.5
    assert outcome.intent.component_types == ["waf"]


# ============================
# Providers
# ============================

def test_anthropic_client_posts_messages(monkeypatch) -> None:
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(url=url, headers=headers, json=json, timeout=timeout)
        return FakeResponse(body={"content": [{"type": "text", "text": '```json\n{"action": "query"}\n```'}]})

    monkeypatch.setattr(providers.requests, "post", fake_post)

    text = AnthropicClient("sk-ant", model="claude-test", timeout_ms=5000).generate(
        [{"role": "user", "content": "hi"}], system="sys"
    )

    assert text == '{"action": "query"}'
    assert seen["url"] == providers.ANTHROPIC_URL
    assert seen["headers"]["x-api-key"] == "sk-ant"
    assert seen["json"]["system"] == "sys"
    assert seen["json"]["model"] == "claude-test"
    assert seen["timeout"] == 5


def test_openai_client_prepends_system_message(monkeypatch) -> None:
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(json=json, headers=headers)
        return FakeResponse(body={"choices": [{"message": {"content": '{"action": "query"}'}}]})

    monkeypatch.setattr(providers.requests, "post", fake_post)

    text = OpenAIClient("sk-oa").generate([{"role": "user", "content": "hi"}], system="sys")

    assert text == '{"action": "query"}'
    assert seen["headers"]["Authorization"] == "Bearer sk-oa"
    assert [m["role"] for m in seen["json"]["messages"]] == ["system", "user"]


def test_non_2xx_status_raises_provider_error(monkeypatch) -> None:
    monkeypatch.setattr(providers.requests, "post", lambda *a, **kw: FakeResponse(401, text="bad key"))

    with pytest.raises(ProviderError) as exc:
        OpenAIClient("sk-oa").generate([{"role": "user", "content": "hi"}])

    assert exc.value.status_code == 401
    assert str(exc.value) == "OpenAI API Error: 401 - bad key"


def test_timeout_raises_provider_error(monkeypatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.Timeout()

    monkeypatch.setattr(providers.requests, "post", fake_post)

    with pytest.raises(ProviderError, match="timeout"):
        AnthropicClient("sk-ant").generate([{"role": "user", "content": "hi"}])


def test_missing_content_raises_provider_error(monkeypatch) -> None:
    monkeypatch.setattr(providers.requests, "post", lambda *a, **kw: FakeResponse(body={"content": []}))

    with pytest.raises(ProviderError):
        AnthropicClient("sk-ant").generate([{"role": "user", "content": "hi"}])


def test_provider_detection(monkeypatch) -> None:
    assert detect_llm_provider() is None

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "sk-ant")
    assert detect_llm_provider() == {"provider": "anthropic", "api_key": "sk-ant"}

    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-oa")
    assert detect_llm_provider()["provider"] == "openai"

    monkeypatch.setattr(config, "LLM_PROVIDER", "anthropic")
    assert detect_llm_provider()["provider"] == "anthropic"


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ProviderError):
        get_llm_client("mistral", "key")
