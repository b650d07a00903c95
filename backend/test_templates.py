import pytest

from infraflow.parser.component_detector import (
    detect_command_type,
    detect_mentions,
    detect_node_type,
    find_position_hint,
    parse_custom_prompt,
    resolve_reference,
)
from infraflow.parser.templates import (
    TEMPLATE_CATALOG,
    list_templates,
    match_fallback_template,
    match_fallback_template_id,
    match_template,
    match_template_by_id,
)


# ============================
# Fallback templates
# ============================

def test_fallback_is_case_insensitive_and_deterministic() -> None:
    upper = match_fallback_template("VDI architecture")
    lower = match_fallback_template("vdi architecture")
    assert upper == lower
    assert "vm" in upper.node_types()
    assert match_fallback_template("VDI architecture") == upper


@pytest.mark.parametrize(
    "prompt, expected",
    [
        ("가상데스크톱 환경", "vdi"),
        ("3티어 구성", "3tier"),
        ("Three Tier please", "3tier"),
        ("secure web portal", "web-secure"),
        ("보안 강화", "web-secure"),
        ("vdi with waf", "vdi"),
        ("something else entirely", "default"),
        ("", "default"),
        (None, "default"),
    ],
)
def test_fallback_rules_in_order(prompt, expected) -> None:
    assert match_fallback_template_id(prompt) == expected


def test_unrecognized_prompt_gets_default_template() -> None:
    spec = match_fallback_template("qwerty")
    assert spec.node_types() == {"user", "firewall", "web-server"}
    assert spec.connections


# ============================
# Infra templates
# ============================

def test_every_template_builds_a_valid_spec() -> None:
    for template in TEMPLATE_CATALOG:
        spec = template.spec
        assert spec.nodes, template.id
        ids = spec.node_ids()
        assert all(c.source in ids and c.target in ids for c in spec.connections)


def test_keyword_template_match() -> None:
    assert match_template("3-tier web app with a WAF").id == "3tier"
    assert match_template("쿠버네티스 클러스터").id == "k8s"
    assert match_template("Disaster Recovery site").id == "dr"


def test_ascii_keywords_match_whole_words_only() -> None:
    assert match_template("server address list") is None
    assert match_template("add a firewall") is None


def test_template_id_match_and_listing() -> None:
    assert match_template_by_id("use zero-trust").id == "zero-trust"
    listed = list_templates()
    assert len(listed) == len(TEMPLATE_CATALOG)
    assert {"id", "name", "description"} <= set(listed[0])


# ============================
# Component detection
# ============================

def test_add_does_not_mean_active_directory() -> None:
    assert [m.type for m in detect_mentions("add a firewall")] == ["firewall"]


def test_mentions_in_text_order() -> None:
    text = "웹서버와 DB 그리고 로드밸런서".lower()
    assert [m.type for m in detect_mentions(text)] == ["web-server", "db-server", "load-balancer"]


def test_waf_phrase_is_not_a_firewall() -> None:
    assert [m.type for m in detect_mentions("web application firewall")] == ["waf"]
    assert [m.type for m in detect_mentions("웹방화벽")] == ["waf"]


def test_l3_switch_is_not_an_l2_switch() -> None:
    assert [m.type for m in detect_mentions("l3 switch")] == ["switch-l3"]
    assert detect_node_type("core switch").type == "switch-l2"


@pytest.mark.parametrize(
    "prompt, command",
    [
        ("방화벽 추가해줘", "add"),
        ("add WAF", "add"),
        ("웹서버 삭제해줘", "remove"),
        ("delete the cache", "remove"),
        ("fw-1과 web-1 연결 해제", "disconnect"),
        ("remove the connection between fw-1 and web-1", "disconnect"),
        ("connect fw-1 to web-1", "connect"),
        ("change the firewall to a waf", "modify"),
        ("방화벽을 WAF 뒤로 옮겨줘", "modify"),
        ("방화벽 뒤에 WAF", "add"),
        ("what is this architecture?", "query"),
        ("3티어 웹 아키텍처", "create"),
    ],
)
def test_command_detection(prompt, command) -> None:
    assert detect_command_type(prompt) == command


# ============================
# Position hints
# ============================

def test_english_after_hint() -> None:
    hint = find_position_hint("add waf after firewall")
    assert hint.type == "after"
    assert hint.reference == "firewall"


def test_korean_after_hint() -> None:
    hint = find_position_hint("방화벽 뒤에 waf 추가")
    assert hint.type == "after"
    assert hint.reference == "방화벽"


def test_between_hint() -> None:
    hint = find_position_hint("add ids between fw-1 and web-1")
    assert hint.type == "between"
    assert (hint.reference, hint.reference_second) == ("fw-1", "web-1")


def test_end_hint_and_no_hint() -> None:
    assert find_position_hint("put a backup at the end").type == "end"
    assert find_position_hint("add a waf") is None


def test_reference_resolution(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    assert resolve_reference(spec, "fw-1").id == "fw-1"
    assert resolve_reference(spec, "Web Server").id == "web-1"
    assert resolve_reference(spec, "firewall").id == "fw-1"
    assert resolve_reference(spec, "방화벽").id == "fw-1"
    assert resolve_reference(spec, "database") is None


def test_custom_prompt_prepends_user_and_chains_by_tier() -> None:
    spec = parse_custom_prompt("firewall and web server")
    assert [n.id for n in spec.nodes] == ["user-1", "firewall-1", "web-server-1"]
    assert [c.key for c in spec.connections] == [("user-1", "firewall-1"), ("firewall-1", "web-server-1")]


def test_custom_prompt_without_components() -> None:
    assert parse_custom_prompt("make it nice") is None
