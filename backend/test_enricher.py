from infraflow.prompts.enricher import (
    MAX_RISKS,
    EnrichedContext,
    build_knowledge_prompt_section,
    enrich_context,
    enrich_spec,
)
from infraflow.prompts.system_prompt import INTENT_ANALYSIS_PROMPT, build_system_prompt
from infraflow.spec.context import build_context_from_spec


def test_internet_to_database_is_reported(store, make_spec) -> None:
    spec = make_spec({"internet-1": "internet", "db-1": "db-server"}, [("internet-1", "db-1")])

    enriched = enrich_spec(spec, store)

    assert "AP-SEC-001" in {ap.id for ap in enriched.violations}
    assert "REL-CON-001" in {r.id for r in enriched.conflicts}
    # most severe first
    ranks = [ap.severity.rank for ap in enriched.violations]
    assert ranks == sorted(ranks, reverse=True)

    section = build_knowledge_prompt_section(enriched)
    assert section.startswith("## 인프라 지식 기반 가이드")
    assert "### ⛔ 주의사항 및 위반 감지" in section
    assert '- ⚠️ 충돌: "db-server" ↔ "internet"' in section
    assert "[CRITICAL]" in section


def test_official_guidance_cites_its_source(store, make_spec) -> None:
    spec = make_spec(
        {"fw-1": "firewall", "web-1": "web-server", "db-1": "db-server"},
        [("fw-1", "web-1"), ("web-1", "db-1")],
    )

    section = build_knowledge_prompt_section(enrich_spec(spec, store))

    assert "### 공식 표준 (반드시 준수)" in section
    assert "[NIST SP 800-41 Rev.1]" in section
    assert section.rstrip().endswith("의사결정의 근거로 사용하지 마세요.")


def test_missing_requirement_is_flagged(store, make_spec) -> None:
    spec = make_spec({"sso-1": "sso"})

    enriched = enrich_spec(spec, store)

    assert "ldap-ad" in {r.target for r in enriched.suggestions}
    assert enriched.suggestions[0].relationship_type.value == "requires"
    assert '- 🔴 필수 누락: "sso"은(는) "ldap-ad"이(가) 필요합니다' in build_knowledge_prompt_section(enriched)


def test_no_findings_renders_nothing(store) -> None:
    enriched = enrich_spec(None, store)

    assert not enriched.has_findings()
    assert build_knowledge_prompt_section(enriched) == ""


def test_low_confidence_relationships_are_ignored(store, make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    enriched = enrich_context(build_context_from_spec(spec), store.relationships)

    assert all(r.confidence >= 0.5 for r in enriched.relationships + enriched.suggestions)
    assert enriched.violations == []


def test_only_the_top_risks_are_rendered(store) -> None:
    assert len(store.failures) > MAX_RISKS
    section = build_knowledge_prompt_section(EnrichedContext(risks=list(store.failures)))

    assert "### 💥 잠재적 장애 시나리오" in section
    assert section.count("(MTTR:") == MAX_RISKS


def test_system_prompt_appends_guidance_after_a_blank_line() -> None:
    assert build_system_prompt("") == INTENT_ANALYSIS_PROMPT
    assert build_system_prompt("   ") == INTENT_ANALYSIS_PROMPT
    assert build_system_prompt("## guide") == INTENT_ANALYSIS_PROMPT + "\n\n## guide"


def test_enriched_context_serializes(store, make_spec) -> None:
    spec = make_spec({"internet-1": "internet", "db-1": "db-server"}, [("internet-1", "db-1")])
    data = enrich_spec(spec, store).to_dict()

    assert set(data) == {"relationships", "conflicts", "violations", "suggestions", "risks"}
    assert data["conflicts"][0]["id"] == "REL-CON-001"
