from infraflow.parser.risk import RISK_LEVEL_ORDER, assess_change_risk, diff_specs, get_risk_factors
from infraflow.spec.model import InfraSpec


def _codes(risk):
    return [f.code for f in risk.factors]


def test_removing_the_firewall_is_reviewed(make_spec) -> None:
    before = make_spec(
        {"fw-1": "firewall", "web-1": "web-server", "db-1": "db-server"},
        [("fw-1", "web-1"), ("web-1", "db-1")],
    )
    after = before.without_node("fw-1")

    risk = assess_change_risk(before, after)

    assert risk.summary.removed_nodes == 1
    assert risk.summary.removed_connections == 1
    assert risk.factors
    assert "SECURITY_NODE_REMOVED" in _codes(risk)
    assert "MANDATORY_DEP_BROKEN" in _codes(risk)
    assert RISK_LEVEL_ORDER[risk.level] >= RISK_LEVEL_ORDER["high"]
    assert risk.recommendation == "review-required"


def test_security_removal_outranks_plain_removal(make_spec) -> None:
    before = make_spec(
        {
            "user-1": "user", "fw-1": "firewall", "web-1": "web-server",
            "app-1": "app-server", "db-1": "db-server", "dns-1": "dns",
        },
        [("user-1", "fw-1"), ("fw-1", "web-1"), ("web-1", "app-1"), ("app-1", "db-1")],
    )

    security = assess_change_risk(before, before.without_node("fw-1"))
    plain = assess_change_risk(before, before.without_node("dns-1"))

    assert RISK_LEVEL_ORDER[security.level] >= RISK_LEVEL_ORDER[plain.level]
    assert "NODE_REMOVED" in _codes(plain)


def test_unchanged_spec_has_no_risk(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])

    risk = assess_change_risk(spec, spec)

    assert _codes(risk) == ["NO_RISK"]
    assert risk.level == "low"
    assert risk.recommendation == "auto-apply"
    assert risk.summary.total_changes == 0


def test_emptying_the_diagram_is_critical(make_spec) -> None:
    before = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])

    risk = assess_change_risk(before, InfraSpec.empty())

    assert _codes(risk)[0] == "ALL_NODES_REMOVED"
    assert risk.level == "critical"
    assert risk.summary.removed_nodes == 2


def test_direct_internet_link_to_a_database(make_spec) -> None:
    before = make_spec({"internet-1": "internet", "db-1": "db-server"})
    after = make_spec({"internet-1": "internet", "db-1": "db-server"}, [("internet-1", "db-1")])

    risk = assess_change_risk(before, after)

    assert "INTERNET_EXPOSED" in _codes(risk)
    assert risk.level == "critical"
    assert risk.summary.added_connections == 1


def test_relabel_counts_as_modified_only(make_spec) -> None:
    before = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    after = before.with_node_update("web-1", label="Front")

    risk = assess_change_risk(before, after)

    assert risk.summary.modified_nodes == 1
    assert _codes(risk) == ["NO_RISK"]


def test_retyping_a_firewall_loses_it(make_spec) -> None:
    before = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    after = before.with_node_update("fw-1", type="router", label="", tier=None)

    assert "SECURITY_NODE_REMOVED" in [f.code for f in get_risk_factors(before, after)]
    assert diff_specs(before, after).modified[0][1].type == "router"


def test_losing_redundancy(make_spec) -> None:
    before = make_spec(
        {"lb-1": "load-balancer", "web-1": "web-server", "web-2": "web-server", "db-1": "db-server"},
        [("lb-1", "web-1"), ("lb-1", "web-2"), ("web-1", "db-1"), ("web-2", "db-1")],
    )

    risk = assess_change_risk(before, before.without_node("web-2"))

    assert "REDUNDANCY_REMOVED" in _codes(risk)
    assert "LARGE_CHANGE" not in _codes(risk)


def test_adding_security_is_noted(make_spec) -> None:
    before = make_spec(
        {"user-1": "user", "web-1": "web-server", "app-1": "app-server", "db-1": "db-server"},
        [("user-1", "web-1"), ("web-1", "app-1"), ("app-1", "db-1")],
    )
    after = make_spec(
        {"user-1": "user", "waf-1": "waf", "web-1": "web-server", "app-1": "app-server", "db-1": "db-server"},
        [("user-1", "waf-1"), ("waf-1", "web-1"), ("web-1", "app-1"), ("app-1", "db-1")],
    )

    risk = assess_change_risk(before, after)

    assert "SECURITY_NODE_ADDED" in _codes(risk)
    assert risk.summary.added_nodes == 1


def test_risk_serializes_camel_case(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall"})
    data = assess_change_risk(spec, InfraSpec.empty()).to_dict()

    assert set(data) == {"level", "factors", "summary", "recommendation", "recommendationKo"}
    assert data["summary"]["removedNodes"] == 1
    assert "descriptionKo" in data["factors"][0]
