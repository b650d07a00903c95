from infraflow.parser import topology
from infraflow.spec.model import InfraNode, InfraSpec


def _keys(spec):
    return sorted(c.key for c in spec.connections)


def test_chain_follows_tier_order_and_hangs_side_nodes(make_spec) -> None:
    spec = make_spec({
        "ldap-1": "ldap-ad",
        "db-1": "db-server",
        "user-1": "user",
        "app-1": "app-server",
        "fw-1": "firewall",
        "web-1": "web-server",
    })

    edges = [c.key for c in topology.chain_connections(spec.nodes)]

    assert edges == [
        ("user-1", "fw-1"),
        ("fw-1", "web-1"),
        ("web-1", "app-1"),
        ("app-1", "db-1"),
        ("app-1", "ldap-1"),
    ]


def test_same_rank_nodes_fan_out(make_spec) -> None:
    spec = make_spec({"lb-1": "load-balancer", "web-1": "web-server", "web-2": "web-server"})
    edges = [c.key for c in topology.chain_connections(spec.nodes)]
    assert edges == [("lb-1", "web-1"), ("lb-1", "web-2")]


def test_new_node_is_inserted_on_an_existing_edge(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    spec = spec.with_node(InfraNode(id="waf-1", type="waf"))

    wired = topology.connect_by_tier(spec, "waf-1")

    assert _keys(wired) == [("fw-1", "waf-1"), ("waf-1", "web-1")]


def test_new_node_mirrors_a_peer_of_its_type(make_spec) -> None:
    spec = make_spec(
        {"lb-1": "load-balancer", "web-1": "web-server", "db-1": "db-server"},
        [("lb-1", "web-1"), ("web-1", "db-1")],
    )
    spec = spec.with_node(InfraNode(id="web-server-2", type="web-server"))

    wired = topology.connect_by_tier(spec, "web-server-2")

    assert ("lb-1", "web-server-2") in _keys(wired)
    assert ("web-server-2", "db-1") in _keys(wired)
    assert ("web-1", "db-1") in _keys(wired)


def test_side_node_attaches_to_deepest_reachable_node(make_spec) -> None:
    spec = make_spec(
        {"fw-1": "firewall", "web-1": "web-server", "db-1": "db-server"},
        [("fw-1", "web-1"), ("web-1", "db-1")],
    )
    spec = spec.with_node(InfraNode(id="backup-1", type="backup"))

    wired = topology.connect_by_tier(spec, "backup-1")

    assert _keys(wired) == [("db-1", "backup-1"), ("fw-1", "web-1"), ("web-1", "db-1")]


def test_node_appended_past_the_last_tier(make_spec) -> None:
    spec = make_spec({"user-1": "user", "web-1": "web-server"}, [("user-1", "web-1")])
    spec = spec.with_node(InfraNode(id="db-1", type="db-server"))

    wired = topology.connect_by_tier(spec, "db-1")

    assert _keys(wired) == [("user-1", "web-1"), ("web-1", "db-1")]


def test_insert_before_takes_over_incoming_edges(make_spec) -> None:
    spec = make_spec({"user-1": "user", "web-1": "web-server"}, [("user-1", "web-1")])
    spec = spec.with_node(InfraNode(id="fw-1", type="firewall"))

    wired = topology.insert_before(spec, "fw-1", "web-1")

    assert _keys(wired) == [("fw-1", "web-1"), ("user-1", "fw-1")]


def test_insert_after_takes_over_outgoing_edges(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])
    spec = spec.with_node(InfraNode(id="ids-1", type="ids-ips"))

    wired = topology.insert_after(spec, "ids-1", "fw-1")

    assert _keys(wired) == [("fw-1", "ids-1"), ("ids-1", "web-1")]


def test_insert_between_keeps_the_flow_type() -> None:
    spec = InfraSpec.model_validate({
        "nodes": [{"id": "u", "type": "user"}, {"id": "vpn", "type": "vpn-gateway"}, {"id": "fw", "type": "firewall"}],
        "connections": [{"source": "u", "target": "vpn", "flowType": "encrypted"}],
    })

    wired = topology.insert_between(spec, "fw", "u", "vpn")

    assert _keys(wired) == [("fw", "vpn"), ("u", "fw")]
    assert {c.flow_type for c in wired.connections} == {"encrypted"}


def test_start_and_end(make_spec) -> None:
    spec = make_spec({"fw-1": "firewall", "web-1": "web-server"}, [("fw-1", "web-1")])

    at_start = topology.insert_at_start(spec.with_node(InfraNode(id="user-1", type="user")), "user-1")
    assert ("user-1", "fw-1") in _keys(at_start)

    at_end = topology.insert_at_end(spec.with_node(InfraNode(id="db-1", type="db-server")), "db-1")
    assert ("web-1", "db-1") in _keys(at_end)
