import logging

import pytest

from ibtopo.topology.models import (
    BadArgumentsError,
    Log,
    LogNotParsedError,
    LogStatus,
    Node,
    NodeInfo,
    Port,
    TopologyData,
    TopologySummary,
)
from ibtopo.topology.service import Service, build_edges, group_name, normalize_kind


class FakeRepository:
    def __init__(self, log=None, nodes=None, ports=None, ping_err=None, data_err=None):
        self.log = log or Log()
        self.nodes = nodes or []
        self.ports = ports or []
        self.ping_err = ping_err
        self.data_err = data_err

    def ping(self):
        if self.ping_err:
            raise self.ping_err

    def get_topology_data(self, log_id):
        if self.data_err:
            raise self.data_err
        return TopologyData(log=self.log, nodes=self.nodes, ports=self.ports)


def make_service(repo):
    return Service(logging.getLogger("test.topology"), repo)


def test_rejects_bad_log_id():
    with pytest.raises(BadArgumentsError):
        make_service(FakeRepository()).get_topology(0)


def test_propagates_repository_error():
    class RepoFailed(Exception):
        pass

    service = make_service(FakeRepository(data_err=RepoFailed("repository failed")))
    with pytest.raises(RepoFailed, match="repository failed"):
        service.get_topology(1)


def test_ping_propagates_error():
    class PingFailed(Exception):
        pass

    with pytest.raises(PingFailed):
        make_service(FakeRepository(ping_err=PingFailed())).ping()


@pytest.mark.parametrize("status", [LogStatus.PROCESSING, LogStatus.FAILED])
def test_rejects_non_parsed_logs(status):
    service = make_service(FakeRepository(log=Log(id=1, status=status)))
    with pytest.raises(LogNotParsedError):
        service.get_topology(1)


def full_repo():
    return FakeRepository(
        log=Log(id=1, status=LogStatus.PARSED),
        nodes=[
            Node(id=10, log_id=1, node_guid="host-1", node_desc="Host A", node_kind="HOST",
                 num_ports=2, info=NodeInfo(serial_number="SN-host", product_name="Host Product")),
            Node(id=20, log_id=1, node_guid="switch-1", node_desc="Switch A", node_kind="switch", num_ports=2),
            Node(id=30, log_id=1, node_guid="switch-2", node_desc="Switch B", node_kind="switch", num_ports=1),
            Node(id=40, log_id=1, node_guid="unknown-1", node_desc="Unknown", node_kind="", num_ports=0),
            Node(id=50, log_id=1, node_guid="router-1", node_desc="Router", node_kind="router", num_ports=0),
            Node(id=60, log_id=1, node_guid="accel-1", node_desc="Accelerator", node_kind="accelerator", num_ports=0),
        ],
        ports=[
            Port(id=100, log_id=1, node_id=10, node_guid="host-1", port_guid="host-p1", port_num=1,
                 port_state=4, link_width_active=4, link_speed_active=100),
            Port(id=101, log_id=1, node_id=10, node_guid="host-1", port_guid="host-down", port_num=2,
                 port_state=1, link_width_active=4, link_speed_active=100),
            Port(id=200, log_id=1, node_id=20, node_guid="switch-1", port_guid="sw1-p1", port_num=1,
                 port_state=4, link_width_active=4, link_speed_active=100),
            Port(id=201, log_id=1, node_id=20, node_guid="switch-1", port_guid="sw1-p2", port_num=2,
                 port_state=4, link_width_active=8, link_speed_active=200),
            Port(id=300, log_id=1, node_id=30, node_guid="switch-2", port_guid="sw2-p1", port_num=1,
                 port_state=4, link_width_active=8, link_speed_active=200),
            Port(id=301, log_id=1, node_id=30, node_guid="switch-2", port_guid="sw2-down", port_num=2,
                 port_state=2, link_width_active=8, link_speed_active=200),
        ],
    )


def test_builds_groups_summary_and_edges():
    got = make_service(full_repo()).get_topology(1)

    assert got.log_id == 1
    assert got.summary == TopologySummary(
        nodes_count=6, ports_count=6, edges_count=2, hosts_count=1, switches_count=2
    )

    host = got.nodes[0]
    assert host.node_kind == "host"
    assert host.parsed_ports_count == 2
    assert host.serial_number == "SN-host"
    assert host.product_name == "Host Product"

    assert [group.name for group in got.groups] == [
        "Hosts", "Switches", "Unknown", "Accelerator", "Router",
    ]

    assert len(got.edges) == 2
    host_edge = got.edges[0]
    assert (host_edge.source_node_id, host_edge.target_node_id) == (10, 20)
    assert host_edge.relation == "inferred_host_switch"
    assert (host_edge.port_state, host_edge.link_width_active, host_edge.link_speed_active) == (4, 4, 100)

    switch_edge = got.edges[1]
    assert (switch_edge.source_node_id, switch_edge.target_node_id) == (20, 30)
    assert switch_edge.relation == "inferred_switch_backbone"


def test_groups_hold_node_ids_and_guids():
    got = make_service(full_repo()).get_topology(1)
    switches = next(group for group in got.groups if group.kind == "switch")
    assert switches.node_ids == [20, 30]
    assert switches.node_guids == ["switch-1", "switch-2"]


def test_no_active_ports_produces_no_edges():
    repo = FakeRepository(
        log=Log(id=1, status=LogStatus.PARSED),
        nodes=[
            Node(id=10, log_id=1, node_guid="host-1", node_kind="host"),
            Node(id=20, log_id=1, node_guid="switch-1", node_kind="switch"),
        ],
        ports=[
            Port(id=100, log_id=1, node_id=10, node_guid="host-1", port_num=1, port_state=1),
            Port(id=200, log_id=1, node_id=20, node_guid="switch-1", port_num=1, port_state=2),
        ],
    )
    got = make_service(repo).get_topology(1)
    assert got.edges == []
    assert got.summary.edges_count == 0


def test_parsed_ports_fall_back_to_guid():
    repo = FakeRepository(
        log=Log(id=1, status=LogStatus.PARSED),
        nodes=[Node(id=10, log_id=1, node_guid="host-1", node_kind="host")],
        ports=[Port(id=100, node_id=0, node_guid="host-1", port_num=1)],
    )
    got = make_service(repo).get_topology(1)
    assert got.nodes[0].parsed_ports_count == 1


def test_host_falls_back_to_any_free_switch_port():
    nodes = [
        Node(id=10, node_guid="host-1", node_kind="host"),
        Node(id=20, node_guid="switch-1", node_kind="switch"),
    ]
    ports = [
        Port(id=100, node_id=10, port_num=1, port_state=4, link_width_active=4, link_speed_active=100),
        Port(id=200, node_id=20, port_guid="sw1-p1", port_num=1, port_state=4,
             link_width_active=8, link_speed_active=200),
    ]
    edges = build_edges(nodes, ports)
    assert len(edges) == 1
    assert edges[0].target_port_guid == "sw1-p1"
    assert edges[0].relation == "inferred_host_switch"


def test_switch_port_used_once():
    nodes = [
        Node(id=10, node_guid="host-1", node_kind="host"),
        Node(id=11, node_guid="host-2", node_kind="host"),
        Node(id=20, node_guid="switch-1", node_kind="switch"),
    ]
    ports = [
        Port(id=100, node_id=10, port_num=1, port_state=4),
        Port(id=110, node_id=11, port_num=1, port_state=4),
        Port(id=200, node_id=20, port_num=1, port_state=4),
    ]
    edges = build_edges(nodes, ports)
    assert [edge.source_node_id for edge in edges] == [10]


@pytest.mark.parametrize(
    "kind, want_kind, want_group",
    [
        (" HOST ", "host", "Hosts"),
        ("switch", "switch", "Switches"),
        ("", "unknown", "Unknown"),
        ("router", "router", "Router"),
    ],
)
def test_normalize_kind_and_group_name(kind, want_kind, want_group):
    got_kind = normalize_kind(kind)
    assert got_kind == want_kind
    assert group_name(got_kind) == want_group