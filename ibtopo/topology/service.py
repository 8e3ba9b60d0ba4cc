"""Topology service: builds a host/switch graph out of a parsed log."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Iterable

from ibtopo.topology.models import (
    BadArgumentsError,
    LogNotParsedError,
    LogStatus,
    Node,
    Port,
    Repository,
    TopologyEdge,
    TopologyGroup,
    TopologyNode,
    TopologyResult,
    TopologySummary,
)

_ACTIVE_PORT_STATE = 4
_GROUP_ORDER = ("host", "switch", "unknown")
_GROUP_NAMES = {"host": "Hosts", "switch": "Switches", "unknown": "Unknown"}


class Service:
    """Turns repository data into a topology."""

    def __init__(self, log: logging.Logger, repository: Repository) -> None:
        self._log = log
        self._repository = repository

    def ping(self) -> None:
        self._repository.ping()

    def get_topology(self, log_id: int) -> TopologyResult:
        if log_id <= 0:
            raise BadArgumentsError()

        data = self._repository.get_topology_data(log_id)
        if data.log.status != LogStatus.PARSED:
            raise LogNotParsedError()

        nodes = data.nodes
        ports = data.ports

        by_node_id = Counter(port.node_id for port in ports if port.node_id > 0)
        by_node_guid = Counter(port.node_guid for port in ports if port.node_guid)

        topology_nodes: list[TopologyNode] = []
        groups: dict[str, TopologyGroup] = {}
        kinds = Counter()

        for node in nodes:
            kind = normalize_kind(node.node_kind)
            kinds[kind] += 1

            parsed_ports = by_node_id[node.id] or by_node_guid[node.node_guid]
            info = node.info
            topology_nodes.append(
                TopologyNode(
                    id=node.id,
                    log_id=node.log_id,
                    node_guid=node.node_guid,
                    node_desc=node.node_desc,
                    node_type=node.node_type,
                    node_kind=kind,
                    declared_ports_count=node.num_ports,
                    parsed_ports_count=parsed_ports,
                    serial_number=info.serial_number if info else "",
                    product_name=info.product_name if info else "",
                )
            )

            group = groups.setdefault(kind, TopologyGroup(name=group_name(kind), kind=kind))
            group.node_ids.append(node.id)
            group.node_guids.append(node.node_guid)

        edges = build_edges(nodes, ports)
        summary = TopologySummary(
            nodes_count=len(nodes),
            ports_count=len(ports),
            edges_count=len(edges),
            hosts_count=kinds["host"],
            switches_count=kinds["switch"],
        )
        result = TopologyResult(
            log_id=log_id,
            summary=summary,
            nodes=topology_nodes,
            groups=_ordered_groups(groups),
            edges=edges,
        )

        self._log.info(
            "topology built log_id=%s nodes=%s ports=%s edges=%s hosts=%s switches=%s",
            log_id,
            summary.nodes_count,
            summary.ports_count,
            summary.edges_count,
            summary.hosts_count,
            summary.switches_count,
        )
        return result


def build_edges(nodes: list[Node], ports: list[Port]) -> list[TopologyEdge]:
    """Infer host-to-switch links and a chain of switch-to-switch links."""
    nodes_by_id: dict[int, Node] = {}
    switches: list[Node] = []
    for node in nodes:
        nodes_by_id[node.id] = node
        if normalize_kind(node.node_kind) == "switch":
            switches.append(node)

    host_ports = _sorted_ports(_active_ports_of_kind(ports, nodes_by_id, "host"))
    switch_ports = _sorted_ports(_active_ports_of_kind(ports, nodes_by_id, "switch"))

    edges: list[TopologyEdge] = []
    used: set[int] = set()

    for host_port in host_ports:
        switch_port = _pick_switch_port(host_port, switch_ports, used)
        if switch_port is None:
            continue
        edges.append(
            _edge(
                nodes_by_id[host_port.node_id],
                host_port,
                nodes_by_id[switch_port.node_id],
                switch_port,
                "inferred_host_switch",
            )
        )
        used.add(switch_port.id)

    switches.sort(key=lambda node: node.id)

    ports_by_node: dict[int, list[Port]] = defaultdict(list)
    for port in switch_ports:
        ports_by_node[port.node_id].append(port)

    for source_node, target_node in zip(switches, switches[1:]):
        source_port = _first_unused(ports_by_node.get(source_node.id, ()), used)
        if source_port is None:
            continue
        used.add(source_port.id)

        target_port = _first_unused(ports_by_node.get(target_node.id, ()), used)
        if target_port is None:
            continue
        used.add(target_port.id)

        edges.append(
            _edge(source_node, source_port, target_node, target_port, "inferred_switch_backbone")
        )

    return edges


def normalize_kind(kind: str) -> str:
    """Lower-case and trim a node kind; an empty kind becomes "unknown"."""
    return kind.strip().lower() or "unknown"


def group_name(kind: str) -> str:
    """Display name of the group holding nodes of a kind."""
    if kind in _GROUP_NAMES:
        return _GROUP_NAMES[kind]
    value = kind.strip()
    return value[:1].upper() + value[1:]


def _edge(
    source_node: Node,
    source_port: Port,
    target_node: Node,
    target_port: Port,
    relation: str,
) -> TopologyEdge:
    return TopologyEdge(
        source_node_id=source_node.id,
        source_node_guid=source_node.node_guid,
        source_port_num=source_port.port_num,
        source_port_guid=source_port.port_guid,
        target_node_id=target_node.id,
        target_node_guid=target_node.node_guid,
        target_port_num=target_port.port_num,
        target_port_guid=target_port.port_guid,
        relation=relation,
        link_width_active=source_port.link_width_active,
        link_speed_active=source_port.link_speed_active,
        port_state=source_port.port_state,
    )


def _is_active(port: Port) -> bool:
    return (
        port.id > 0
        and port.node_id > 0
        and port.port_num > 0
        and port.port_state == _ACTIVE_PORT_STATE
    )


def _active_ports_of_kind(
    ports: Iterable[Port], nodes_by_id: dict[int, Node], kind: str
) -> list[Port]:
    return [
        port
        for port in ports
        if _is_active(port)
        and port.node_id in nodes_by_id
        and normalize_kind(nodes_by_id[port.node_id].node_kind) == kind
    ]


def _sorted_ports(ports: list[Port]) -> list[Port]:
    return sorted(ports, key=lambda port: (port.node_id, port.port_num, port.id))


def _same_link(a: Port, b: Port) -> bool:
    if not (a.link_width_active and b.link_width_active):
        return False
    if not (a.link_speed_active and b.link_speed_active):
        return False
    return (
        a.link_width_active == b.link_width_active
        and a.link_speed_active == b.link_speed_active
    )


def _pick_switch_port(host_port: Port, switch_ports: list[Port], used: set[int]) -> Port | None:
    free = [port for port in switch_ports if port.id not in used]
    matching = next((port for port in free if _same_link(host_port, port)), None)
    if matching is not None:
        return matching
    return free[0] if free else None


def _first_unused(ports: Iterable[Port], used: set[int]) -> Port | None:
    return next((port for port in ports if port.id not in used), None)


def _ordered_groups(groups: dict[str, TopologyGroup]) -> list[TopologyGroup]:
    known = [groups[kind] for kind in _GROUP_ORDER if kind in groups]
    rest = [groups[kind] for kind in sorted(set(groups) - set(_GROUP_ORDER))]
    return known + rest