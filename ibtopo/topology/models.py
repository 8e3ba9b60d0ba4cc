"""Domain models, errors and the repository protocol of the topology service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

__all__ = [
    "TopologyError",
    "BadArgumentsError",
    "NotFoundError",
    "UnavailableError",
    "LogNotParsedError",
    "LogStatus",
    "Log",
    "NodeInfo",
    "Node",
    "Port",
    "TopologyData",
    "TopologySummary",
    "TopologyNode",
    "TopologyGroup",
    "TopologyEdge",
    "TopologyResult",
    "Repository",
]


class TopologyError(Exception):
    """Base class of topology errors."""

    default_message = "topology error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class BadArgumentsError(TopologyError):
    default_message = "arguments are not acceptable"


class NotFoundError(TopologyError):
    default_message = "resource is not found"


class UnavailableError(TopologyError):
    default_message = "dependency unavailable"


class LogNotParsedError(TopologyError):
    default_message = "log is not parsed"


class LogStatus(str, Enum):
    """Processing state of an uploaded log."""

    PROCESSING = "processing"
    PARSED = "parsed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class Log:
    id: int = 0
    file_path: str = ""
    status: LogStatus | str = ""
    nodes_count: int = 0
    ports_count: int = 0
    error: str = ""
    uploaded_at: str = ""
    parsed_at: str = ""


@dataclass
class NodeInfo:
    serial_number: str = ""
    product_name: str = ""


@dataclass
class Node:
    id: int = 0
    log_id: int = 0
    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    num_ports: int = 0
    info: NodeInfo | None = None


@dataclass
class Port:
    id: int = 0
    log_id: int = 0
    node_id: int = 0
    node_guid: str = ""
    port_guid: str = ""
    port_num: int = 0
    port_state: int = 0
    link_width_active: int = 0
    link_speed_active: int = 0


@dataclass
class TopologyData:
    log: Log = field(default_factory=Log)
    nodes: list[Node] = field(default_factory=list)
    ports: list[Port] = field(default_factory=list)


@dataclass
class TopologySummary:
    nodes_count: int = 0
    ports_count: int = 0
    edges_count: int = 0
    hosts_count: int = 0
    switches_count: int = 0


@dataclass
class TopologyNode:
    id: int = 0
    log_id: int = 0
    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    declared_ports_count: int = 0
    parsed_ports_count: int = 0
    serial_number: str = ""
    product_name: str = ""


@dataclass
class TopologyGroup:
    name: str = ""
    kind: str = ""
    node_ids: list[int] = field(default_factory=list)
    node_guids: list[str] = field(default_factory=list)


@dataclass
class TopologyEdge:
    source_node_id: int = 0
    source_node_guid: str = ""
    source_port_num: int = 0
    source_port_guid: str = ""
    target_node_id: int = 0
    target_node_guid: str = ""
    target_port_num: int = 0
    target_port_guid: str = ""
    relation: str = ""
    link_width_active: int = 0
    link_speed_active: int = 0
    port_state: int = 0


@dataclass
class TopologyResult:
    log_id: int = 0
    summary: TopologySummary = field(default_factory=TopologySummary)
    nodes: list[TopologyNode] = field(default_factory=list)
    groups: list[TopologyGroup] = field(default_factory=list)
    edges: list[TopologyEdge] = field(default_factory=list)


@runtime_checkable
class Repository(Protocol):
    """What the topology service needs from the repository."""

    def ping(self) -> None: ...

    def get_topology_data(self, log_id: int) -> TopologyData: ...