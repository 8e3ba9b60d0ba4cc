"""Domain models, errors and the storage protocol of the repository service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


class RepositoryError(Exception):
    """Base class of repository errors."""

    default_message = "repository error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class BadArgumentsError(RepositoryError):
    default_message = "arguments are not acceptable"


class NotFoundError(RepositoryError):
    default_message = "resource is not found"


class UnavailableError(RepositoryError):
    default_message = "dependency unavailable"


class InvalidStatusError(RepositoryError):
    default_message = "invalid log status"


class LogStatus(str, Enum):
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
    id: int = 0
    node_id: int = 0
    node_guid: str = ""
    serial_number: str = ""
    part_number: str = ""
    revision: str = ""
    product_name: str = ""
    raw_json: str = ""


@dataclass
class Node:
    id: int = 0
    log_id: int = 0
    node_guid: str = ""
    node_desc: str = ""
    node_type: int = 0
    node_kind: str = ""
    num_ports: int = 0
    class_version: int = 0
    base_version: int = 0
    system_image_guid: str = ""
    port_guid: str = ""
    info: NodeInfo | None = None
    raw_json: str = ""


@dataclass
class Port:
    id: int = 0
    log_id: int = 0
    node_id: int = 0
    node_guid: str = ""
    port_guid: str = ""
    port_num: int = 0
    lid: int = 0
    local_port_num: int = 0
    port_state: int = 0
    port_phy_state: int = 0
    link_width_active: int = 0
    link_speed_active: int = 0
    raw_json: str = ""


@dataclass
class ParsedLog:
    nodes: list[Node] = field(default_factory=list)
    ports: list[Port] = field(default_factory=list)
    nodes_info: list[NodeInfo] = field(default_factory=list)


@dataclass
class SaveParsedLogResult:
    log_id: int = 0
    nodes_count: int = 0
    ports_count: int = 0


@dataclass
class TopologyData:
    log: Log = field(default_factory=Log)
    nodes: list[Node] = field(default_factory=list)
    ports: list[Port] = field(default_factory=list)


@runtime_checkable
class Database(Protocol):
    """Storage operations the repository service relies on."""

    def ping(self) -> None: ...

    def create_log(self, file_path: str) -> int: ...

    def save_parsed_log(self, log_id: int, parsed: ParsedLog) -> SaveParsedLogResult: ...

    def fail_log(self, log_id: int, error_text: str) -> None: ...

    def get_log(self, log_id: int) -> Log: ...

    def get_node(self, node_id: int) -> Node: ...

    def get_ports_by_node(self, node_id: int) -> list[Port]: ...

    def get_nodes_by_log(self, log_id: int) -> list[Node]: ...

    def get_ports_by_log(self, log_id: int) -> list[Port]: ...

    def get_topology_data(self, log_id: int) -> TopologyData: ...