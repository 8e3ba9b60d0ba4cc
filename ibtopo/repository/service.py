"""Repository service: argument checks in front of the storage."""

from __future__ import annotations

import logging

from ibtopo.repository.models import (
    BadArgumentsError,
    Database,
    Log,
    Node,
    ParsedLog,
    Port,
    SaveParsedLogResult,
    TopologyData,
)


def _require_positive(value: int) -> None:
    if value <= 0:
        raise BadArgumentsError()


class Service:
    """Validates requests and hands them to the database."""

    def __init__(self, log: logging.Logger, db: Database) -> None:
        self._log = log
        self._db = db

    def ping(self) -> None:
        self._db.ping()

    def create_log(self, file_path: str) -> int:
        if not file_path.strip():
            raise BadArgumentsError()
        return self._db.create_log(file_path)

    def save_parsed_log(self, log_id: int, parsed: ParsedLog) -> SaveParsedLogResult:
        _require_positive(log_id)
        return self._db.save_parsed_log(log_id, parsed)

    def fail_log(self, log_id: int, error_text: str) -> None:
        _require_positive(log_id)
        self._db.fail_log(log_id, error_text)

    def get_log(self, log_id: int) -> Log:
        _require_positive(log_id)
        return self._db.get_log(log_id)

    def get_node(self, node_id: int) -> Node:
        _require_positive(node_id)
        return self._db.get_node(node_id)

    def get_ports_by_node(self, node_id: int) -> list[Port]:
        _require_positive(node_id)
        return self._db.get_ports_by_node(node_id)

    def get_nodes_by_log(self, log_id: int) -> list[Node]:
        _require_positive(log_id)
        return self._db.get_nodes_by_log(log_id)

    def get_ports_by_log(self, log_id: int) -> list[Port]:
        _require_positive(log_id)
        return self._db.get_ports_by_log(log_id)

    def get_topology_data(self, log_id: int) -> TopologyData:
        _require_positive(log_id)
        return self._db.get_topology_data(log_id)