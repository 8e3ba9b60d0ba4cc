"""SQLite-backed storage of parsed logs, nodes and ports."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from ibtopo.repository.models import (
    BadArgumentsError,
    InvalidStatusError,
    Log,
    LogStatus,
    Node,
    NodeInfo,
    NotFoundError,
    ParsedLog,
    Port,
    RepositoryError,
    SaveParsedLogResult,
    TopologyData,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_path TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('processing', 'parsed', 'failed')),
    nodes_count INTEGER NOT NULL DEFAULT 0,
    ports_count INTEGER NOT NULL DEFAULT 0,
    error_text TEXT NOT NULL DEFAULT '',
    uploaded_at TEXT NOT NULL,
    parsed_at TEXT
);

CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_id INTEGER NOT NULL REFERENCES logs (id) ON DELETE CASCADE,
    node_guid TEXT NOT NULL,
    node_desc TEXT NOT NULL DEFAULT '',
    node_type INTEGER NOT NULL DEFAULT 0,
    node_kind TEXT NOT NULL DEFAULT '',
    num_ports INTEGER NOT NULL DEFAULT 0,
    class_version INTEGER NOT NULL DEFAULT 0,
    base_version INTEGER NOT NULL DEFAULT 0,
    system_image_guid TEXT NOT NULL DEFAULT '',
    port_guid TEXT NOT NULL DEFAULT '',
    raw_json TEXT NOT NULL DEFAULT '',
    UNIQUE (log_id, node_guid)
);

CREATE TABLE IF NOT EXISTS nodes_info (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    node_id INTEGER NOT NULL UNIQUE REFERENCES nodes (id) ON DELETE CASCADE,
    node_guid TEXT NOT NULL,
    serial_number TEXT NOT NULL DEFAULT '',
    part_number TEXT NOT NULL DEFAULT '',
    revision TEXT NOT NULL DEFAULT '',
    product_name TEXT NOT NULL DEFAULT '',
    raw_json TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS ports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_id INTEGER NOT NULL REFERENCES logs (id) ON DELETE CASCADE,
    node_id INTEGER NOT NULL REFERENCES nodes (id) ON DELETE CASCADE,
    node_guid TEXT NOT NULL,
    port_guid TEXT NOT NULL DEFAULT '',
    port_num INTEGER NOT NULL DEFAULT 0,
    lid INTEGER NOT NULL DEFAULT 0,
    local_port_num INTEGER NOT NULL DEFAULT 0,
    port_state INTEGER NOT NULL DEFAULT 0,
    port_phy_state INTEGER NOT NULL DEFAULT 0,
    link_width_active INTEGER NOT NULL DEFAULT 0,
    link_speed_active INTEGER NOT NULL DEFAULT 0,
    raw_json TEXT NOT NULL DEFAULT '',
    UNIQUE (node_id, port_num)
);

CREATE INDEX IF NOT EXISTS idx_nodes_log_id ON nodes (log_id);
CREATE INDEX IF NOT EXISTS idx_ports_log_id ON ports (log_id);
CREATE INDEX IF NOT EXISTS idx_ports_node_id ON ports (node_id);
"""

_LOG_COLUMNS = """
    id, file_path, status, nodes_count, ports_count,
    error_text, uploaded_at, parsed_at
"""

_NODE_COLUMNS = """
    id, log_id, node_guid, node_desc, node_type, node_kind, num_ports,
    class_version, base_version, system_image_guid, port_guid, raw_json
"""

_PORT_COLUMNS = """
    id, log_id, node_id, node_guid, port_guid, port_num, lid, local_port_num,
    port_state, port_phy_state, link_width_active, link_speed_active, raw_json
"""

_NODES_WITH_INFO_QUERY = """
    SELECT
        n.id, n.log_id, n.node_guid, n.node_desc, n.node_type, n.node_kind,
        n.num_ports, n.class_version, n.base_version, n.system_image_guid,
        n.port_guid, n.raw_json,
        ni.id AS info_id,
        ni.node_id AS info_node_id,
        ni.node_guid AS info_node_guid,
        ni.serial_number AS info_serial_number,
        ni.part_number AS info_part_number,
        ni.revision AS info_revision,
        ni.product_name AS info_product_name,
        ni.raw_json AS info_raw_json
    FROM nodes n
    LEFT JOIN nodes_info ni ON ni.node_id = n.id
    WHERE n.log_id = ?
    ORDER BY n.id
"""


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@contextmanager
def _wrapped(context: str) -> Iterator[None]:
    """Turn driver errors into repository errors carrying a context prefix."""
    try:
        yield
    except sqlite3.Error as err:
        raise RepositoryError(f"{context}: {err}") from err


def _status(value: str) -> LogStatus | str:
    try:
        return LogStatus(value)
    except ValueError:
        return value


def _log_from_row(row: sqlite3.Row) -> Log:
    return Log(
        id=row["id"],
        file_path=row["file_path"],
        status=_status(row["status"]),
        nodes_count=row["nodes_count"],
        ports_count=row["ports_count"],
        error=row["error_text"],
        uploaded_at=row["uploaded_at"],
        parsed_at=row["parsed_at"] or "",
    )


def _node_from_row(row: sqlite3.Row) -> Node:
    return Node(
        id=row["id"],
        log_id=row["log_id"],
        node_guid=row["node_guid"],
        node_desc=row["node_desc"],
        node_type=row["node_type"],
        node_kind=row["node_kind"],
        num_ports=row["num_ports"],
        class_version=row["class_version"],
        base_version=row["base_version"],
        system_image_guid=row["system_image_guid"],
        port_guid=row["port_guid"],
        raw_json=row["raw_json"],
    )


def _node_with_info_from_row(row: sqlite3.Row) -> Node:
    node = _node_from_row(row)
    if row["info_id"] is not None:
        node.info = NodeInfo(
            id=row["info_id"],
            node_id=row["info_node_id"] or 0,
            node_guid=row["info_node_guid"] or "",
            serial_number=row["info_serial_number"] or "",
            part_number=row["info_part_number"] or "",
            revision=row["info_revision"] or "",
            product_name=row["info_product_name"] or "",
            raw_json=row["info_raw_json"] or "",
        )
    return node


def _node_info_from_row(row: sqlite3.Row) -> NodeInfo:
    return NodeInfo(
        id=row["id"],
        node_id=row["node_id"],
        node_guid=row["node_guid"],
        serial_number=row["serial_number"],
        part_number=row["part_number"],
        revision=row["revision"],
        product_name=row["product_name"],
        raw_json=row["raw_json"],
    )


def _port_from_row(row: sqlite3.Row) -> Port:
    return Port(
        id=row["id"],
        log_id=row["log_id"],
        node_id=row["node_id"],
        node_guid=row["node_guid"],
        port_guid=row["port_guid"],
        port_num=row["port_num"],
        lid=row["lid"],
        local_port_num=row["local_port_num"],
        port_state=row["port_state"],
        port_phy_state=row["port_phy_state"],
        link_width_active=row["link_width_active"],
        link_speed_active=row["link_speed_active"],
        raw_json=row["raw_json"],
    )


class Storage:
    """Database adapter of the repository service.

    The address is an SQLite database path, ":memory:", or a "file:" URI.
    """

    def __init__(self, log: logging.Logger, address: str) -> None:
        self._log = log
        try:
            self._conn = sqlite3.connect(
                address,
                uri=address.startswith("file:"),
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as err:
            log.error("connection problem error=%s", err)
            raise RepositoryError(f"connect db: {err}") from err

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    def migrate(self) -> None:
        """Create the schema if it does not exist yet."""
        self._log.debug("running migrations")
        try:
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as err:
            self._log.error("migration failed error=%s", err)
            raise RepositoryError(f"migrate: {err}") from err
        self._log.debug("migrations finished")

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        with _wrapped("begin tx"):
            self._conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield self._conn
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        with _wrapped("commit tx"):
            self._conn.execute("COMMIT")

    def ping(self) -> None:
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as err:
            self._log.warning("db ping failed error=%s", err)
            raise RepositoryError(f"ping db: {err}") from err

    def create_log(self, file_path: str) -> int:
        with _wrapped("create log"):
            cursor = self._conn.execute(
                "INSERT INTO logs (file_path, status, uploaded_at) VALUES (?, 'processing', ?)",
                (file_path, _now()),
            )
        return cursor.lastrowid

    def save_parsed_log(self, log_id: int, parsed: ParsedLog) -> SaveParsedLogResult:
        """Store nodes, node info and ports of a processing log and mark it parsed."""
        with self._transaction(immediate=True) as conn:
            with _wrapped("lock log"):
                row = conn.execute("SELECT status FROM logs WHERE id = ?", (log_id,)).fetchone()
            if row is None:
                raise NotFoundError()
            current = row["status"]
            if current != LogStatus.PROCESSING.value:
                raise InvalidStatusError(f"invalid log status: log {log_id} is {current}")

            with _wrapped("clear old parsed log data"):
                conn.execute("DELETE FROM nodes WHERE log_id = ?", (log_id,))

            node_ids: dict[str, int] = {}
            for node in parsed.nodes:
                if not node.node_guid:
                    raise BadArgumentsError("arguments are not acceptable: node_guid is empty")
                with _wrapped(f"insert node {node.node_guid!r}"):
                    cursor = conn.execute(
                        """
                        INSERT INTO nodes (
                            log_id, node_guid, node_desc, node_type, node_kind, num_ports,
                            class_version, base_version, system_image_guid, port_guid, raw_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            log_id,
                            node.node_guid,
                            node.node_desc,
                            node.node_type,
                            node.node_kind,
                            node.num_ports,
                            node.class_version,
                            node.base_version,
                            node.system_image_guid,
                            node.port_guid,
                            node.raw_json,
                        ),
                    )
                node_ids[node.node_guid] = cursor.lastrowid

            for info in parsed.nodes_info:
                if not info.node_guid:
                    raise BadArgumentsError(
                        "arguments are not acceptable: node_info node_guid is empty"
                    )
                if info.node_guid not in node_ids:
                    raise BadArgumentsError(
                        "arguments are not acceptable: node_info references unknown "
                        f"node_guid {info.node_guid!r}"
                    )
                with _wrapped(f"insert node info {info.node_guid!r}"):
                    conn.execute(
                        """
                        INSERT INTO nodes_info (
                            node_id, node_guid, serial_number, part_number,
                            revision, product_name, raw_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            node_ids[info.node_guid],
                            info.node_guid,
                            info.serial_number,
                            info.part_number,
                            info.revision,
                            info.product_name,
                            info.raw_json,
                        ),
                    )

            for port in parsed.ports:
                if not port.node_guid:
                    raise BadArgumentsError(
                        "arguments are not acceptable: port node_guid is empty"
                    )
                if port.node_guid not in node_ids:
                    raise BadArgumentsError(
                        "arguments are not acceptable: port references unknown "
                        f"node_guid {port.node_guid!r}"
                    )
                context = f"insert port node_guid={port.node_guid!r} port_guid={port.port_guid!r}"
                with _wrapped(context):
                    conn.execute(
                        """
                        INSERT INTO ports (
                            log_id, node_id, node_guid, port_guid, port_num, lid,
                            local_port_num, port_state, port_phy_state,
                            link_width_active, link_speed_active, raw_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            log_id,
                            node_ids[port.node_guid],
                            port.node_guid,
                            port.port_guid,
                            port.port_num,
                            port.lid,
                            port.local_port_num,
                            port.port_state,
                            port.port_phy_state,
                            port.link_width_active,
                            port.link_speed_active,
                            port.raw_json,
                        ),
                    )

            nodes_count = len(parsed.nodes)
            ports_count = len(parsed.ports)
            with _wrapped("update parsed log status"):
                cursor = conn.execute(
                    """
                    UPDATE logs
                    SET status = 'parsed', nodes_count = ?, ports_count = ?,
                        error_text = '', parsed_at = ?
                    WHERE id = ?
                    """,
                    (nodes_count, ports_count, _now(), log_id),
                )
            if cursor.rowcount == 0:
                raise NotFoundError()

        return SaveParsedLogResult(
            log_id=log_id, nodes_count=nodes_count, ports_count=ports_count
        )

    def fail_log(self, log_id: int, error_text: str) -> None:
        """Mark a processing log as failed with the given error text."""
        with _wrapped("fail log"):
            cursor = self._conn.execute(
                """
                UPDATE logs
                SET status = 'failed', error_text = ?, parsed_at = ?
                WHERE id = ? AND status = 'processing'
                """,
                (error_text, _now(), log_id),
            )
        if cursor.rowcount:
            return

        with _wrapped("check fail log status"):
            row = self._conn.execute("SELECT status FROM logs WHERE id = ?", (log_id,)).fetchone()
        if row is None:
            raise NotFoundError()
        raise InvalidStatusError(f"invalid log status: log {log_id} is {row['status']}")

    def get_log(self, log_id: int) -> Log:
        with _wrapped("get log"):
            row = self._conn.execute(
                f"SELECT {_LOG_COLUMNS} FROM logs WHERE id = ?", (log_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError()
        return _log_from_row(row)

    def get_node(self, node_id: int) -> Node:
        with _wrapped("get node"):
            row = self._conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM nodes WHERE id = ?", (node_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError()
        node = _node_from_row(row)

        with _wrapped("get node info by node id"):
            info_row = self._conn.execute(
                """
                SELECT id, node_id, node_guid, serial_number, part_number,
                       revision, product_name, raw_json
                FROM nodes_info WHERE node_id = ?
                """,
                (node_id,),
            ).fetchone()
        if info_row is not None:
            node.info = _node_info_from_row(info_row)
        return node

    def get_ports_by_node(self, node_id: int) -> list[Port]:
        with _wrapped("get ports by node"):
            rows = self._conn.execute(
                f"SELECT {_PORT_COLUMNS} FROM ports WHERE node_id = ? ORDER BY port_num, id",
                (node_id,),
            ).fetchall()
        return [_port_from_row(row) for row in rows]

    def get_nodes_by_log(self, log_id: int) -> list[Node]:
        with _wrapped("get nodes by log"):
            rows = self._conn.execute(_NODES_WITH_INFO_QUERY, (log_id,)).fetchall()
        return [_node_with_info_from_row(row) for row in rows]

    def get_ports_by_log(self, log_id: int) -> list[Port]:
        with _wrapped("get ports by log"):
            rows = self._conn.execute(
                f"SELECT {_PORT_COLUMNS} FROM ports WHERE log_id = ? "
                "ORDER BY node_id, port_num, id",
                (log_id,),
            ).fetchall()
        return [_port_from_row(row) for row in rows]

    def get_topology_data(self, log_id: int) -> TopologyData:
        """Read a log with its nodes and ports from one consistent snapshot."""
        with self._transaction() as conn:
            with _wrapped("get topology log"):
                log_row = conn.execute(
                    f"SELECT {_LOG_COLUMNS} FROM logs WHERE id = ?", (log_id,)
                ).fetchone()
            if log_row is None:
                raise NotFoundError()

            with _wrapped("get topology nodes"):
                node_rows = conn.execute(_NODES_WITH_INFO_QUERY, (log_id,)).fetchall()

            with _wrapped("get topology ports"):
                port_rows = conn.execute(
                    f"SELECT {_PORT_COLUMNS} FROM ports WHERE log_id = ? "
                    "ORDER BY node_id, port_num, id",
                    (log_id,),
                ).fetchall()

        return TopologyData(
            log=_log_from_row(log_row),
            nodes=[_node_with_info_from_row(row) for row in node_rows],
            ports=[_port_from_row(row) for row in port_rows],
        )