"""Configuration of the topology server: file values, environment, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

# (field, key in the file, environment variable, default)
_FIELDS = (
    ("log_level", "log_level", "LOG_LEVEL", "DEBUG"),
    ("address", "topology_address", "TOPOLOGY_ADDRESS", "localhost:8083"),
    ("repository_address", "repository_address", "REPOSITORY_GRPC_ADDRESS", "localhost:8082"),
)


@dataclass(frozen=True)
class Config:
    log_level: str = "DEBUG"
    address: str = "localhost:8083"
    repository_address: str = "localhost:8082"


def _read_file(path: Path) -> dict:
    if path.suffix.lower() not in (".yaml", ".yml", ".json"):
        raise ValueError(f"cannot read config {str(path)!r}: unsupported file format")
    with path.open(encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as err:
            raise ValueError(f"cannot read config {str(path)!r}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"cannot read config {str(path)!r}: top level is not a mapping")
    return data


def load_config(config_path: str | os.PathLike) -> Config:
    """Load the configuration file, let the environment override it, fill defaults."""
    data = _read_file(Path(config_path))

    values: dict[str, str] = {}
    for name, key, env_name, default in _FIELDS:
        value = ""
        if data.get(key) is not None:
            value = str(data[key])
        if env_name in os.environ:
            value = os.environ[env_name]
        elif not value:
            value = default
        values[name] = value

    return Config(**values)