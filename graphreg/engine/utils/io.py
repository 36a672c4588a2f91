"""YAML helpers used by the configuration layer."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import yaml

__all__ = ["read_yaml", "write_yaml"]


def read_yaml(path: Path | str) -> object:
    """Read a YAML document and return the corresponding Python object."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def write_yaml(payload: Mapping[str, object], path: Path | str) -> Path:
    """Serialize ``payload`` to ``path`` creating parent directories."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(payload), handle, sort_keys=True)
    return target
