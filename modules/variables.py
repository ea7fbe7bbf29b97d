# modules/variables.py
"""Значения для подстановки ``$name`` в командах аудита."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping

from modules.check import NodeType


def load_env_file(path: Path, *, optional: bool = False) -> Dict[str, str]:
    result: Dict[str, str] = {}
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if optional:
            return {}
        raise
    except OSError as exc:
        if optional:
            return {}
        raise RuntimeError(f"Не удалось прочитать файл переменных {path}: {exc}") from exc

    for raw_line in data.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if (value.startswith("\"") and value.endswith("\"")) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        result[key] = value
    return result


def build_substitutions(
    catalog_path: Path,
    node_type: NodeType | str,
    overrides: Mapping[str, str] | None = None,
) -> Dict[str, str]:
    """Собирает подстановки: ``<node_type>.env`` рядом с каталогом, затем *overrides*."""

    name = node_type.value if isinstance(node_type, NodeType) else str(node_type)
    variables = load_env_file(catalog_path.parent / f"{name}.env", optional=True)
    for key, value in (overrides or {}).items():
        variables[str(key)] = str(value)
    return variables
