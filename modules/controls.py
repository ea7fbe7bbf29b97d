# modules/controls.py
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from cisbench.exceptions import (
    CatalogLoadError,
    LevelParseError,
    MissingDependencyError,
    NodeTypeMismatchError,
    SerializationError,
)
from modules.check import Check, NodeType, State
from seclib.validator import validate_catalog
from utils.logger import log_debug, log_warn

try:
    import yaml  # type: ignore
except ModuleNotFoundError as exc:  # pragma: no cover - runtime guard
    yaml = None  # type: ignore
    _YAML_IMPORT_ERROR = exc
else:  # pragma: no cover - exercised indirectly
    _YAML_IMPORT_ERROR = None


LITERAL_KEYS = ("id", "version")
_NUMERIC_TAGS = ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")


if yaml is not None:

    class CatalogLoader(yaml.SafeLoader):  # type: ignore[name-defined,misc]
        """SafeLoader, который сохраняет исходный текст ``id`` и ``version``.

        Без кавычек ``1.10`` иначе превращается в число ``1.1``.
        """

        def construct_mapping(self, node, deep=False):
            mapping = super().construct_mapping(node, deep=deep)
            for key_node, value_node in node.value:
                if (
                    key_node.value in LITERAL_KEYS
                    and isinstance(value_node, yaml.ScalarNode)
                    and value_node.tag in _NUMERIC_TAGS
                ):
                    mapping[key_node.value] = value_node.value
            return mapping


CheckRunner = Callable[[Check], None]

DEFAULT_LEVELS = ("1", "2")
LEVEL_PATTERN = re.compile(r"[0-9]+")


def default_runner(check: Check) -> None:
    check.run()


def parse_level(value: Any, source: str = "user") -> int:
    """Разбирает уровень соответствия как неотрицательное десятичное число.

    Raises:
        LevelParseError: значение не является неотрицательным целым.
    """

    text = "" if value is None else str(value)
    if not LEVEL_PATTERN.fullmatch(text):
        raise LevelParseError(value, source)
    return int(text)


# ───────────────────────── Модель каталога ─────────────────────────

_STATE_FIELDS = {
    State.PASS: "pass_",
    State.FAIL: "fail",
    State.WARN: "warn",
    State.INFO: "info",
    State.SKIP: "skip",
}


@dataclass
class Summary:
    pass_: int = 0
    fail: int = 0
    warn: int = 0
    info: int = 0
    skip: int = 0

    def reset(self) -> None:
        self.pass_ = self.fail = self.warn = self.info = self.skip = 0

    @property
    def total(self) -> int:
        return self.pass_ + self.fail + self.warn + self.info + self.skip

    def record(self, state: Any) -> bool:
        """Increments the counter of *state*; returns False for an unknown state."""
        attr = _STATE_FIELDS.get(state)
        if attr is None:
            return False
        setattr(self, attr, getattr(self, attr) + 1)
        return True

    def to_dict(self, prefix: str = "total_") -> Dict[str, int]:
        return {
            f"{prefix}pass": self.pass_,
            f"{prefix}fail": self.fail,
            f"{prefix}warn": self.warn,
            f"{prefix}info": self.info,
            f"{prefix}skip": self.skip,
        }


@dataclass
class Group:
    id: str
    text: str = ""
    checks: List[Check] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    def shell(self) -> "Group":
        """Empty copy carrying only the identifying fields."""
        return Group(id=self.id, text=self.text)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.id,
            "pass": self.summary.pass_,
            "fail": self.summary.fail,
            "warn": self.summary.warn,
            "skip": self.summary.skip,
            "info": self.summary.info,
            "desc": self.text,
            "results": [check.to_dict() for check in self.checks],
        }


@dataclass
class Controls:
    """Каталог проверок одного типа узла и результаты последнего запуска.

    ``catalog`` хранит группы в том виде, в каком они были загружены, и не
    заменяется запусками. ``groups`` хранит представление последнего запуска:
    только выбранные группы и проверки.

    Экземпляр не рассчитан на одновременные запуски из нескольких потоков.
    """

    id: str
    version: str = ""
    text: str = ""
    type: str = ""
    level: str = "1"
    catalog: List[Group] = field(default_factory=list)
    runner: CheckRunner = field(default=default_runner, repr=False, compare=False)
    groups: List[Group] = field(init=False)
    summary: Summary = field(init=False, default_factory=Summary)
    summary_level_wise: Dict[str, Summary] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.groups = list(self.catalog)
        self._reset_summaries()

    # ───────────── выбор проверок ─────────────

    def get_all_group_ids(self) -> List[str]:
        return [group.id for group in self.catalog]

    def get_all_check_ids(self) -> List[str]:
        return [check.id for group in self.catalog for check in group.checks]

    def known_levels(self) -> List[str]:
        levels = list(DEFAULT_LEVELS)
        for group in self.catalog:
            for check in group.checks:
                if check.level not in levels:
                    levels.append(check.level)
        return levels

    def find_check(self, check_id: str) -> Optional[Check]:
        for group in self.catalog:
            for check in group.checks:
                if check.id == check_id:
                    return check
        return None

    def _reset_summaries(self) -> None:
        self.summary = Summary()
        self.summary_level_wise = {level: Summary() for level in self.known_levels()}
        for group in self.catalog:
            group.summary.reset()

    def _execute(self, check: Check) -> None:
        log_debug(f"Running check {check.id}")
        self.runner(check)

    def run_all(self) -> Summary:
        return self.run_group()

    def run_group(self, *group_ids: str) -> Summary:
        """Runs every check of the requested groups with level gating.

        A check that requires a higher level than ``self.level`` is set to
        SKIP without being executed. A group requested twice is run twice and
        appears twice in ``groups``.

        Raises:
            LevelParseError: the user level or a check level is not a
                non-negative integer; the run stops immediately and the
                results are cleared, so ``groups`` is empty.
        """

        self._reset_summaries()

        if not group_ids:
            group_ids = tuple(self.get_all_group_ids())
        requested = [str(gid) for gid in group_ids]

        try:
            self.groups = self._run_selected_groups(requested)
        except LevelParseError:
            self._reset_summaries()
            self.groups = []
            raise
        return replace(self.summary)

    def _run_selected_groups(self, requested: List[str]) -> List[Group]:
        user_level = parse_level(self.level)

        selected: List[Group] = []
        for group in self.catalog:
            for gid in requested:
                if gid != group.id:
                    continue
                group.summary.reset()
                for check in group.checks:
                    check_level = parse_level(check.level, source=check.id)
                    check.reset()
                    if user_level < check_level:
                        log_debug(
                            f"Skipping check {check.id}: level {check_level} > user level {user_level}"
                        )
                        check.state = State.SKIP
                    else:
                        self._execute(check)
                    check.test_info.append(check.remediation)
                    summarize(self, check)
                    summarize_group(group, check)
                    summarize_level(self, check)
                selected.append(group)
        return selected

    def run_checks(self, *check_ids: str) -> Summary:
        """Runs the checks with the supplied IDs, without level gating.

        ``groups`` is rebuilt from fresh group shells, one per owning group in
        first-seen order. A check ID requested twice is run twice.
        """

        self._reset_summaries()

        if not check_ids:
            check_ids = tuple(self.get_all_check_ids())
        requested = [str(cid) for cid in check_ids]

        rebuilt: List[Group] = []
        shells: Dict[str, Group] = {}
        for group in self.catalog:
            for check in group.checks:
                for cid in requested:
                    if cid != check.id:
                        continue
                    check.reset()
                    self._execute(check)
                    check.test_info.append(check.remediation)
                    summarize(self, check)
                    summarize_level(self, check)

                    shell = shells.get(group.id)
                    if shell is None:
                        shell = group.shell()
                        shells[shell.id] = shell
                        rebuilt.append(shell)
                    shell.checks.append(check)
                    summarize_group(shell, check)

        self.groups = rebuilt
        return replace(self.summary)

    # ───────────── отчёт ─────────────

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "text": self.text,
            "node_type": self.type,
            "cis_level": self.level,
            "tests": [group.to_dict() for group in self.groups],
        }
        data.update(self.summary.to_dict())
        data["SummaryLevelWise"] = {
            level: summary.to_dict() for level, summary in self.summary_level_wise.items()
        }
        return data

    def to_json(self, indent: Optional[int] = None) -> bytes:
        """Encodes the results of the last run to JSON."""
        try:
            return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"failed to encode controls '{self.id}': {exc}") from exc


# ───────────────────────── Агрегация ─────────────────────────

def _unknown_state(check: Check, scope: str) -> None:
    log_warn(f"Check {check.id} has unknown state {check.state!r}; not counted in {scope} summary")


def _fold(summary: Summary, check: Check, scope: str) -> None:
    if not summary.record(check.state):
        _unknown_state(check, scope)


def summarize(controls: Controls, check: Check) -> None:
    _fold(controls.summary, check, "global")


def summarize_group(group: Group, check: Check) -> None:
    _fold(group.summary, check, f"group {group.id}")


def summarize_level(controls: Controls, check: Check) -> None:
    if check.state not in _STATE_FIELDS:
        _unknown_state(check, f"level {check.level}")
        return
    controls.summary_level_wise.setdefault(check.level, Summary()).record(check.state)


# ───────────────────────── Загрузка каталога ─────────────────────────

def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _node_type_value(node_type: NodeType | str) -> str:
    if isinstance(node_type, NodeType):
        return node_type.value
    return str(node_type)


def _parse_yaml(raw: bytes | str) -> Any:
    if yaml is None:
        raise MissingDependencyError(
            package="PyYAML",
            import_name="yaml",
            instructions="pip install PyYAML",
            original=_YAML_IMPORT_ERROR,
        )
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CatalogLoadError("controls file is not valid UTF-8", [str(exc)]) from exc
    try:
        return yaml.load(raw, Loader=CatalogLoader)  # type: ignore[union-attr]
    except yaml.YAMLError as exc:  # type: ignore[union-attr]
        raise CatalogLoadError("failed to unmarshal YAML", [str(exc)]) from exc


def _build_groups(raw_groups: Iterable[Mapping[str, Any]], substitutions: Mapping[str, str] | None) -> List[Group]:
    groups: List[Group] = []
    for raw_group in raw_groups:
        checks: List[Check] = []
        for raw_check in raw_group.get("checks") or []:
            check = Check.from_dict(raw_check)
            try:
                check.prepare(substitutions)
            except ValueError as exc:
                raise CatalogLoadError(f"check '{check.id}': cannot parse audit", [str(exc)]) from exc
            checks.append(check)
        groups.append(Group(id=str(raw_group["id"]), text=_text(raw_group.get("text")), checks=checks))
    return groups


def new_controls(
    node_type: NodeType | str,
    level: str,
    raw: bytes | str,
    *,
    substitutions: Mapping[str, str] | None = None,
    runner: CheckRunner | None = None,
) -> Controls:
    """Загружает каталог проверок из YAML.

    Raises:
        CatalogLoadError: документ не разбирается или не проходит схему.
        NodeTypeMismatchError: тип узла каталога не совпадает с *node_type*.
    """

    data = _parse_yaml(raw)
    is_valid, errors = validate_catalog(data)
    if not is_valid:
        raise CatalogLoadError("invalid controls catalog", errors)

    expected = _node_type_value(node_type)
    actual = str(data["type"])
    if expected != actual:
        raise NodeTypeMismatchError(expected, actual)

    groups = _build_groups(data["groups"], substitutions)
    controls = Controls(
        id=str(data["id"]),
        version=_text(data.get("version")),
        text=_text(data.get("text")),
        type=actual,
        level=_text(level),
        catalog=groups,
        runner=runner or default_runner,
    )
    log_debug(
        f"Loaded controls {controls.id} ({actual}): "
        f"{len(groups)} groups, {len(controls.get_all_check_ids())} checks"
    )
    return controls


def load_controls_file(
    path: str | Path,
    node_type: NodeType | str,
    level: str,
    *,
    substitutions: Mapping[str, str] | None = None,
    runner: CheckRunner | None = None,
) -> Controls:
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Controls file not found: {p}")
    return new_controls(node_type, level, p.read_bytes(), substitutions=substitutions, runner=runner)


def resolve_catalog_path(config_dir: str | Path, version: str, node_type: NodeType | str) -> Path:
    """Возвращает ``<config_dir>/<version>/<node_type>.yaml`` (или ``.yml``)."""
    base = Path(config_dir) / version
    name = _node_type_value(node_type)
    candidate = base / f"{name}.yaml"
    if candidate.exists():
        return candidate
    alternative = base / f"{name}.yml"
    if alternative.exists():
        return alternative
    return candidate
