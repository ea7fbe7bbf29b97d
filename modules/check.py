# modules/check.py
from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from modules.assert_logic import assert_output
from modules.pipeline_executor import CommandError, missing_executables, run_pipeline
from utils.logger import log_debug


class State(str, Enum):
    """Terminal state of a check."""

    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"
    INFO = "INFO"
    SKIP = "SKIP"


class NodeType(str, Enum):
    MASTER = "master"
    NODE = "node"
    FEDERATED = "federated"


MANUAL = "manual"
SKIP_TYPE = "skip"

DEFAULT_TIMEOUT = 30

SUBSTITUTION_PATTERN = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


def substitute(text: str, substitutions: Mapping[str, str] | None) -> str:
    """Подставляет ``$name`` из *substitutions*; неизвестные имена остаются как есть."""

    if not substitutions or not text:
        return text

    def repl(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in substitutions:
            return str(substitutions[name])
        return match.group(0)

    return SUBSTITUTION_PATTERN.sub(repl, text)


def text_to_command(text: str) -> List[List[str]]:
    """Split audit text into pipeline stages, each stage an argv list.

    ``|`` separates stages unless it is quoted. The result depends only on
    *text*.

    Raises:
        ValueError: unbalanced quotes.
    """

    if not text or not text.strip():
        return []

    lexer = shlex.shlex(text, posix=True, punctuation_chars="|")
    lexer.whitespace_split = True
    # "#" is an ordinary character in audit text
    lexer.commenters = ""

    commands: List[List[str]] = []
    current: List[str] = []
    for token in lexer:
        if token and set(token) == {"|"}:
            if current:
                commands.append(current)
            current = []
            continue
        current.append(token)
    if current:
        commands.append(current)
    return commands


@dataclass
class Check:
    id: str
    text: str = ""
    audit: str = ""
    type: str = ""
    tests: Dict[str, Any] = field(default_factory=dict)
    remediation: str = ""
    scored: bool = True
    level: str = "1"
    commands: List[List[str]] = field(default_factory=list)
    state: Optional[State] = None
    test_info: List[str] = field(default_factory=list)
    actual_value: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Check":
        tests = raw.get("tests") or {}
        return cls(
            id=str(raw["id"]),
            text=str(raw.get("text") or ""),
            audit=str(raw.get("audit") or ""),
            type=str(raw.get("type") or "").strip().lower(),
            tests=dict(tests) if isinstance(tests, Mapping) else {},
            remediation=str(raw.get("remediation") or ""),
            scored=bool(raw.get("scored", True)),
            level=str(raw["level"]).strip(),
            timeout=int(raw.get("timeout", DEFAULT_TIMEOUT)),
        )

    def prepare(self, substitutions: Mapping[str, str] | None = None) -> None:
        """Derives ``commands`` from the audit text."""
        self.audit = substitute(self.audit, substitutions)
        self.commands = text_to_command(self.audit)

    def reset(self) -> None:
        self.state = None
        self.test_info = []
        self.actual_value = None

    def run(self) -> None:
        """Выполняет аудит проверки и выставляет ``state``.

        Ошибки выполнения не выбрасываются: они превращаются в WARN с
        пояснением в ``test_info``.
        """

        if self.type == SKIP_TYPE:
            self.state = State.INFO
            return

        if self.type == MANUAL or not self.scored:
            self.state = State.WARN
            return

        if not self.commands:
            self.state = State.WARN
            self.test_info.append("no audit command defined")
            return

        missing = missing_executables(self.commands)
        if missing:
            self.state = State.WARN
            self.test_info.append(f"command not found: {', '.join(missing)}")
            return

        try:
            result = run_pipeline(self.commands, timeout=self.timeout)
        except CommandError as exc:
            self.state = State.WARN
            self.test_info.append(str(exc))
            return

        for message in result.errors:
            log_debug(f"{self.id}: {message}")

        status, detail = assert_output(result.stdout, self.tests)
        if status == State.WARN.value:
            self.test_info.append(detail or "invalid tests definition")
        else:
            self.actual_value = detail
        self.state = State(status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_number": self.id,
            "test_desc": self.text,
            "audit": self.audit,
            "type": self.type,
            "level": self.level,
            "scored": self.scored,
            "remediation": self.remediation,
            "test_info": list(self.test_info),
            "status": self.state.value if isinstance(self.state, State) else self.state,
            "actual_value": self.actual_value,
        }
