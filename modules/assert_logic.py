"""Utility helpers for validating audit output against a check's ``tests`` block."""

from __future__ import annotations

import re
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Tuple


class AssertStatus(Enum):
    """Статусы выполнения проверки."""

    PASS = auto()
    FAIL = auto()
    WARN = auto()  # Некорректное описание теста


class InvalidTestsError(ValueError):
    """Описание ``tests`` в каталоге не может быть вычислено."""


COMPARE_OPS = ("eq", "noteq", "gt", "gte", "lt", "lte", "has", "nothave", "regex")
BIN_OPS = ("and", "or")


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _flag_pattern(flag: str) -> re.Pattern[str]:
    # --flag=value, flag: value, --flag value, or a bare --flag
    return re.compile(
        re.escape(flag) + r"(?:\s*[=:]\s*([^\s]*)|\s+([^\s\-][^\s]*)|(?=[\s,]|$))",
        re.MULTILINE,
    )


def find_flag(output: str, flag: str) -> Optional[str]:
    """Возвращает значение флага в выводе или ``None``, если флага нет.

    Для флага без значения возвращается сам флаг.
    """

    match = _flag_pattern(flag).search(output)
    if match is None:
        return None
    value = match.group(1) if match.group(1) is not None else match.group(2)
    return value if value else flag


def _to_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def compare_value(op: str, actual: str, expected: Any) -> bool:
    """Сравнивает значение флага с ожидаемым с помощью оператора *op*."""

    if op not in COMPARE_OPS:
        raise InvalidTestsError(f"unknown compare op '{op}'")
    expected_text = _as_text(expected)

    if op in ("eq", "noteq"):
        lowered = actual.lower()
        if lowered in ("true", "false"):
            equal = lowered == expected_text.lower()
        else:
            equal = actual == expected_text
        return equal if op == "eq" else not equal

    if op in ("gt", "gte", "lt", "lte"):
        left, right = _to_number(actual), _to_number(expected_text)
        if left is None or right is None:
            return False
        if op == "gt":
            return left > right
        if op == "gte":
            return left >= right
        if op == "lt":
            return left < right
        return left <= right

    if op == "has":
        return expected_text in actual
    if op == "nothave":
        return expected_text not in actual

    if op == "regex":
        try:
            return re.search(expected_text, actual) is not None
        except re.error as exc:
            raise InvalidTestsError(f"invalid regex '{expected_text}': {exc}") from exc
    return False


def evaluate_test_item(output: str, item: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Вычисляет один элемент ``test_items``; возвращает (результат, значение флага)."""

    if not isinstance(item, dict):
        raise InvalidTestsError("test item must be a mapping")
    flag = _as_text(item.get("flag")).strip()
    if not flag:
        raise InvalidTestsError("test item without 'flag'")

    value = find_flag(output, flag)
    if not item.get("set", True):
        return value is None, value
    if value is None:
        return False, None

    compare = item.get("compare") or {}
    if not isinstance(compare, dict):
        raise InvalidTestsError(f"compare of flag '{flag}' must be a mapping")
    op = _as_text(compare.get("op")).strip().lower()
    if not op:
        return True, value
    return compare_value(op, value, compare.get("value")), value


def evaluate_tests(output: str, tests: Dict[str, Any] | None) -> Tuple[bool, Optional[str]]:
    """Вычисляет блок ``tests`` целиком.

    Без ``test_items`` проверка считается пройденной, если команда вывела
    хоть что-то.

    Raises:
        InvalidTestsError: неизвестный ``bin_op``/``op`` или ошибка в описании.
    """

    tests = tests or {}
    if not isinstance(tests, dict):
        raise InvalidTestsError("'tests' must be a mapping")

    items: List[Any] = tests.get("test_items") or []
    if not items:
        return bool(output.strip()), None

    bin_op = _as_text(tests.get("bin_op") or "and").strip().lower()
    if bin_op not in BIN_OPS:
        raise InvalidTestsError(f"unknown binary operator for tests '{bin_op}'")

    results: List[bool] = []
    actual: Optional[str] = None
    for item in items:
        ok, value = evaluate_test_item(output, item)
        results.append(ok)
        if value is not None:
            actual = value

    if bin_op == "or":
        return any(results), actual
    return all(results), actual


def assert_output(output: str, tests: Dict[str, Any] | None) -> Tuple[str, Optional[str]]:
    """Сравнивает фактический вывод аудита с блоком ``tests``.

    Returns
    -------
    tuple
        Строковый статус (``PASS``, ``FAIL`` или ``WARN``) и найденное
        значение флага либо текст ошибки описания теста.
    """

    try:
        ok, actual = evaluate_tests(output, tests)
    except InvalidTestsError as exc:
        return AssertStatus.WARN.name, str(exc)
    status = AssertStatus.PASS if ok else AssertStatus.FAIL
    return status.name, actual
