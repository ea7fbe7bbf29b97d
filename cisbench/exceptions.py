"""Custom exceptions used across cisbench."""

from __future__ import annotations

from typing import List, Optional


class MissingDependencyError(RuntimeError):
    """Raised when an optional runtime dependency is not installed."""

    def __init__(
        self,
        *,
        package: str,
        import_name: Optional[str] = None,
        instructions: Optional[str] = None,
        original: Optional[BaseException] = None,
    ) -> None:
        self.package = package
        self.import_name = import_name or package
        self.instructions = instructions
        self.original = original

        dependency_label = self.package
        if self.import_name and self.import_name != self.package:
            dependency_label += f" (модуль '{self.import_name}')"

        message = f"Отсутствует обязательная зависимость {dependency_label}."
        if self.instructions:
            message += f" Установите её и повторите попытку: {self.instructions}."
        else:
            message += " Установите требуемый пакет и повторите попытку."

        super().__init__(message)


class ControlsError(Exception):
    """Base class for errors raised by the controls engine."""


class CatalogLoadError(ControlsError):
    """Каталог проверок не удалось разобрать или он не соответствует схеме."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class NodeTypeMismatchError(ControlsError):
    """Raised when a catalog declares a node type other than the requested one."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"non-{expected} controls file specified (catalog type: '{actual}')")


class LevelParseError(ControlsError, ValueError):
    """Compliance level is not a non-negative base-10 integer."""

    def __init__(self, value: object, source: str = "user") -> None:
        self.value = value
        self.source = source
        if source == "user":
            message = f"error in parsing user CIS level: {value!r}"
        else:
            message = f"error in parsing CIS level of check '{source}': {value!r}"
        super().__init__(message)


class SerializationError(ControlsError):
    """Raised when the report cannot be encoded."""
