from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TaskError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<tasks>"
        return f"{loc}: {self.code}: {self.message}"


class TaskLoadError(TaskError):
    pass


class TaskValidationError(TaskError):
    pass


class LayoutError(TaskError):
    """A layout run that cannot produce a complete allocation."""

    default_code = "E_LAYOUT"

    @classmethod
    def build(cls, message: str, *, path: Optional[str] = None) -> LayoutError:
        return cls(code=cls.default_code, message=message, path=path)


class MissingRootError(LayoutError):
    default_code = "E_MISSING_ROOT"


class UnresolvableAnchorError(LayoutError):
    default_code = "E_UNRESOLVABLE_ANCHOR"


class CyclicDependencyError(LayoutError):
    default_code = "E_CYCLIC_DEPENDENCY"


class InvalidColumnsError(LayoutError):
    default_code = "E_INVALID_COLUMNS"
