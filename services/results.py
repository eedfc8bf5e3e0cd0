"""Tagged result values returned by controller operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .errors import AuthError, ErrorKind


@dataclass(frozen=True)
class Ok:
    data: dict[str, Any] = field(default_factory=dict)

    ok = True


@dataclass(frozen=True)
class Err:
    error: AuthError

    ok = False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


Result = Union[Ok, Err]
