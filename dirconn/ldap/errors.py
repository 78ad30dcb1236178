from __future__ import annotations

from typing import Any


class DirectoryError(Exception):
    """Base class for errors raised by the directory client."""

    def __init__(self, message: str, result: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.result = dict(result or {})

    @property
    def description(self) -> str:
        return str(self.result.get("description", "") or "")


class ConnectError(DirectoryError):
    """Bind, authentication or transport setup failed."""


class SearchError(DirectoryError):
    """A caller-supplied search could not be executed."""
