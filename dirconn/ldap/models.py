from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ldap3 import MODIFY_ADD, MODIFY_DELETE, MODIFY_REPLACE
from ldap3.core.connection import CLIENT_STRATEGIES

DEFAULT_PORT = 389


@dataclass(frozen=True)
class ConnectionConfig:
    server: str
    search_base_dn: str
    bind_dn: str
    bind_password: str = field(repr=False)
    port: int = DEFAULT_PORT
    use_ssl: bool = False
    starttls: bool = False
    tls_validate: bool = False
    connect_timeout: Optional[float] = None
    receive_timeout: Optional[float] = None
    client_strategy: str = "SYNC"
    escape_filter_values: bool = True

    def __post_init__(self) -> None:
        if not (self.server or "").strip():
            raise ValueError("server must not be empty")
        try:
            port = int(self.port)
        except (TypeError, ValueError):
            raise ValueError(f"invalid port: {self.port!r}") from None
        if not 1 <= port <= 65535:
            raise ValueError(f"port out of range (1-65535): {port}")
        object.__setattr__(self, "port", port)
        if self.client_strategy not in CLIENT_STRATEGIES:
            raise ValueError(f"unknown ldap3 client strategy: {self.client_strategy!r}")

    @property
    def url(self) -> str:
        scheme = "ldaps" if self.use_ssl else "ldap"
        return f"{scheme}://{self.server}:{self.port}"


@dataclass
class DirectoryEntry:
    dn: str
    attributes: dict[str, list] = field(default_factory=dict)

    def get(self, name: str) -> list:
        """Case-insensitive attribute lookup; missing attributes yield []."""
        if name in self.attributes:
            return list(self.attributes[name])
        low = name.lower()
        for k, v in self.attributes.items():
            if k.lower() == low:
                return list(v)
        return []

    def first(self, name: str, default: Any = None) -> Any:
        vals = self.get(name)
        return vals[0] if vals else default


class ModifyOperation(str, Enum):
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"

    @property
    def ldap3_op(self) -> str:
        return {
            ModifyOperation.ADD: MODIFY_ADD,
            ModifyOperation.REPLACE: MODIFY_REPLACE,
            ModifyOperation.REMOVE: MODIFY_DELETE,
        }[self]


@dataclass
class AttributeModification:
    operation: ModifyOperation
    attribute: str
    values: list = field(default_factory=list)

    def __post_init__(self) -> None:
        self.operation = ModifyOperation(self.operation)
        if isinstance(self.values, (str, bytes)):
            self.values = [self.values]
        else:
            self.values = list(self.values or [])

    @classmethod
    def replace(cls, attribute: str, *values: Any) -> "AttributeModification":
        return cls(ModifyOperation.REPLACE, attribute, list(values))

    @classmethod
    def add(cls, attribute: str, *values: Any) -> "AttributeModification":
        return cls(ModifyOperation.ADD, attribute, list(values))

    @classmethod
    def remove(cls, attribute: str, *values: Any) -> "AttributeModification":
        """Remove the given values, or the whole attribute when none are given."""
        return cls(ModifyOperation.REMOVE, attribute, list(values))


def modifications_to_changes(mods: list[AttributeModification]) -> dict[str, list[tuple[str, list]]]:
    """Build the ldap3 `modify` changes dict, keeping per-attribute order."""
    changes: dict[str, list[tuple[str, list]]] = {}
    for m in mods:
        changes.setdefault(m.attribute, []).append((m.operation.ldap3_op, list(m.values)))
    return changes


class MutationError(str, Enum):
    ALREADY_EXISTS = "already_exists"
    PROTOCOL_FAILURE = "protocol_failure"


@dataclass
class MutationResult:
    """Outcome of an add/update/delete call."""
    success: bool
    dn: str = ""
    error: MutationError | None = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, dn: str, message: str = "OK") -> "MutationResult":
        return cls(success=True, dn=dn, message=message)

    @classmethod
    def failed(cls, dn: str, message: str, error: MutationError = MutationError.PROTOCOL_FAILURE) -> "MutationResult":
        return cls(success=False, dn=dn, error=error, message=message)


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    MULTIPLE_MATCHES = "multiple_matches"
    FAILED = "failed"


@dataclass
class LookupResult:
    status: LookupStatus
    entry: DirectoryEntry | None = None
    message: str = ""

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND
