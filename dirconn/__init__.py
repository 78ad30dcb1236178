from .ldap import (
    AttributeModification,
    ConnectError,
    ConnectionConfig,
    DirectoryConnection,
    DirectoryEntry,
    DirectoryError,
    LookupResult,
    LookupStatus,
    ModifyOperation,
    MutationError,
    MutationResult,
    SearchError,
)

__version__ = "0.1.0"

__all__ = [
    "DirectoryConnection",
    "ConnectionConfig",
    "DirectoryEntry",
    "AttributeModification",
    "ModifyOperation",
    "MutationResult",
    "MutationError",
    "LookupResult",
    "LookupStatus",
    "DirectoryError",
    "ConnectError",
    "SearchError",
]
