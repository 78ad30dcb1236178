"""LDAP user directory client package.

Public API:
    - DirectoryConnection
    - ConnectionConfig, DirectoryEntry, AttributeModification
    - MutationResult / MutationError, LookupResult / LookupStatus
    - DirectoryError, ConnectError, SearchError
"""

from .client import DirectoryConnection
from .errors import ConnectError, DirectoryError, SearchError
from .models import (
    AttributeModification,
    ConnectionConfig,
    DirectoryEntry,
    LookupResult,
    LookupStatus,
    ModifyOperation,
    MutationError,
    MutationResult,
)
from .utils import escape_ldap_filter_value

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
    "escape_ldap_filter_value",
]
