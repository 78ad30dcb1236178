from __future__ import annotations

import dataclasses
import logging
import ssl
from typing import Any, Iterable, Optional

from ldap3 import ALL_ATTRIBUTES, NONE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import RESULT_ENTRY_ALREADY_EXISTS, RESULT_SUCCESS

from .errors import ConnectError, DirectoryError, SearchError
from .models import (
    DEFAULT_PORT,
    AttributeModification,
    ConnectionConfig,
    DirectoryEntry,
    LookupResult,
    LookupStatus,
    MutationError,
    MutationResult,
    modifications_to_changes,
)
from .utils import (
    entries_from_response,
    is_dn,
    normalize_attributes,
    result_description,
    user_dn,
    user_filter,
)

log = logging.getLogger(__name__)


class DirectoryConnection:
    """One authenticated LDAP session plus the user CRUD calls made over it.

    The session is opened by the constructor and replaced wholesale by
    `reconnect`. Not thread-safe: callers sharing an instance across threads
    must serialize access themselves.
    """

    def __init__(
        self,
        server: str,
        search_base_dn: str,
        bind_dn: str,
        bind_password: str,
        port: int = DEFAULT_PORT,
        **options: Any,
    ) -> None:
        self._config: ConnectionConfig | None = None
        self._conn: Connection | None = None
        self._connected = False
        self.reconnect(server, search_base_dn, bind_dn, bind_password, port=port, **options)

    @classmethod
    def from_config(cls, cfg: ConnectionConfig) -> "DirectoryConnection":
        return cls(**dataclasses.asdict(cfg))

    @classmethod
    def from_settings(cls, settings=None) -> "DirectoryConnection":
        if settings is None:
            from ..settings import get_settings
            settings = get_settings()
        return cls.from_config(settings.to_config())

    def __enter__(self) -> "DirectoryConnection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        url = self._config.url if self._config else "-"
        return f"<DirectoryConnection {url} connected={self._connected}>"

    # ---------------------------
    # Connection lifecycle
    # ---------------------------

    @property
    def config(self) -> ConnectionConfig | None:
        return self._config

    @property
    def connected(self) -> bool:
        return self._connected

    def is_connected(self) -> bool:
        return self._connected

    def reconnect(
        self,
        server: str,
        search_base_dn: str,
        bind_dn: str,
        bind_password: str,
        port: int = DEFAULT_PORT,
        **options: Any,
    ) -> None:
        """Close the current session (if any) and bind with new parameters.

        Raises ConnectError when the new bind fails; the instance is then
        left disconnected. Invalid parameters raise ValueError before the
        current session is touched.
        """
        cfg = ConnectionConfig(
            server=server,
            search_base_dn=search_base_dn,
            bind_dn=bind_dn,
            bind_password=bind_password,
            port=port,
            **options,
        )
        self.open(cfg)

    def open(self, cfg: ConnectionConfig) -> None:
        if self._connected or self._conn is not None:
            self.close()
        self._config = cfg
        self._conn = self._connect(cfg)
        self._connected = True
        log.info("Bind to %s as %s succeeded", cfg.url, cfg.bind_dn)

    def close(self) -> None:
        """Unbind the session. Never raises; failures are only logged."""
        self._connected = False
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.unbind()
        except LDAPException as e:
            log.error("Failed to close LDAP connection: %s", e)
            return
        log.info("LDAP connection to %s closed", self._config.url if self._config else "-")

    def _make_server(self, cfg: ConnectionConfig) -> Server:
        tls = Tls(validate=ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE)
        kwargs: dict[str, Any] = {
            "host": cfg.server,
            "port": cfg.port,
            "use_ssl": cfg.use_ssl,
            "get_info": NONE,
            "tls": tls,
        }
        if cfg.connect_timeout:
            kwargs["connect_timeout"] = float(cfg.connect_timeout)
        return Server(**kwargs)

    def _connect(self, cfg: ConnectionConfig) -> Connection:
        conn: Connection | None = None
        try:
            conn = Connection(
                self._make_server(cfg),
                user=cfg.bind_dn,
                password=cfg.bind_password,
                auto_bind=False,
                client_strategy=cfg.client_strategy,
                receive_timeout=cfg.receive_timeout,
                raise_exceptions=False,
            )
            conn.open()
            if cfg.starttls:
                conn.start_tls()
            ok = bool(conn.bind())
        except LDAPException as e:
            if conn is not None:
                self._discard(conn)
            log.error("Cannot connect to %s: %s", cfg.url, e)
            raise ConnectError(f"Cannot connect to {cfg.url}: {e}") from e

        if not ok:
            res = dict(conn.result or {})
            self._discard(conn)
            desc = result_description(res)
            log.error("Bind to %s as %s failed: %s", cfg.url, cfg.bind_dn, desc)
            raise ConnectError(f"Bind as {cfg.bind_dn} failed: {desc}", res)
        return conn

    @staticmethod
    def _discard(conn: Connection) -> None:
        try:
            conn.unbind()
        except LDAPException as e:
            log.debug("Ignoring unbind error on discarded connection: %s", e)

    def _session(self) -> Connection:
        if not self._connected or self._conn is None:
            raise ConnectError("Not connected")
        return self._conn

    def _base_dn(self) -> str:
        return self._config.search_base_dn if self._config else ""

    def _user_dn(self, uid: str) -> str:
        return user_dn(uid, self._base_dn())

    # ---------------------------
    # Query
    # ---------------------------

    def _search(self, search_filter: str, attributes: Any) -> list[DirectoryEntry]:
        conn = self._session()
        try:
            conn.search(
                search_base=self._base_dn(),
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=attributes,
            )
        except LDAPException as e:
            raise SearchError(f"Search {search_filter} failed: {e}") from e

        # ldap3 reports False for an empty but successful search.
        res = dict(conn.result or {})
        if res.get("result", RESULT_SUCCESS) != RESULT_SUCCESS:
            raise SearchError(f"Search {search_filter} failed: {result_description(res)}", res)
        return entries_from_response(conn.response)

    def search(self, search_filter: str, attributes: Any = ALL_ATTRIBUTES) -> Optional[list[DirectoryEntry]]:
        """Run a caller-supplied filter over the whole subtree of the search base.

        Returns the entries in server order, or None when nothing matched.
        Failures raise SearchError (ConnectError when there is no session).
        """
        try:
            entries = self._search(search_filter, attributes)
        except SearchError as e:
            log.error("%s", e.message)
            raise
        return entries or None

    def lookup_user(self, uid: str) -> LookupResult:
        escape = self._config.escape_filter_values if self._config else True
        flt = user_filter(uid, escape=escape)
        try:
            entries = self._search(flt, ALL_ATTRIBUTES)
        except DirectoryError as e:
            log.error("Couldn't find user with uid (%s): %s", uid, e.message)
            return LookupResult(LookupStatus.FAILED, message=e.message)

        if not entries:
            return LookupResult(LookupStatus.NOT_FOUND, message=f"No user with uid {uid}")
        if len(entries) > 1:
            log.error("Matched multiple users (%d) for uid %s", len(entries), uid)
            return LookupResult(
                LookupStatus.MULTIPLE_MATCHES,
                message=f"{len(entries)} users matched uid {uid}",
            )
        return LookupResult(LookupStatus.FOUND, entry=entries[0], message="OK")

    def get_user(self, uid: str) -> Optional[DirectoryEntry]:
        """Return the single person entry with this uid, or None.

        None covers "not found", "more than one match" and "search failed";
        use lookup_user() to tell them apart.
        """
        return self.lookup_user(uid).entry

    # ---------------------------
    # Mutation
    # ---------------------------

    def add_user(self, uid: str, attributes: Any) -> MutationResult:
        dn = self._user_dn(uid)
        try:
            conn = self._session()
            ok = bool(conn.add(dn, attributes=normalize_attributes(attributes)))
        except (ConnectError, LDAPException) as e:
            log.error("AddUser: error adding entry %s: %s", dn, e)
            return MutationResult.failed(dn, f"LDAP error: {e}")

        res = dict(conn.result or {})
        if ok:
            log.info("AddUser: added entry %s", dn)
            return MutationResult.ok(dn, "Entry added.")
        if res.get("result") == RESULT_ENTRY_ALREADY_EXISTS:
            return self._already_exists(dn)
        desc = result_description(res)
        log.error("AddUser: error adding entry %s: %s", dn, desc)
        return MutationResult.failed(dn, f"Could not add entry: {desc}")

    @staticmethod
    def _already_exists(dn: str) -> MutationResult:
        log.error("AddUser: entry %s already exists (68)", dn)
        return MutationResult.failed(dn, "Entry already exists.", MutationError.ALREADY_EXISTS)

    def update_user(self, uid: str, modifications: Iterable[Any]) -> MutationResult:
        """Apply all modifications to the user's entry in one modify request."""
        dn = self._user_dn(uid)
        mods = [
            m if isinstance(m, AttributeModification) else AttributeModification(*m)
            for m in (modifications or [])
        ]
        if not mods:
            return MutationResult.failed(dn, "No modifications given.")

        try:
            conn = self._session()
            ok = bool(conn.modify(dn, modifications_to_changes(mods)))
        except (ConnectError, LDAPException) as e:
            log.error("Update error for %s: %s", dn, e)
            return MutationResult.failed(dn, f"LDAP error: {e}")

        if not ok:
            desc = result_description(conn.result)
            log.error("Update error for %s: %s", dn, desc)
            return MutationResult.failed(dn, f"Could not update entry: {desc}")
        log.info("Updated entry %s (%d modifications)", dn, len(mods))
        return MutationResult.ok(dn, "Entry updated.")

    def delete_user(self, uid_or_dn: str) -> MutationResult:
        """Delete a user entry.

        A full DN is used as given; a bare uid is expanded the same way
        add_user() and update_user() do it. Any identifier containing "="
        that parses as a DN (e.g. "a=b") is taken as a DN, not as a uid.
        """
        ident = (uid_or_dn or "").strip()
        dn = ident if is_dn(ident) else self._user_dn(ident)
        try:
            conn = self._session()
            ok = bool(conn.delete(dn))
        except (ConnectError, LDAPException) as e:
            log.error("Deleting error for %s: %s", dn, e)
            return MutationResult.failed(dn, f"LDAP error: {e}")

        if not ok:
            desc = result_description(conn.result)
            log.error("Deleting error for %s: %s", dn, desc)
            return MutationResult.failed(dn, f"Could not delete entry: {desc}")
        log.info("Deleted entry %s", dn)
        return MutationResult.ok(dn, "Entry deleted.")
