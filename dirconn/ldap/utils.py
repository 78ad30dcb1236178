from __future__ import annotations

from typing import Any, Iterable

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import escape_rdn, parse_dn

from .models import DirectoryEntry

PERSON_CLASS = "person"


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values."""
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\5c")
        elif ch == "*":
            out.append("\\2a")
        elif ch == "(":
            out.append("\\28")
        elif ch == ")":
            out.append("\\29")
        elif ch == "\x00":
            out.append("\\00")
        else:
            out.append(ch)
    return "".join(out)


def user_filter(uid: str, escape: bool = True) -> str:
    value = escape_ldap_filter_value(uid) if escape else uid
    return f"(&(objectClass={PERSON_CLASS})(uid={value}))"


def user_dn(uid: str, base_dn: str) -> str:
    """DN of a user entry directly below the search base."""
    return f"uid={escape_rdn(uid)},{base_dn}"


def is_dn(value: str) -> bool:
    s = (value or "").strip()
    if "=" not in s:
        return False
    try:
        return bool(parse_dn(s))
    except LDAPInvalidDnError:
        return False


def _as_list(v: Any) -> list:
    if v is None:
        return []
    if isinstance(v, (list, tuple, set)):
        return list(v)
    return [v]


def entries_from_response(response: Iterable[dict] | None) -> list[DirectoryEntry]:
    """Turn an ldap3 search response into entries, keeping server order.

    Referrals and other non-entry items are skipped. Attribute values are
    always lists, whatever the schema says about single-valued attributes.
    """
    entries: list[DirectoryEntry] = []
    for item in response or []:
        if item.get("type") != "searchResEntry":
            continue
        attrs = item.get("attributes") or {}
        entries.append(DirectoryEntry(
            dn=str(item.get("dn", "")),
            attributes={str(k): _as_list(v) for k, v in dict(attrs).items()},
        ))
    return entries


def normalize_attributes(attributes: Any) -> dict[str, Any]:
    """Accept a DirectoryEntry or a plain mapping as add payload."""
    if isinstance(attributes, DirectoryEntry):
        attributes = attributes.attributes
    out: dict[str, Any] = {}
    for k, v in dict(attributes or {}).items():
        vals = _as_list(v)
        out[str(k)] = vals[0] if len(vals) == 1 else vals
    return out


def result_description(result: dict | None, default: str = "unknown error") -> str:
    r = dict(result or {})
    desc = str(r.get("description", "") or "")
    msg = str(r.get("message", "") or "")
    if desc and msg and msg != desc:
        return f"{desc} ({msg})"
    return desc or msg or default
