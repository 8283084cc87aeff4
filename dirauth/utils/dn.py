from __future__ import annotations

import logging
import re

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

log = logging.getLogger(__name__)

_HEX_PAIR = re.compile(r"[0-9A-Fa-f]{2}")
_ATTR_TYPE = re.compile(r"[A-Za-z][A-Za-z0-9-]*|[0-9]+(?:\.[0-9]+)*")


def unescape_dn_value(value: str) -> str:
    """Undo RFC 4514 escaping of an attribute value (``\\,`` and ``\\2C`` forms)."""
    if "\\" not in value:
        return value

    out = bytearray()
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            pair = value[i + 1:i + 3]
            if _HEX_PAIR.fullmatch(pair):
                out.append(int(pair, 16))
                i += 3
                continue
            out.extend(value[i + 1].encode("utf-8"))
            i += 2
            continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", errors="replace")


def _split_rdns(dn: str) -> list[str]:
    """Split on unescaped ``,``, ``;`` and ``+``, keeping escapes intact."""
    parts: list[str] = []
    buf: list[str] = []
    i = 0
    while i < len(dn):
        ch = dn[i]
        if ch == "\\":
            if i + 1 >= len(dn):
                raise LDAPInvalidDnError(f"trailing escape in DN {dn!r}")
            buf.append(dn[i:i + 2])
            i += 2
            continue
        if ch in ",;+":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


def _lenient_components(dn: str) -> list[tuple[str, str]]:
    """Parse a DN taking only the first ``=`` of each component as separator.

    Active Directory returns values such as ``CN=Role=Admin`` unescaped,
    which ``parse_dn`` rejects.
    """
    out: list[tuple[str, str]] = []
    for part in _split_rdns(dn):
        attr, sep, value = part.partition("=")
        attr = attr.strip()
        if not sep or not _ATTR_TYPE.fullmatch(attr):
            raise LDAPInvalidDnError(f"invalid DN component {part!r}")
        value = value.lstrip()
        stripped = value.rstrip()
        # keep an escaped trailing space
        if len(stripped) < len(value) and stripped.endswith("\\"):
            stripped += " "
        out.append((attr, stripped))
    return out


def dn_components(dn: str) -> list[tuple[str, str]]:
    """Split a DN into ``(attribute type, unescaped value)`` pairs.

    Multi-valued RDNs contribute one pair per attribute, in order.
    Raises ``LDAPInvalidDnError`` when the DN is malformed.
    """
    try:
        parsed = [(attr, value) for attr, value, _sep in parse_dn(dn or "", strip=True)]
    except LDAPInvalidDnError:
        if "=" not in (dn or ""):
            raise
        parsed = _lenient_components(dn)
    return [(attr, unescape_dn_value(value)) for attr, value in parsed]


def is_parsable_dn(dn: str) -> bool:
    """True when ``dn`` parses into at least one component."""
    try:
        return bool(dn_components(dn))
    except LDAPInvalidDnError:
        return False


def parse_cn(dn: str) -> str:
    """Return the CN value of a DN (``CN=Admins,OU=Groups,...`` -> ``Admins``).

    Values that do not parse as a DN, or carry no CN, are taken to be a
    bare common name already and are returned unchanged.
    """
    try:
        components = dn_components(dn)
    except LDAPInvalidDnError:
        log.debug("Value is not a DN, using it as CN: %r", dn)
        return dn

    for attr, value in components:
        if attr.strip().upper() == "CN":
            return value
    return dn
