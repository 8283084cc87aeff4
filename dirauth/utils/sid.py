from __future__ import annotations

import struct

from ..ldap.errors import SIDParseError


def _read(fmt: str, data: bytes, offset: int, field: str) -> tuple:
    size = struct.calcsize(fmt)
    if len(data) < offset + size:
        raise SIDParseError(f"reading {field}", data)
    return struct.unpack_from(fmt, data, offset)


def sid_to_string(data: bytes) -> str:
    """Convert a binary security identifier (objectSid) to ``S-R-A-S1-S2-...``.

    Layout: revision (1 byte), sub-authority count (1 byte), identifier
    authority (48-bit big-endian), then ``count`` little-endian 32-bit
    sub-authorities. Bytes past the last sub-authority are ignored.
    """
    data = bytes(data or b"")

    (revision,) = _read("<B", data, 0, "Revision")
    (count,) = _read("<B", data, 1, "SubAuthorityCount")
    high, mid, low = _read(">3H", data, 2, "IdentifierAuthority")
    authority = (high << 32) + (mid << 16) + low

    sub_authorities = _read(f"<{count}I", data, 8, "SubAuthority")

    parts = [f"S-{revision}-{authority}"]
    parts.extend(str(x) for x in sub_authorities)
    return "-".join(parts)
