from __future__ import annotations


_FILTER_SPECIALS = {
    "\\": "\\5c",
    "*": "\\2a",
    "(": "\\28",
    ")": "\\29",
    "\x00": "\\00",
}


def escape_ldap_filter_value(value: str) -> str:
    """RFC 4515 escaping for LDAP filter values.

    Non-ASCII characters are escaped byte by byte from their UTF-8 form, so the
    result is plain ASCII and safe to substitute into any filter.
    """
    out: list[str] = []
    for ch in value or "":
        if ch in _FILTER_SPECIALS:
            out.append(_FILTER_SPECIALS[ch])
        elif ord(ch) > 0x7F:
            out.extend(f"\\{b:02x}" for b in ch.encode("utf-8"))
        else:
            out.append(ch)
    return "".join(out)


def split_urls(text: str) -> list[str]:
    """Split a list of LDAP URLs separated by ';', ',' or whitespace."""
    if not text:
        return []
    for sep in (";", ","):
        text = text.replace(sep, " ")
    return [x.strip() for x in text.split() if x.strip()]
