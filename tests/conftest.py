"""
Shared fixtures: an in-memory directory and a backend double speaking to it.
"""

import re

import pytest

from dirauth.ldap import BackendConnection, Dialer, DirectoryEntry, LDAPConfig
from dirauth.ldap.errors import BackendError

_ESCAPED = re.compile(r"\\([0-9A-Fa-f]{2})")


def _unescape_filter_value(value):
    raw = bytearray()
    pos = 0
    for m in _ESCAPED.finditer(value):
        raw.extend(value[pos:m.start()].encode("utf-8"))
        raw.append(int(m.group(1), 16))
        pos = m.end()
    raw.extend(value[pos:].encode("utf-8"))
    return raw.decode("utf-8")


def _values(attrs, name):
    for key, vals in attrs.items():
        if key.lower() == name.lower():
            return vals
    return []


def compile_filter(text):
    """Compile the small filter subset the connector emits: &, |, ! and equality/presence."""

    def parse(i):
        assert text[i] == "(", f"bad filter {text!r} at {i}"
        op = text[i + 1]
        if op in "&|!":
            i += 2
            subs = []
            while text[i] == "(":
                sub, i = parse(i)
                subs.append(sub)
            assert text[i] == ")", f"bad filter {text!r} at {i}"
            if op == "&":
                return (lambda a: all(s(a) for s in subs)), i + 1
            if op == "|":
                return (lambda a: any(s(a) for s in subs)), i + 1
            return (lambda a: not subs[0](a)), i + 1

        end = text.index(")", i)
        attr, value = text[i + 1:end].split("=", 1)
        if value == "*":
            return (lambda a: bool(_values(a, attr))), end + 1
        wanted = _unescape_filter_value(value).lower()
        return (lambda a: any(v.lower() == wanted for v in _values(a, attr))), end + 1

    pred, pos = parse(0)
    assert pos == len(text), f"trailing data in filter {text!r}"
    return pred


class FakeDirectory:
    def __init__(self):
        self.entries = {}
        self.passwords = {}

    def add(self, dn, password=None, **attrs):
        self.entries[dn] = {
            k: list(v) if isinstance(v, (list, tuple)) else [v] for k, v in attrs.items()
        }
        if password:
            self.passwords[dn.lower()] = password


class FakeBackend(BackendConnection):
    def __init__(self, directory):
        self.directory = directory
        self.calls = []
        self.bound_dn = None
        self.closed = False
        self.timeout = None
        self.tls = None
        self.tls_started = False
        self.fail_search = None
        self.fail_start_tls = None

    def bind(self, dn, password):
        self.calls.append(("bind", dn))
        if not password or self.directory.passwords.get(dn.lower()) != password:
            raise BackendError('LDAP Result Code 49 "Invalid Credentials"')
        self.bound_dn = dn

    def unauthenticated_bind(self, dn):
        self.calls.append(("unauthenticated_bind", dn))
        self.bound_dn = None

    def search(self, base_dn, search_filter, attributes=None, size_limit=0):
        requested = [a for a in (attributes or []) if a]
        self.calls.append(("search", base_dn, search_filter, requested))
        if self.fail_search:
            raise BackendError(self.fail_search)

        pred = compile_filter(search_filter)
        base = base_dn.lower()
        results = []
        for dn, attrs in self.directory.entries.items():
            low = dn.lower()
            if low != base and not low.endswith("," + base):
                continue
            if not pred(attrs):
                continue
            picked = {k: v for k, v in attrs.items() if k.lower() in {a.lower() for a in requested}}
            results.append(
                DirectoryEntry(
                    dn=dn,
                    attributes={k: list(v) for k, v in picked.items()},
                    raw_attributes={k: [x.encode("utf-8") for x in v] for k, v in picked.items()},
                )
            )
        return results

    def start_tls(self, tls):
        self.calls.append(("start_tls",))
        if self.fail_start_tls:
            raise BackendError(self.fail_start_tls)
        self.tls_started = True

    def set_timeout(self, seconds):
        self.timeout = seconds

    def close(self):
        self.closed = True

    def filters(self):
        return [c[2] for c in self.calls if c[0] == "search"]


class FakeDialer(Dialer):
    """Maps URLs to backends, or to the exception dialing them raises."""

    def __init__(self, targets):
        self.targets = targets
        self.dialed = []

    def dial_url(self, url, tls):
        self.dialed.append(url)
        target = self.targets[url]
        if isinstance(target, Exception):
            raise target
        target.tls = tls
        return target


BIND_DN = "cn=service,ou=system,dc=x"
BIND_PASSWORD = "service-pw"


@pytest.fixture
def directory():
    d = FakeDirectory()
    d.add(BIND_DN, password=BIND_PASSWORD, cn="service")
    d.add(
        "cn=alice,ou=people,dc=x",
        password="secret",
        cn="alice",
        uid="alice",
        userPrincipalName="alice@corp.local",
    )
    d.add("cn=bob,ou=people,dc=x", password="hunter2", cn="bob", uid="bob")
    d.add("cn=admins,ou=groups,dc=x", cn="admins", member="cn=alice,ou=people,dc=x")
    d.add("cn=devs,ou=groups,dc=x", cn="devs", memberUid=["alice", "bob"])
    d.add("cn=ops,ou=groups,dc=x", cn="ops", uniqueMember="cn=bob,ou=people,dc=x")
    return d


@pytest.fixture
def backend(directory):
    return FakeBackend(directory)


@pytest.fixture
def ldap_config():
    return LDAPConfig(
        urls=("ldap://dc1.x",),
        bind_dn=BIND_DN,
        bind_password=BIND_PASSWORD,
        user_dn="ou=people,dc=x",
        user_attr="cn",
        group_dn="ou=groups,dc=x",
        group_attr="cn",
    )


@pytest.fixture
def dialer(backend):
    return FakeDialer({"ldap://dc1.x": backend})
