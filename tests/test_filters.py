"""
Tests for filter escaping and group filter templates.
"""

import pytest

from dirauth.ldap.errors import ConfigurationError
from dirauth.ldap.filters import compile_group_filter, render_group_filter
from dirauth.ldap.models import DEFAULT_GROUP_FILTER
from dirauth.ldap.utils import escape_ldap_filter_value, split_urls

ALICE_DN = "cn=alice,ou=people,dc=x"


class TestEscapeFilterValue:
    """Test cases for RFC 4515 value escaping."""

    def test_plain_value_unchanged(self):
        assert escape_ldap_filter_value("alice.smith-01") == "alice.smith-01"

    def test_metacharacters(self):
        assert escape_ldap_filter_value("a*b(c)\\d\x00") == "a\\2ab\\28c\\29\\5cd\\00"

    def test_injection_attempt(self):
        escaped = escape_ldap_filter_value("*)(uid=*")
        assert "(" not in escaped and ")" not in escaped and "*" not in escaped
        assert escaped == "\\2a\\29\\28uid=\\2a"

    def test_non_ascii_escaped_as_utf8(self):
        assert escape_ldap_filter_value("é") == "\\c3\\a9"

    def test_none_is_empty(self):
        assert escape_ldap_filter_value(None) == ""


class TestSplitUrls:
    def test_separators(self):
        assert split_urls("ldap://a; ldaps://b,ldap://c\nldap://d") == [
            "ldap://a", "ldaps://b", "ldap://c", "ldap://d",
        ]

    def test_empty(self):
        assert split_urls("") == []


class TestRenderGroupFilter:
    """Test cases for group filter template rendering."""

    def test_default_template(self):
        rendered = render_group_filter(DEFAULT_GROUP_FILTER, ALICE_DN, "alice")
        assert rendered == (
            "(|(memberUid=alice)(member=cn=alice,ou=people,dc=x)"
            "(uniqueMember=cn=alice,ou=people,dc=x))"
        )

    def test_spaced_placeholder(self):
        assert render_group_filter("(member={{ .UserDN }})", ALICE_DN, "alice") == f"(member={ALICE_DN})"

    def test_plain_jinja_placeholder(self):
        assert render_group_filter("(memberUid={{ Username }})", ALICE_DN, "alice") == "(memberUid=alice)"

    def test_nested_group_matching_rule(self):
        tpl = "(&(objectClass=group)(member:1.2.840.113556.1.4.1941:={{.UserDN}}))"
        assert render_group_filter(tpl, ALICE_DN, "alice") == (
            "(&(objectClass=group)(member:1.2.840.113556.1.4.1941:=cn=alice,ou=people,dc=x))"
        )

    def test_values_escaped_before_substitution(self):
        rendered = render_group_filter("(memberUid={{.Username}})", "cn=a\\2c b,dc=x", "a)(x=*")
        assert rendered == "(memberUid=a\\29\\28x=\\2a)"
        rendered = render_group_filter("(member={{.UserDN}})", "cn=a\\,b,dc=x", "a")
        assert rendered == "(member=cn=a\\5c,b,dc=x)"

    def test_template_without_placeholders(self):
        assert render_group_filter("(objectClass=group)", ALICE_DN, "alice") == "(objectClass=group)"

    def test_unknown_placeholder(self):
        with pytest.raises(ConfigurationError, match="cannot execute group filter template"):
            render_group_filter("(mail={{.Email}})", ALICE_DN, "alice")

    def test_malformed_template(self):
        with pytest.raises(ConfigurationError, match="cannot create group filter template"):
            render_group_filter("(member={{.UserDN)", ALICE_DN, "alice")

    def test_compiled_template_is_cached(self):
        assert compile_group_filter(DEFAULT_GROUP_FILTER) is compile_group_filter(DEFAULT_GROUP_FILTER)
