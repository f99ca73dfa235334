"""Tests for LDAP-style requirement filters."""

import pytest

from src.common.errors import MalformedAssertion
from src.resolver.filter import FilterOp, SimpleFilter
from src.versioning.models import Version, VersionRange


class TestFilterParse:
    """Parsing filter text into a filter tree."""

    def test_and_with_version_comparison(self):
        flt = SimpleFilter.parse("(&(a=b)(c>=1.0))")
        assert flt.op is FilterOp.AND
        assert flt.matches({"a": "b", "c": Version(1, 2, 0)})
        assert not flt.matches({"a": "b", "c": Version(0, 9, 0)})
        assert not flt.matches({"a": "x", "c": Version(1, 2, 0)})

    def test_or_and_not(self):
        flt = SimpleFilter.parse("(|(a=1)(!(b=2)))")
        assert flt.matches({"a": "1", "b": "2"})
        assert flt.matches({"b": "3"})
        assert not flt.matches({"a": "0", "b": "2"})

    def test_presence(self):
        flt = SimpleFilter.parse("(a=*)")
        assert flt.op is FilterOp.PRESENT
        assert flt.matches({"a": ""})
        assert not flt.matches({"b": "x"})

    def test_substring(self):
        flt = SimpleFilter.parse("(name=ab*c)")
        assert flt.op is FilterOp.SUBSTRING
        assert flt.matches({"name": "abxyc"})
        assert flt.matches({"name": "abc"})
        assert not flt.matches({"name": "ac"})

    def test_list_attribute_matches_any_element(self):
        flt = SimpleFilter.parse("(tags=y)")
        assert flt.matches({"tags": ("x", "y")})
        assert not flt.matches({"tags": ("x",)})

    def test_approximate_match_ignores_case_and_whitespace(self):
        assert SimpleFilter.parse("(a~=Hello World)").matches({"a": "helloworld"})

    def test_match_all(self):
        assert SimpleFilter.parse("(*)").matches({})

    def test_version_attribute_with_non_version_operand(self):
        assert not SimpleFilter.parse("(version=abc)").matches({"version": Version(1, 0, 0)})

    def test_escaped_value_round_trips(self):
        flt = SimpleFilter.parse("(a=x\\(y)")
        assert flt.value == "x(y"
        assert str(flt) == "(a=x\\(y)"
        assert SimpleFilter.parse(str(flt)) == flt

    @pytest.mark.parametrize("text,position", [
        ("a=b", 0),
        ("(a=b", 4),
        ("(&)", 2),
        ("(=b)", 1),
        ("(a=b))", 5),
    ])
    def test_malformed_filters_report_position(self, text, position):
        with pytest.raises(MalformedAssertion) as excinfo:
            SimpleFilter.parse(text)
        assert excinfo.value.position == position


class TestFilterFromAttributes:
    """Filters derived from requirement attributes."""

    def test_version_range_becomes_bounds(self):
        flt = SimpleFilter.from_attributes({"version": VersionRange.parse("[1.0,2.0)")})
        assert str(flt) == "(&(version>=1.0.0)(!(version>=2.0.0)))"
        assert flt.matches({"version": Version(1, 5, 0)})
        assert not flt.matches({"version": Version(2, 0, 0)})

    def test_exclusive_floor_is_negated(self):
        flt = SimpleFilter.from_attributes({"version": VersionRange.parse("(1.0,2.0]")})
        assert not flt.matches({"version": Version(1, 0, 0)})
        assert flt.matches({"version": Version(2, 0, 0)})

    def test_unbounded_ceiling_adds_no_term(self):
        flt = SimpleFilter.from_attributes({"version": VersionRange.parse("1.0")})
        assert flt == SimpleFilter(FilterOp.GTE, "version", "1.0.0")

    def test_plain_and_list_values(self):
        flt = SimpleFilter.from_attributes({"identity": "camel", "tags": ("a", "b")})
        assert flt.matches({"identity": "camel", "tags": ("a", "b", "c")})
        assert not flt.matches({"identity": "camel", "tags": ("a",)})

    def test_empty_attributes_match_everything(self):
        flt = SimpleFilter.from_attributes({})
        assert flt.op is FilterOp.MATCH_ALL
        assert flt.matches({"anything": "x"})
