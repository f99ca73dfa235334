"""Tests for Version and VersionRange value types."""

import itertools

import pytest

from src.common.errors import InvalidRange, InvalidVersion
from src.versioning.models import ANY_RANGE, Version, VersionRange


class TestVersionParse:
    """Parsing of major[.minor[.micro[.qualifier]]]."""

    def test_missing_components_default_to_zero(self):
        assert Version.parse("1") == Version(1, 0, 0, "")
        assert Version.parse("1.2") == Version(1, 2, 0, "")

    def test_full_version_with_qualifier(self):
        v = Version.parse("1.2.3.beta-1")
        assert (v.major, v.minor, v.micro, v.qualifier) == (1, 2, 3, "beta-1")

    def test_str_is_canonical(self):
        assert str(Version.parse("2")) == "2.0.0"
        assert str(Version.parse("2.1.0.RC1")) == "2.1.0.RC1"

    @pytest.mark.parametrize("text", ["", "a", "1.a", "1.2.x", "-1", "1.2.3.", "1.2.3.q!x", "1..2"])
    def test_malformed_versions_raise(self, text):
        with pytest.raises(InvalidVersion):
            Version.parse(text)

    def test_invalid_version_is_value_error(self):
        with pytest.raises(ValueError):
            Version.parse("x.y")

    def test_negative_component_rejected_on_construction(self):
        with pytest.raises(InvalidVersion):
            Version(-1, 0, 0)


class TestVersionOrdering:
    """Total order: numeric fields first, qualifier last."""

    def test_numeric_comparison(self):
        assert Version.parse("1.10") > Version.parse("1.9")
        assert Version.parse("2.0.0") > Version.parse("1.99.99")

    def test_qualifier_only_breaks_numeric_ties(self):
        assert Version.parse("1.0.0") < Version.parse("1.0.0.a")
        assert Version.parse("1.0.0.b") > Version.parse("1.0.0.a")
        assert Version.parse("1.0.1") > Version.parse("1.0.0.zzz")

    def test_total_order_properties(self):
        versions = [Version.parse(t) for t in ["0.0.1", "1.0", "1.0.0.a", "1.0.0.b", "1.2", "10.0"]]
        for a, b in itertools.product(versions, repeat=2):
            assert sum([a < b, a == b, a > b]) == 1
        for a, b, c in itertools.product(versions, repeat=3):
            if a < b and b < c:
                assert a < c


class TestVersionRange:
    """Range parsing and containment at the boundaries."""

    def test_inclusive_floor_exclusive_ceiling(self):
        r = VersionRange.parse("[1.0,2.0)")
        assert r.contains("1.0.0")
        assert r.contains("1.9.9")
        assert not r.contains("2.0.0")
        assert not r.contains("0.9")

    def test_exclusive_floor_inclusive_ceiling(self):
        r = VersionRange.parse("(1.0,2.0]")
        assert not r.contains("1.0")
        assert r.contains("1.0.0.a")
        assert r.contains("2.0")
        assert "2.0.1" not in r

    def test_bare_version_is_unbounded_above(self):
        r = VersionRange.parse("1.5")
        assert r.ceiling is None
        assert r.contains("1.5")
        assert r.contains("999.0")
        assert not r.contains("1.4.9")
        assert str(r) == "1.5.0"

    def test_exact_range(self):
        r = VersionRange.parse("[1.2]")
        assert r.is_exact
        assert r.contains("1.2.0")
        assert not r.contains("1.2.1")
        assert VersionRange.exact("1.2") == r

    def test_empty_bounds(self):
        r = VersionRange.parse("[,2.0)")
        assert r.floor == Version()
        assert r.contains("0.0.0")
        assert VersionRange.parse("[1.0,)").ceiling is None

    def test_any_range(self):
        assert ANY_RANGE.is_any
        assert ANY_RANGE.contains("0.0.0")
        assert not VersionRange.parse("[1.0,2.0)").is_any

    def test_str_renders_canonical_bounds(self):
        assert str(VersionRange.parse("[1.0,2.0)")) == "[1.0.0,2.0.0)"
        assert str(VersionRange.parse("(1,2]")) == "(1.0.0,2.0.0]"

    @pytest.mark.parametrize("text", [
        "", "[1.0", "1.0,2.0)", "[1.0,2.0,3.0]", "[1.0,[2.0)", "(1.2)", "[1.x,2.0)", "[2.0,1.0]",
    ])
    def test_malformed_ranges_raise(self, text):
        with pytest.raises(InvalidRange):
            VersionRange.parse(text)

    def test_boundary_agreement_with_manual_inspection(self):
        floor, ceiling = Version.parse("1.0"), Version.parse("2.0")
        for text in ["[1.0,2.0]", "[1.0,2.0)", "(1.0,2.0]", "(1.0,2.0)"]:
            r = VersionRange.parse(text)
            assert r.contains(floor) == (text[0] == "[")
            assert r.contains(ceiling) == (text[-1] == "]")
