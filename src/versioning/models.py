"""Version and version-range value types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

try:
    from ..common.errors import InvalidRange, InvalidVersion
except ImportError:
    from common.errors import InvalidRange, InvalidVersion

_QUALIFIER_RE = re.compile(r"^[A-Za-z0-9_-]*$")
_RANGE_DELIMITERS = "[](),"


@dataclass(frozen=True, order=True)
class Version:
    """Immutable (major, minor, micro, qualifier) version.

    Numeric fields compare numerically; the qualifier compares
    lexicographically and only when the numeric fields are equal.
    """

    major: int = 0
    minor: int = 0
    micro: int = 0
    qualifier: str = ""

    def __post_init__(self):
        for field_name in ("major", "minor", "micro"):
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidVersion(repr(value), f"{field_name} must be a non-negative integer")
        if not isinstance(self.qualifier, str) or not _QUALIFIER_RE.match(self.qualifier):
            raise InvalidVersion(str(self.qualifier), "qualifier may only contain letters, digits, '_' and '-'")

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse ``major[.minor[.micro[.qualifier]]]``; missing parts default to 0/empty."""
        if not isinstance(text, str):
            raise InvalidVersion(repr(text), "expected a string")
        s = text.strip()
        if not s:
            raise InvalidVersion(text, "empty version")
        parts = s.split(".", 3)
        numbers = []
        for label, part in zip(("major", "minor", "micro"), parts[:3]):
            if not part.isdigit() or not part.isascii():
                raise InvalidVersion(text, f"{label} component '{part}' is not numeric")
            numbers.append(int(part))
        while len(numbers) < 3:
            numbers.append(0)
        qualifier = parts[3] if len(parts) == 4 else ""
        if len(parts) == 4 and not qualifier:
            raise InvalidVersion(text, "empty qualifier")
        if not _QUALIFIER_RE.match(qualifier):
            raise InvalidVersion(text, f"invalid qualifier '{qualifier}'")
        return cls(numbers[0], numbers[1], numbers[2], qualifier)

    @classmethod
    def of(cls, value: Union["Version", str]) -> "Version":
        """Return ``value`` unchanged if it is a Version, otherwise parse it."""
        if isinstance(value, Version):
            return value
        return cls.parse(value)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.micro}"
        return f"{base}.{self.qualifier}" if self.qualifier else base


EMPTY_VERSION = Version()


@dataclass(frozen=True)
class VersionRange:
    """Interval of versions with inclusive, exclusive or unbounded ends.

    A ``ceiling`` of None means unbounded above.
    """

    floor: Version = EMPTY_VERSION
    ceiling: Optional[Version] = None
    floor_inclusive: bool = True
    ceiling_inclusive: bool = False

    def __post_init__(self):
        if self.ceiling is None:
            object.__setattr__(self, "ceiling_inclusive", False)
        elif self.ceiling < self.floor:
            raise InvalidRange(self._render(), "floor is above ceiling")

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """Parse ``[a,b]``, ``(a,b)``, mixed forms, ``[a]`` or a bare version."""
        if not isinstance(text, str):
            raise InvalidRange(repr(text), "expected a string")
        s = text.strip()
        if not s:
            raise InvalidRange(text, "empty range")
        opening, closing = s[0], s[-1]
        if opening not in "[(":
            if any(ch in s for ch in _RANGE_DELIMITERS):
                raise InvalidRange(text, "missing opening delimiter")
            try:
                return cls(floor=Version.parse(s))
            except InvalidVersion as exc:
                raise InvalidRange(text, exc.reason) from exc
        if len(s) < 2 or closing not in "])":
            raise InvalidRange(text, "missing closing delimiter")
        inner = s[1:-1]
        if any(ch in inner for ch in "[]()"):
            raise InvalidRange(text, "mismatched delimiters")
        bounds = inner.split(",")
        if len(bounds) > 2:
            raise InvalidRange(text, "too many bounds")
        try:
            if len(bounds) == 1:
                if opening != "[" or closing != "]":
                    raise InvalidRange(text, "single-version range must use [ ]")
                exact = Version.parse(bounds[0])
                return cls(exact, exact, True, True)
            floor_text, ceiling_text = bounds[0].strip(), bounds[1].strip()
            floor = Version.parse(floor_text) if floor_text else EMPTY_VERSION
            ceiling = Version.parse(ceiling_text) if ceiling_text else None
        except InvalidVersion as exc:
            raise InvalidRange(text, exc.reason) from exc
        floor_inclusive = opening == "[" or not floor_text
        return cls(floor, ceiling, floor_inclusive, closing == "]")

    @classmethod
    def of(cls, value: Union["VersionRange", Version, str]) -> "VersionRange":
        """Coerce a range, a version (floor-only) or range text into a VersionRange."""
        if isinstance(value, VersionRange):
            return value
        if isinstance(value, Version):
            return cls(floor=value)
        return cls.parse(value)

    @classmethod
    def exact(cls, version: Union[Version, str]) -> "VersionRange":
        """Range matching exactly one version."""
        v = Version.of(version)
        return cls(v, v, True, True)

    @property
    def is_any(self) -> bool:
        """True when the range matches every version."""
        return self.floor == EMPTY_VERSION and self.floor_inclusive and self.ceiling is None

    @property
    def is_exact(self) -> bool:
        """True for ``[v,v]`` ranges."""
        return self.ceiling == self.floor and self.floor_inclusive and self.ceiling_inclusive

    def contains(self, version: Union[Version, str]) -> bool:
        """Check ``version`` against both bounds."""
        v = Version.of(version)
        if v < self.floor or (v == self.floor and not self.floor_inclusive):
            return False
        if self.ceiling is None:
            return True
        return v < self.ceiling or (v == self.ceiling and self.ceiling_inclusive)

    def __contains__(self, version) -> bool:
        return self.contains(version)

    def _render(self) -> str:
        if self.ceiling is None:
            if self.floor_inclusive:
                return str(self.floor)
            return f"({self.floor},)"
        return "{}{},{}{}".format(
            "[" if self.floor_inclusive else "(",
            self.floor,
            self.ceiling,
            "]" if self.ceiling_inclusive else ")",
        )

    def __str__(self) -> str:
        return self._render()


ANY_RANGE = VersionRange()
