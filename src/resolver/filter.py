"""LDAP-style attribute filters used by requirements.

Supports ``&``, ``|``, ``!``, ``=``, ``<=``, ``>=``, ``~=``, presence
(``attr=*``) and substring (``attr=ab*c``) terms. Version-valued attributes
are compared as versions, list-valued attributes match when any element does.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

try:
    from ..common.errors import InvalidVersion, MalformedAssertion
    from ..versioning.models import Version, VersionRange
except ImportError:
    from common.errors import InvalidVersion, MalformedAssertion
    from versioning.models import Version, VersionRange


class FilterOp(Enum):
    """Filter operations."""
    MATCH_ALL = "*"
    AND = "&"
    OR = "|"
    NOT = "!"
    EQ = "="
    LTE = "<="
    GTE = ">="
    APPROX = "~="
    SUBSTRING = "substring"
    PRESENT = "present"


_SPECIAL = "\\()*"


def _escape(value: str) -> str:
    return "".join("\\" + ch if ch in _SPECIAL else ch for ch in value)


@dataclass(frozen=True)
class SimpleFilter:
    """One node of a parsed filter tree.

    ``value`` holds the operand text for comparisons, a tuple of child
    filters for AND/OR/NOT and a tuple of literal pieces for SUBSTRING.
    """

    op: FilterOp
    name: Optional[str] = None
    value: Any = None

    @classmethod
    def parse(cls, text: str) -> "SimpleFilter":
        """Parse filter text; raise MalformedAssertion with the failing offset."""
        return _FilterParser(text).parse()

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any]) -> "SimpleFilter":
        """Derive a conjunctive filter from requirement attributes.

        Version ranges become ``>=``/``<=`` terms, negated for exclusive
        bounds; an unbounded ceiling adds no term.
        """
        filters: List[SimpleFilter] = []
        for key, value in attributes.items():
            if isinstance(value, VersionRange):
                floor = str(value.floor)
                if value.floor_inclusive:
                    filters.append(cls(FilterOp.GTE, key, floor))
                else:
                    filters.append(cls(FilterOp.NOT, None, (cls(FilterOp.LTE, key, floor),)))
                if value.ceiling is not None:
                    ceiling = str(value.ceiling)
                    if value.ceiling_inclusive:
                        filters.append(cls(FilterOp.LTE, key, ceiling))
                    else:
                        filters.append(cls(FilterOp.NOT, None, (cls(FilterOp.GTE, key, ceiling),)))
            elif isinstance(value, (list, tuple)):
                filters.extend(cls(FilterOp.EQ, key, str(item)) for item in value)
            else:
                filters.append(cls(FilterOp.EQ, key, str(value)))
        if not filters:
            return cls(FilterOp.MATCH_ALL)
        if len(filters) == 1:
            return filters[0]
        return cls(FilterOp.AND, None, tuple(filters))

    def matches(self, attributes: Mapping[str, Any]) -> bool:
        """Evaluate the filter against a capability's attributes."""
        op = self.op
        if op is FilterOp.MATCH_ALL:
            return True
        if op is FilterOp.AND:
            return all(child.matches(attributes) for child in self.value)
        if op is FilterOp.OR:
            return any(child.matches(attributes) for child in self.value)
        if op is FilterOp.NOT:
            return not self.value[0].matches(attributes)
        if self.name not in attributes:
            return False
        if op is FilterOp.PRESENT:
            return True
        actual = attributes[self.name]
        if isinstance(actual, (list, tuple)):
            return any(self._compare(item) for item in actual)
        return self._compare(actual)

    def _compare(self, actual: Any) -> bool:
        op = self.op
        if op is FilterOp.SUBSTRING:
            return _substring_match(str(actual), self.value)
        if isinstance(actual, Version):
            try:
                operand = Version.parse(self.value)
            except InvalidVersion:
                return False
            if op in (FilterOp.EQ, FilterOp.APPROX):
                return actual == operand
            if op is FilterOp.GTE:
                return actual >= operand
            return actual <= operand
        actual_text = str(actual)
        if op is FilterOp.EQ:
            return actual_text == self.value
        if op is FilterOp.APPROX:
            return _approx(actual_text) == _approx(self.value)
        if op is FilterOp.GTE:
            return actual_text >= self.value
        return actual_text <= self.value

    def __str__(self) -> str:
        op = self.op
        if op is FilterOp.MATCH_ALL:
            return "(*)"
        if op in (FilterOp.AND, FilterOp.OR, FilterOp.NOT):
            return "({}{})".format(op.value, "".join(str(child) for child in self.value))
        if op is FilterOp.PRESENT:
            return f"({self.name}=*)"
        if op is FilterOp.SUBSTRING:
            return "({}={})".format(self.name, "*".join(_escape(piece) for piece in self.value))
        return f"({self.name}{op.value}{_escape(self.value)})"


def _approx(value: str) -> str:
    return "".join(value.split()).lower()


def _substring_match(value: str, pieces: Tuple[str, ...]) -> bool:
    first, last = pieces[0], pieces[-1]
    if not value.startswith(first):
        return False
    pos = len(first)
    for piece in pieces[1:-1]:
        if not piece:
            continue
        found = value.find(piece, pos)
        if found < 0:
            return False
        pos = found + len(piece)
    return len(value) - pos >= len(last) and value.endswith(last)


class _FilterParser:
    """Recursive-descent parser over a filter string."""

    def __init__(self, text: str):
        self.text = text or ""
        self.pos = 0

    def error(self, reason: str, pos: Optional[int] = None) -> MalformedAssertion:
        return MalformedAssertion(self.text, self.pos if pos is None else pos, reason)

    def parse(self) -> SimpleFilter:
        self.skip_ws()
        if self.text.strip() == "(*)":
            return SimpleFilter(FilterOp.MATCH_ALL)
        result = self.parse_filter()
        self.skip_ws()
        if self.pos != len(self.text):
            raise self.error("unexpected trailing characters")
        return result

    def skip_ws(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str):
        if self.peek() != char:
            raise self.error(f"expected '{char}'")
        self.pos += 1

    def parse_filter(self) -> SimpleFilter:
        self.skip_ws()
        self.expect("(")
        self.skip_ws()
        char = self.peek()
        if char in ("&", "|"):
            self.pos += 1
            children = self.parse_list()
            node = SimpleFilter(FilterOp.AND if char == "&" else FilterOp.OR, None, children)
        elif char == "!":
            self.pos += 1
            node = SimpleFilter(FilterOp.NOT, None, (self.parse_filter(),))
        else:
            node = self.parse_item()
        self.skip_ws()
        self.expect(")")
        return node

    def parse_list(self) -> Tuple[SimpleFilter, ...]:
        children = []
        self.skip_ws()
        while self.peek() == "(":
            children.append(self.parse_filter())
            self.skip_ws()
        if not children:
            raise self.error("empty filter list")
        return tuple(children)

    def parse_item(self) -> SimpleFilter:
        start = self.pos
        while self.peek() and self.peek() not in "=<>~()":
            self.pos += 1
        name = self.text[start:self.pos].strip()
        if not name:
            raise self.error("missing attribute name", start)
        ops = {"=": FilterOp.EQ, "<=": FilterOp.LTE, ">=": FilterOp.GTE, "~=": FilterOp.APPROX}
        two = self.text[self.pos:self.pos + 2]
        if two in ops:
            op = ops[two]
            self.pos += 2
        elif self.peek() == "=":
            op = FilterOp.EQ
            self.pos += 1
        else:
            raise self.error("expected comparison operator")
        pieces = self.parse_value()
        if op is FilterOp.EQ:
            if pieces == ["", ""]:
                return SimpleFilter(FilterOp.PRESENT, name)
            if len(pieces) > 1:
                return SimpleFilter(FilterOp.SUBSTRING, name, tuple(pieces))
        elif len(pieces) > 1:
            raise self.error("wildcard only allowed with '='")
        return SimpleFilter(op, name, pieces[0])

    def parse_value(self) -> List[str]:
        pieces: List[str] = []
        current: List[str] = []
        while True:
            char = self.peek()
            if not char:
                raise self.error("unterminated filter value")
            if char == ")":
                break
            if char == "(":
                raise self.error("unescaped '(' in value")
            if char == "\\":
                self.pos += 1
                if not self.peek():
                    raise self.error("dangling escape")
                current.append(self.peek())
            elif char == "*":
                pieces.append("".join(current))
                current = []
            else:
                current.append(char)
            self.pos += 1
        pieces.append("".join(current))
        return pieces

