"""Inline capability/requirement clause parsing and rendering.

Syntax: ``name[;name...][;key=value][;key:Type=value][;key:=directive],...``

``,`` separates clauses, ``;`` separates names and parameters inside a
clause. Names listed before the first parameter share that clause's
parameters. Values may be double-quoted; ``\\`` escapes the next character.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

try:
    from ..common.errors import InvalidRange, InvalidVersion, MalformedAssertion
    from ..common.logging_utils import extra_context, is_debug_enabled
    from ..constants import Constants
    from ..versioning.models import Version, VersionRange
except ImportError:
    from common.errors import InvalidRange, InvalidVersion, MalformedAssertion
    from common.logging_utils import extra_context, is_debug_enabled
    from constants import Constants
    from versioning.models import Version, VersionRange
from .filter import SimpleFilter
from .models import Capability, Requirement, ResourceId

logger = logging.getLogger(__name__)

TYPE_STRING = "String"
TYPE_VERSION = "Version"
TYPE_LIST = "List<String>"
_LIST_ALIASES = ("List", "List<String>")


@dataclass
class ParsedClause:
    """Raw clause before conversion into capabilities or requirements."""

    text: str
    position: int
    paths: List[str] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)
    types: Dict[str, str] = field(default_factory=dict)
    directives: Dict[str, str] = field(default_factory=dict)
    offsets: Dict[str, int] = field(default_factory=dict)


def _split(text: str, delimiter: str, base: int) -> List[Tuple[int, str]]:
    """Split on ``delimiter`` outside quotes, keeping each piece's offset."""
    pieces: List[Tuple[int, str]] = []
    start = 0
    quoted = False
    escaped = False
    quote_at = -1
    for index, char in enumerate(text):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
            quote_at = index
        elif char == delimiter and not quoted:
            pieces.append((base + start, text[start:index]))
            start = index + 1
    if quoted:
        raise MalformedAssertion(text, base + quote_at, "unterminated quote")
    if escaped:
        raise MalformedAssertion(text, base + len(text) - 1, "dangling escape")
    pieces.append((base + start, text[start:]))
    return pieces


def _unquote(raw: str, clause: str, position: int) -> str:
    """Strip surrounding quotes; escapes are kept for later splitting."""
    value = raw.strip()
    if value.startswith('"'):
        if len(value) < 2 or not value.endswith('"') or value.endswith('\\"') and not value.endswith('\\\\"'):
            raise MalformedAssertion(clause, position, "unbalanced quotes in value")
        return value[1:-1]
    if '"' in value:
        raise MalformedAssertion(clause, position, "quote inside unquoted value")
    return value


def _unescape(value: str) -> str:
    out = []
    escaped = False
    for char in value:
        if escaped:
            out.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        else:
            out.append(char)
    return "".join(out)


def _split_list(value: str) -> Tuple[str, ...]:
    items = []
    current = []
    escaped = False
    for char in value:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ",":
            items.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    items.append("".join(current).strip())
    return tuple(items) if value.strip() else ()


def parse_clauses(text: Optional[str]) -> List[ParsedClause]:
    """Parse inline clause text into raw clauses.

    Raises:
        MalformedAssertion: on empty clauses or names, names placed after
            parameters, duplicate keys or quoting errors.
    """
    clauses: List[ParsedClause] = []
    if text is None or not text.strip():
        return clauses
    for clause_pos, clause_text in _split(text, ",", 0):
        clause = ParsedClause(text=clause_text.strip(), position=clause_pos)
        if not clause.text:
            raise MalformedAssertion(text, clause_pos, "empty clause")
        for seg_pos, segment in _split(clause_text, ";", clause_pos):
            _parse_segment(clause, segment, seg_pos, text)
        if not clause.paths:
            raise MalformedAssertion(clause.text, clause_pos, "clause has no name")
        clauses.append(clause)
    return clauses


def _parse_segment(clause: ParsedClause, segment: str, position: int, source: str) -> None:
    eq = -1
    for index, char in enumerate(segment):
        if char == '"':
            break
        if char == "=":
            eq = index
            break
    if eq < 0:
        name = segment.strip()
        if not name:
            raise MalformedAssertion(clause.text, position, "empty name")
        if clause.attributes or clause.directives:
            raise MalformedAssertion(clause.text, position, f"name '{name}' follows parameters")
        clause.paths.append(_unescape(name))
        return
    key = segment[:eq].strip()
    raw_value = segment[eq + 1:]
    value_pos = position + eq + 1
    if key.endswith(":"):
        key = key[:-1].strip()
        target = clause.directives
    else:
        target = clause.attributes
        if ":" in key:
            key, type_name = (part.strip() for part in key.split(":", 1))
            if not type_name:
                raise MalformedAssertion(clause.text, position, f"missing type for '{key}'")
            clause.types[key] = type_name
    if not key:
        raise MalformedAssertion(clause.text, position, "empty parameter key")
    if key in target:
        raise MalformedAssertion(clause.text, position, f"duplicate '{key}'")
    target[key] = _unquote(raw_value, clause.text, value_pos)
    clause.offsets[key] = value_pos


def _typed_value(clause: ParsedClause, key: str, raw: str, requirement: bool) -> Any:
    type_name = clause.types.get(key)
    position = clause.offsets.get(key, clause.position)
    try:
        if type_name is None:
            if key == Constants.VERSION_ATTRIBUTE:
                text = _unescape(raw)
                return VersionRange.parse(text) if requirement else Version.parse(text)
            return _unescape(raw)
        if type_name == TYPE_STRING:
            return _unescape(raw)
        if type_name == TYPE_VERSION:
            return Version.parse(_unescape(raw))
        if type_name in _LIST_ALIASES:
            return _split_list(raw)
    except (InvalidVersion, InvalidRange) as exc:
        raise MalformedAssertion(clause.text, position, f"'{key}': {exc.reason}") from exc
    raise MalformedAssertion(clause.text, position, f"unsupported attribute type '{type_name}' for '{key}'")


def _converted(clause: ParsedClause, requirement: bool) -> Tuple[Dict[str, Any], Dict[str, str]]:
    attributes = {key: _typed_value(clause, key, raw, requirement) for key, raw in clause.attributes.items()}
    directives = {key: _unescape(raw) for key, raw in clause.directives.items()}
    return attributes, directives


def parse_capabilities(text: Optional[str], owner: Optional[ResourceId] = None) -> List[Capability]:
    """Parse inline capability clauses; each name yields one capability."""
    capabilities = []
    for clause in parse_clauses(text):
        attributes, directives = _converted(clause, requirement=False)
        for path in clause.paths:
            capabilities.append(Capability(path, attributes, directives, owner))
    if is_debug_enabled(logger):
        logger.debug(
            "Parsed capabilities",
            extra=extra_context(event="parse", component="clauses", action="capabilities",
                                count=len(capabilities), owner=str(owner) if owner else None)
        )
    return capabilities


def parse_requirements(text: Optional[str], owner: Optional[ResourceId] = None) -> List[Requirement]:
    """Parse inline requirement clauses.

    A ``filter:=`` directive supplies the LDAP filter; otherwise the filter
    is derived from the clause attributes.
    """
    requirements = []
    for clause in parse_clauses(text):
        attributes, directives = _converted(clause, requirement=True)
        filter_text = directives.get(Constants.FILTER_DIRECTIVE)
        if filter_text is not None:
            try:
                flt = SimpleFilter.parse(filter_text)
            except MalformedAssertion as exc:
                position = clause.offsets.get(Constants.FILTER_DIRECTIVE, clause.position) + exc.position
                raise MalformedAssertion(clause.text, position, exc.reason) from exc
        else:
            flt = SimpleFilter.from_attributes(attributes)
        for path in clause.paths:
            requirements.append(Requirement(path, flt, attributes, directives, owner))
    return requirements


def _quote(value: str) -> str:
    escaped = "".join("\\" + ch if ch in '\\"' else ch for ch in value)
    return f'"{escaped}"'


def _format_attribute(key: str, value: Any, requirement: bool) -> str:
    if isinstance(value, VersionRange):
        return f"{key}={_quote(str(value))}"
    if isinstance(value, Version):
        if key == Constants.VERSION_ATTRIBUTE and not requirement:
            return f"{key}={_quote(str(value))}"
        return f"{key}:{TYPE_VERSION}={_quote(str(value))}"
    if isinstance(value, (list, tuple)):
        # items are escaped once here; the quoted value is not escaped again
        inner = ",".join("".join("\\" + ch if ch in '\\,"' else ch for ch in item) for item in value)
        return f'{key}:{TYPE_LIST}="{inner}"'
    if key == Constants.VERSION_ATTRIBUTE:
        return f"{key}:{TYPE_STRING}={_quote(str(value))}"
    return f"{key}={_quote(str(value))}"


def _format(namespace: str, attributes, directives, requirement: bool) -> str:
    parts = [namespace]
    parts.extend(_format_attribute(key, value, requirement) for key, value in attributes.items())
    parts.extend(f"{key}:={_quote(str(value))}" for key, value in directives.items())
    return ";".join(parts)


def format_capability(capability: Capability) -> str:
    """Render a capability as an inline clause."""
    return _format(capability.namespace, capability.attributes, capability.directives, requirement=False)


def format_requirement(requirement: Requirement) -> str:
    """Render a requirement as an inline clause."""
    return _format(requirement.namespace, requirement.attributes, requirement.directives, requirement=True)
