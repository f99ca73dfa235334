"""Token parsing utilities for feature requests and version constraints."""

import re
from typing import Optional, Tuple

try:
    from ..constants import Constants
except ImportError:
    from constants import Constants
from .macro import RangeExpansionRule
from .models import ANY_RANGE, Version, VersionRange

_CLEAN_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[.\-_]?(.*))?$")


def tokenize_root(s: str) -> Tuple[str, Optional[str]]:
    """Return (name, version expression or None) using the rightmost-slash rule.

    ``camel/[2.0,3.0)`` gives ``("camel", "[2.0,3.0)")``; a bare name has no
    version expression.
    """
    s = s.strip()
    if "/" not in s:
        return s, None
    name, spec = s.rsplit("/", 1)
    spec = spec.strip()
    return name.strip(), spec if spec else None


def clean_version(text: str) -> str:
    """Coerce loosely formatted versions (``1.0-SNAPSHOT``) into canonical text.

    Anything after the numeric prefix becomes the qualifier, with characters
    outside the qualifier alphabet replaced by ``_``.
    """
    s = (text or "").strip()
    match = _CLEAN_RE.match(s)
    if not match:
        return "0.0.0." + re.sub(r"[^A-Za-z0-9_-]", "_", s) if s else "0.0.0"
    major, minor, micro, rest = match.groups()
    base = f"{int(major)}.{int(minor or 0)}.{int(micro or 0)}"
    if rest:
        return f"{base}.{re.sub(r'[^A-Za-z0-9_-]', '_', rest)}"
    return base


def parse_version(text: str, lenient: bool = False) -> Version:
    """Parse a version, cleaning it first when ``lenient`` is set."""
    return Version.parse(clean_version(text) if lenient else text)


def dependency_range(
    expr: Optional[str], policy: Optional[RangeExpansionRule] = None, lenient: bool = False
) -> VersionRange:
    """Turn a dependency's version expression into the range it requires.

    ``None``, empty and ``0.0.0`` mean any version; bracketed expressions are
    taken verbatim; anything else is expanded with ``policy`` (defaults to
    Constants.RANGE_POLICY), after cleaning with ``clean_version`` when
    ``lenient`` is set.
    """
    if expr is None:
        return ANY_RANGE
    s = str(expr).strip()
    if not s or s == Constants.ANY_VERSION:
        return ANY_RANGE
    if s[0] in "[(":
        return VersionRange.parse(s)
    if lenient:
        s = clean_version(s)
    rule = policy or RangeExpansionRule(Constants.RANGE_POLICY)
    return rule.expand(s)
