"""Range expansion policy.

Turns a plain version such as ``2.1`` into a range such as ``[2.1.0,3.0.0)``
using a ``${range;<floor-mask>,<ceiling-mask>}`` template. Each mask
character applies to one version position (major, minor, micro, qualifier):

    =   keep the component
    +   increment it
    -   decrement it
    ~   drop it (and stop emitting that position)
    0-9 use the literal digit

Masks shorter than four characters drop the remaining positions, so ``+``
alone on ``2.1.5`` yields ``3``.

The qualifier position only keeps or drops: ``~`` drops the qualifier and
any other character keeps it, so ``[===9,+)`` on ``1.0.0.RC1`` floors at
``1.0.0.RC1``. A missing qualifier emits nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

try:
    from ..common.errors import InvalidRange
except ImportError:
    from common.errors import InvalidRange
from .models import Version, VersionRange

_TEMPLATE_RE = re.compile(r"^\$\{range;(?P<body>.*)\}$")
_BODY_RE = re.compile(r"^(?P<open>[\[(])(?P<floor>[-+=~0-9]{0,4}),(?P<ceiling>[-+=~0-9]{0,4})(?P<close>[\])])$")


def apply_mask(mask: str, version: Version) -> str:
    """Apply a version mask and return the resulting version text."""
    components = [version.major, version.minor, version.micro]
    out = []
    for index, char in enumerate(mask):
        if char == "~":
            continue
        if index == 3:
            # qualifier: keep or drop only
            if version.qualifier:
                out.append(version.qualifier)
            continue
        if char.isdigit():
            out.append(char)
            continue
        value = components[index]
        if char == "+":
            value += 1
        elif char == "-":
            value = max(0, value - 1)
        out.append(str(value))
    return ".".join(out)


@dataclass(frozen=True)
class RangeExpansionRule:
    """Configurable macro expanding a bare version into a VersionRange."""

    template: str

    def __post_init__(self):
        self._parts()

    def _parts(self):
        template = self.template.strip()
        match = _TEMPLATE_RE.match(template)
        body = match.group("body") if match else template
        parsed = _BODY_RE.match(body.strip())
        if not parsed:
            raise InvalidRange(self.template, "expected ${range;[<mask>,<mask>)} template")
        return parsed.group("open"), parsed.group("floor"), parsed.group("ceiling"), parsed.group("close")

    def expand(self, version) -> VersionRange:
        """Expand ``version`` (text or Version) into a range."""
        v = Version.of(version)
        opening, floor_mask, ceiling_mask, closing = self._parts()
        text = "{}{},{}{}".format(opening, apply_mask(floor_mask, v), apply_mask(ceiling_mask, v), closing)
        return VersionRange.parse(text)

    def __str__(self) -> str:
        return self.template
