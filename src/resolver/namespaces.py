"""Namespace registry and helpers for the built-in identity/location namespaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional

try:
    from ..constants import Constants
    from ..versioning.models import ANY_RANGE, VersionRange
except ImportError:
    from constants import Constants
    from versioning.models import ANY_RANGE, VersionRange
from .filter import SimpleFilter
from .models import Capability, Requirement, ResourceId


@dataclass(frozen=True)
class Namespace:
    """A named kind of capability; ``identifying`` namespaces carry the logical name."""

    name: str
    description: str = ""
    identifying: bool = False


class NamespaceRegistry:
    """Known namespaces. Unknown namespaces are still accepted as generic ones."""

    def __init__(self):
        self._namespaces: Dict[str, Namespace] = {}

    def register(self, namespace: Namespace) -> Namespace:
        self._namespaces[namespace.name] = namespace
        return namespace

    def get(self, name: str) -> Namespace:
        return self._namespaces.get(name) or Namespace(name)

    def is_identifying(self, name: str) -> bool:
        return self.get(name).identifying

    def __contains__(self, name: str) -> bool:
        return name in self._namespaces

    def __iter__(self) -> Iterator[Namespace]:
        return iter(self._namespaces.values())


REGISTRY = NamespaceRegistry()
REGISTRY.register(Namespace(Constants.IDENTITY_NAMESPACE, "logical name, type and version of a resource", True))
REGISTRY.register(Namespace(Constants.LOCATION_NAMESPACE, "artifact location of a bundle"))


def identity_capability(owner: ResourceId) -> Capability:
    """Identity capability every resource publishes for itself."""
    return Capability(
        Constants.IDENTITY_NAMESPACE,
        {
            Constants.IDENTITY_NAMESPACE: owner.name,
            Constants.TYPE_ATTRIBUTE: owner.kind,
            Constants.VERSION_ATTRIBUTE: owner.version,
        },
        owner=owner,
    )


def location_capability(owner: ResourceId, url: str) -> Capability:
    return Capability(Constants.LOCATION_NAMESPACE, {Constants.LOCATION_URL_ATTRIBUTE: url}, owner=owner)


def identity_requirement(
    name: str,
    version_range: VersionRange = ANY_RANGE,
    kind: Optional[str] = None,
    owner: Optional[ResourceId] = None,
    optional: bool = False,
) -> Requirement:
    """Requirement on the identity namespace for ``name`` within ``version_range``.

    An any-version range adds no version term, so resources of every version
    match.
    """
    attributes = {Constants.IDENTITY_NAMESPACE: name}
    if kind:
        attributes[Constants.TYPE_ATTRIBUTE] = kind
    if not version_range.is_any:
        attributes[Constants.VERSION_ATTRIBUTE] = version_range
    directives = {Constants.RESOLUTION_DIRECTIVE: Constants.RESOLUTION_OPTIONAL} if optional else {}
    return Requirement(
        Constants.IDENTITY_NAMESPACE,
        SimpleFilter.from_attributes(attributes),
        attributes,
        directives,
        owner,
    )


def exact_requirement(target: ResourceId, owner: Optional[ResourceId] = None, optional: bool = False) -> Requirement:
    """Requirement pinned to exactly ``target``."""
    return identity_requirement(
        target.name, VersionRange.exact(target.version), target.kind, owner=owner, optional=optional
    )
