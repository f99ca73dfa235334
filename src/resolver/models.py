"""Data models for capabilities, requirements, resources and closures."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

try:
    from ..constants import Constants
    from ..versioning.models import Version, VersionRange
except ImportError:
    from constants import Constants
    from versioning.models import Version, VersionRange
from .filter import SimpleFilter

# string | Version | tuple of strings
AttributeValue = Union[str, Version, Tuple[str, ...]]


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, order=True)
class ResourceId:
    """Identity of a resource: kind, logical name and version."""

    kind: str
    name: str
    version: Version

    @property
    def logical_key(self) -> Tuple[str, str]:
        """Key under which at most one version may be selected."""
        return self.kind, self.name

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


@dataclass(frozen=True)
class Capability:
    """A namespaced, attributed fact offered by a resource."""

    namespace: str
    attributes: Mapping[str, AttributeValue] = field(default_factory=dict, hash=False)
    directives: Mapping[str, str] = field(default_factory=dict, hash=False)
    owner: Optional[ResourceId] = None

    def __post_init__(self):
        object.__setattr__(self, "attributes", _freeze(self.attributes))
        object.__setattr__(self, "directives", _freeze(self.directives))

    def attribute(self, key: str) -> Optional[AttributeValue]:
        """Return the attribute value for ``key`` or None."""
        return self.attributes.get(key)

    @property
    def version(self) -> Optional[Version]:
        value = self.attributes.get(Constants.VERSION_ATTRIBUTE)
        return value if isinstance(value, Version) else None

    def to_string(self) -> str:
        """Render as an inline clause that parses back to an equal capability."""
        from .clauses import format_capability  # pylint: disable=import-outside-toplevel
        return format_capability(self)

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class Requirement:
    """A namespaced filter some capability must satisfy.

    ``attributes`` keeps the declared attributes (a ``version`` attribute is a
    VersionRange) for diagnostics; matching is done by ``filter`` alone.
    """

    namespace: str
    filter: SimpleFilter
    attributes: Mapping[str, Any] = field(default_factory=dict, hash=False)
    directives: Mapping[str, str] = field(default_factory=dict, hash=False)
    owner: Optional[ResourceId] = None

    def __post_init__(self):
        object.__setattr__(self, "attributes", _freeze(self.attributes))
        object.__setattr__(self, "directives", _freeze(self.directives))

    @property
    def name(self) -> Optional[str]:
        """Logical name targeted (the attribute named after the namespace)."""
        value = self.attributes.get(self.namespace)
        return value if isinstance(value, str) else None

    @property
    def kind(self) -> Optional[str]:
        value = self.attributes.get(Constants.TYPE_ATTRIBUTE)
        return value if isinstance(value, str) else None

    @property
    def version_range(self) -> Optional[VersionRange]:
        value = self.attributes.get(Constants.VERSION_ATTRIBUTE)
        return value if isinstance(value, VersionRange) else None

    @property
    def optional(self) -> bool:
        return self.directives.get(Constants.RESOLUTION_DIRECTIVE) == Constants.RESOLUTION_OPTIONAL

    def matches(self, capability: Capability) -> bool:
        """Namespace check first, then the attribute filter."""
        if capability.namespace != self.namespace:
            return False
        return self.filter.matches(capability.attributes)

    def to_string(self) -> str:
        """Render as an inline clause that parses back to an equal requirement."""
        from .clauses import format_requirement  # pylint: disable=import-outside-toplevel
        return format_requirement(self)

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class Resource:
    """Immutable unit of resolution: one feature, bundle or condition."""

    id: ResourceId
    capabilities: Tuple[Capability, ...] = ()
    requirements: Tuple[Requirement, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "capabilities", tuple(self.capabilities))
        object.__setattr__(self, "requirements", tuple(self.requirements))

    @property
    def identity(self) -> Capability:
        for cap in self.capabilities:
            if cap.namespace == Constants.IDENTITY_NAMESPACE:
                return cap
        raise LookupError(f"Resource {self.id} has no identity capability")

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> Version:
        return self.id.version

    @property
    def kind(self) -> str:
        return self.id.kind

    @property
    def location(self) -> Optional[str]:
        for cap in self.capabilities:
            if cap.namespace == Constants.LOCATION_NAMESPACE:
                url = cap.attribute(Constants.LOCATION_URL_ATTRIBUTE)
                return url if isinstance(url, str) else None
        return None

    @property
    def is_synthetic(self) -> bool:
        """Condition resources exist only to drive conditional activation."""
        return self.id.kind == Constants.TYPE_CONDITION

    def capabilities_in(self, namespace: str) -> List[Capability]:
        return [cap for cap in self.capabilities if cap.namespace == namespace]

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class BundleRef:
    """Reference from a feature to a bundle location."""

    location: str
    dependency: bool = False


@dataclass(frozen=True)
class Dependency:
    """Feature-level dependency: a name plus an optional version expression."""

    name: str
    version: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name}/{self.version}" if self.version else self.name


@dataclass(frozen=True)
class Conditional:
    """Bundles and dependencies that apply only when ``condition`` is satisfiable."""

    condition: Tuple[Dependency, ...]
    bundles: Tuple[BundleRef, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()


@dataclass(frozen=True)
class Feature:
    """Declarative feature definition, consumed once by the resource builder."""

    name: str
    version: str = Constants.ANY_VERSION
    bundles: Tuple[BundleRef, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    conditionals: Tuple[Conditional, ...] = ()
    capabilities: Tuple[str, ...] = ()
    requirements: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


@dataclass(frozen=True)
class BundleDescriptor:
    """A plain artifact known to the repository."""

    location: str
    name: str
    version: str = Constants.ANY_VERSION
    capabilities: Tuple[str, ...] = ()
    requirements: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Closure:
    """Resolution output: selected resources and the edges between them.

    Equality considers ``selected`` and ``edges`` only.
    """

    selected: FrozenSet[ResourceId]
    edges: Mapping[ResourceId, FrozenSet[ResourceId]] = field(default_factory=dict, hash=False)
    resources: Tuple[Resource, ...] = field(default=(), compare=False)
    roots: Tuple[ResourceId, ...] = field(default=(), compare=False)
    missing_optional: Tuple[Requirement, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, "edges", _freeze(self.edges))

    def __len__(self) -> int:
        return len(self.selected)

    def __contains__(self, item) -> bool:
        return item in self.selected

    def resource(self, resource_id: ResourceId) -> Resource:
        for res in self.resources:
            if res.id == resource_id:
                return res
        raise KeyError(resource_id)

    def find(self, name: str, kind: Optional[str] = None) -> Optional[Resource]:
        """Return the selected resource with logical ``name`` (and ``kind``)."""
        for res in self.resources:
            if res.name == name and (kind is None or res.kind == kind):
                return res
        return None

    def installable(self) -> List[Resource]:
        """Selected resources minus synthetic condition resources."""
        return [res for res in self.resources if not res.is_synthetic]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roots": [str(r) for r in self.roots],
            "resources": [
                {
                    "name": res.name,
                    "version": str(res.version),
                    "type": res.kind,
                    "location": res.location,
                    "requires": sorted(str(dep) for dep in self.edges.get(res.id, ())),
                }
                for res in self.resources
            ],
            "missing_optional": [str(req) for req in self.missing_optional],
        }
