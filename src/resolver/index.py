"""Immutable, ordered universe of resources with provider lookup."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

try:
    from ..common.logging_utils import extra_context
except ImportError:
    from common.logging_utils import extra_context
from .models import Requirement, Resource, ResourceId
from .namespaces import REGISTRY

logger = logging.getLogger(__name__)


class ResourceIndex:
    """Resources in discovery order, indexed by id, location and logical name.

    When two resources share an id the first one wins and the duplicate is
    logged and ignored.
    """

    def __init__(self, resources: Iterable[Resource] = ()):
        ordered: List[Resource] = []
        self._by_id: Dict[ResourceId, Resource] = {}
        self._by_location: Dict[str, Resource] = {}
        self._by_name: Dict[str, List[Resource]] = {}
        for resource in resources:
            if resource.id in self._by_id:
                logger.warning(
                    "Duplicate resource %s ignored; keeping the first definition",
                    resource.id,
                    extra=extra_context(event="duplicate", component="index", outcome="ignored",
                                        resource=str(resource.id)),
                )
                continue
            ordered.append(resource)
            self._by_id[resource.id] = resource
            self._by_name.setdefault(resource.name, []).append(resource)
            location = resource.location
            if location and location not in self._by_location:
                self._by_location[location] = resource
        self._resources: Tuple[Resource, ...] = tuple(ordered)

    def get(self, resource_id: ResourceId) -> Optional[Resource]:
        return self._by_id.get(resource_id)

    def by_location(self, location: str) -> Optional[Resource]:
        return self._by_location.get(location)

    def by_name(self, name: str) -> List[Resource]:
        return list(self._by_name.get(name, ()))

    def find_providers(self, requirement: Requirement) -> List[Resource]:
        """Resources offering a capability that satisfies ``requirement``, in discovery order."""
        if REGISTRY.is_identifying(requirement.namespace) and requirement.name:
            candidates = self._by_name.get(requirement.name, ())
        else:
            candidates = self._resources
        return [
            resource
            for resource in candidates
            if any(requirement.matches(cap) for cap in resource.capabilities_in(requirement.namespace))
        ]

    def with_resources(self, resources: Iterable[Resource]) -> "ResourceIndex":
        """Return a new index with ``resources`` appended."""
        return ResourceIndex(list(self._resources) + list(resources))

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources)

    def __contains__(self, item) -> bool:
        if isinstance(item, Resource):
            return item.id in self._by_id
        return item in self._by_id
