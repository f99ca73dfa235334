"""Feature/capability resolver package.

This package turns declarative features and bundles into immutable resources
and resolves root requirements into install closures:
- models.py: capabilities, requirements, resources and closures
- clauses.py / filter.py: inline clause and LDAP filter parsing
- builder.py: feature and bundle resource construction
- engine.py: greedy closure engine
- service.py: universe building and batch resolution
"""

from .engine import resolve
from .models import Capability, Closure, Requirement, Resource, ResourceId

__all__ = [
    "resolve",
    "Capability",
    "Closure",
    "Requirement",
    "Resource",
    "ResourceId",
]
