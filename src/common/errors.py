"""Error taxonomy shared by the versioning, resolver and repository layers.

Build-time errors (``BuildError`` and subclasses) are local to one feature or
descriptor entry. Resolve-time errors (``ResolutionError`` and subclasses) are
terminal for a whole ``resolve()`` call.
"""
from __future__ import annotations

from typing import Any, Optional


class FeatureResolveError(Exception):
    """Base class for every error raised by featuresolve."""


class BuildError(FeatureResolveError):
    """Raised while turning declarative input into Resources."""


class InvalidVersion(BuildError, ValueError):
    """A version string does not follow major[.minor[.micro[.qualifier]]]."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"Invalid version '{text}': {reason}")
        self.text = text
        self.reason = reason


class InvalidRange(BuildError, ValueError):
    """A version range expression is malformed."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"Invalid version range '{text}': {reason}")
        self.text = text
        self.reason = reason


class MalformedAssertion(BuildError, ValueError):
    """An inline capability/requirement clause or filter cannot be parsed."""

    def __init__(self, clause: str, position: int, reason: str):
        super().__init__(f"Malformed assertion '{clause}' at position {position}: {reason}")
        self.clause = clause
        self.position = position
        self.reason = reason


class UnresolvedBundleReference(BuildError):
    """A feature references a bundle location absent from the universe."""

    def __init__(self, location: str, feature: Optional[str] = None):
        owner = f" (feature {feature})" if feature else ""
        super().__init__(f"Bundle location '{location}' not found in repository{owner}")
        self.location = location
        self.feature = feature


class DescriptorError(FeatureResolveError):
    """A repository descriptor file is unreadable or structurally invalid."""


class ResolutionError(FeatureResolveError):
    """Raised by the closure engine; never recovered from internally."""


class UnsatisfiableRequirement(ResolutionError):
    """No capability in the universe satisfies a mandatory requirement."""

    def __init__(self, requirement: Any):
        super().__init__(f"Unable to satisfy requirement {requirement}")
        self.requirement = requirement

    @property
    def name(self) -> Optional[str]:
        """Logical name targeted by the requirement, when it names one."""
        return getattr(self.requirement, "name", None)

    @property
    def range(self) -> Any:
        """Version range carried by the requirement, when it has one."""
        return getattr(self.requirement, "version_range", None)


class VersionConflict(ResolutionError):
    """A logical name is already selected at a version outside a later range."""

    def __init__(self, name: str, existing: Any, required_range: Any, requirement: Any = None):
        super().__init__(
            f"Version conflict on '{name}': selected {existing} "
            f"does not satisfy {required_range}"
        )
        self.name = name
        self.existing = existing
        self.required_range = required_range
        self.requirement = requirement
