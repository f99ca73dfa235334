"""Resource builder: turns declarative bundles and features into Resources.

Each feature becomes one feature Resource plus one synthetic condition
Resource per conditional block. A condition Resource requires the
condition's dependencies, the owning feature and the block's extra bundles
and dependencies; the owning feature requires it optionally, so an
unsatisfiable condition simply leaves the block out of the closure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

try:
    from ..common.errors import BuildError, UnresolvedBundleReference
    from ..common.logging_utils import extra_context, is_debug_enabled
    from ..constants import Constants
    from ..versioning.macro import RangeExpansionRule
    from ..versioning.parser import dependency_range, parse_version
except ImportError:
    from common.errors import BuildError, UnresolvedBundleReference
    from common.logging_utils import extra_context, is_debug_enabled
    from constants import Constants
    from versioning.macro import RangeExpansionRule
    from versioning.parser import dependency_range, parse_version
from .clauses import parse_capabilities, parse_requirements
from .index import ResourceIndex
from .models import BundleDescriptor, BundleRef, Conditional, Dependency, Feature, Requirement, Resource, ResourceId
from .namespaces import exact_requirement, identity_capability, identity_requirement, location_capability

logger = logging.getLogger(__name__)


def _policy(policy: Optional[RangeExpansionRule]) -> RangeExpansionRule:
    return policy if policy is not None else RangeExpansionRule(Constants.RANGE_POLICY)


def _parse_joined(texts: Iterable[str], parser, owner: ResourceId) -> list:
    parsed = []
    for text in texts:
        parsed.extend(parser(text, owner))
    return parsed


def build_bundle_resource(bundle: BundleDescriptor, lenient: bool = False) -> Resource:
    """Build the Resource for a plain bundle artifact.

    Raises:
        InvalidVersion: bundle version is malformed.
        MalformedAssertion: an inline capability/requirement is malformed.
    """
    rid = ResourceId(Constants.TYPE_BUNDLE, bundle.name, parse_version(bundle.version, lenient))
    capabilities = [identity_capability(rid), location_capability(rid, bundle.location)]
    capabilities.extend(_parse_joined(bundle.capabilities, parse_capabilities, rid))
    requirements = _parse_joined(bundle.requirements, parse_requirements, rid)
    return Resource(rid, capabilities, requirements)


def _dependency_requirement(
    dep: Dependency, policy: RangeExpansionRule, owner: ResourceId, lenient: bool = False
) -> Requirement:
    return identity_requirement(
        dep.name, dependency_range(dep.version, policy, lenient), Constants.TYPE_FEATURE, owner=owner
    )


def _bundle_requirements(
    refs: Iterable[BundleRef], index: ResourceIndex, owner: ResourceId, feature: Feature
) -> List[Requirement]:
    requirements = []
    for ref in refs:
        if ref.dependency:
            continue
        target = index.by_location(ref.location)
        if target is None:
            raise UnresolvedBundleReference(ref.location, str(feature))
        requirements.append(exact_requirement(target.id, owner=owner))
    return requirements


def condition_id(feature_id: ResourceId, conditional: Conditional, taken: Iterable[str] = ()) -> ResourceId:
    """Deterministic identity of a conditional block's synthetic resource."""
    label = "+".join(str(dep) for dep in conditional.condition)
    name = f"{feature_id.name}#{label}"
    suffix = 2
    taken = set(taken)
    while name in taken:
        name = f"{feature_id.name}#{label}#{suffix}"
        suffix += 1
    return ResourceId(Constants.TYPE_CONDITION, name, feature_id.version)


def build_feature_resources(
    feature: Feature,
    policy: Optional[RangeExpansionRule] = None,
    index: Optional[ResourceIndex] = None,
    lenient: bool = False,
) -> Tuple[Resource, ...]:
    """Build the feature Resource followed by its condition Resources.

    Args:
        feature: Declarative feature definition.
        policy: Range expansion for bare dependency versions.
        index: Universe used to resolve bundle locations.
        lenient: Clean loosely formatted feature and dependency versions.

    Returns:
        tuple: (feature resource, *condition resources)

    Raises:
        BuildError: any build-time failure for this feature.
    """
    policy = _policy(policy)
    index = index if index is not None else ResourceIndex()
    rid = ResourceId(Constants.TYPE_FEATURE, feature.name, parse_version(feature.version, lenient))

    conditions: List[Resource] = []
    for conditional in feature.conditionals:
        if not conditional.condition:
            raise BuildError(f"Feature {feature} has a conditional block without a condition")
        cid = condition_id(rid, conditional, (c.name for c in conditions))
        requirements = [_dependency_requirement(dep, policy, cid, lenient) for dep in conditional.condition]
        requirements.append(exact_requirement(rid, owner=cid))
        requirements.extend(_bundle_requirements(conditional.bundles, index, cid, feature))
        requirements.extend(_dependency_requirement(dep, policy, cid, lenient) for dep in conditional.dependencies)
        conditions.append(Resource(cid, [identity_capability(cid)], requirements))

    capabilities = [identity_capability(rid)]
    capabilities.extend(_parse_joined(feature.capabilities, parse_capabilities, rid))
    requirements = _bundle_requirements(feature.bundles, index, rid, feature)
    requirements.extend(_dependency_requirement(dep, policy, rid, lenient) for dep in feature.dependencies)
    requirements.extend(exact_requirement(cond.id, owner=rid, optional=True) for cond in conditions)
    requirements.extend(_parse_joined(feature.requirements, parse_requirements, rid))

    if is_debug_enabled(logger):
        logger.debug(
            "Built feature resource",
            extra=extra_context(event="function_exit", component="builder", action="build_feature",
                                feature=str(rid), requirements=len(requirements),
                                conditions=len(conditions))
        )
    return (Resource(rid, capabilities, requirements), *conditions)


def build_feature_resource(
    feature: Feature,
    policy: Optional[RangeExpansionRule] = None,
    index: Optional[ResourceIndex] = None,
    lenient: bool = False,
) -> Resource:
    """Build only the feature Resource (condition Resources are dropped)."""
    return build_feature_resources(feature, policy, index, lenient)[0]


@dataclass
class BuildReport:
    """Outcome of a batch build: the universe plus per-entry failures."""

    index: ResourceIndex
    errors: Dict[str, BuildError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_first(self) -> None:
        """Re-raise the first recorded failure, if any."""
        for error in self.errors.values():
            raise error


def build_universe(
    bundles: Iterable[BundleDescriptor] = (),
    features: Iterable[Feature] = (),
    policy: Optional[RangeExpansionRule] = None,
    lenient: bool = False,
) -> BuildReport:
    """Build every bundle, then every feature, collecting failures per entry.

    A failing entry is left out of the universe; the rest still build.
    """
    policy = _policy(policy)
    errors: Dict[str, BuildError] = {}
    bundle_resources: List[Resource] = []
    for bundle in bundles:
        try:
            bundle_resources.append(build_bundle_resource(bundle, lenient))
        except BuildError as exc:
            errors[bundle.location] = exc
            logger.warning("Skipping bundle %s: %s", bundle.location, exc,
                           extra=extra_context(event="build", component="builder", outcome="failed",
                                               target=bundle.location))
    index = ResourceIndex(bundle_resources)

    feature_resources: List[Resource] = []
    for feature in features:
        try:
            feature_resources.extend(build_feature_resources(feature, policy, index, lenient))
        except BuildError as exc:
            errors[str(feature)] = exc
            logger.warning("Skipping feature %s: %s", feature, exc,
                           extra=extra_context(event="build", component="builder", outcome="failed",
                                               target=str(feature)))
    index = index.with_resources(feature_resources)
    logger.debug("Universe built with %d resources (%d failures)", len(index), len(errors))
    return BuildReport(index, errors)
