"""Tests for the resource builder and the resource index."""

import logging

import pytest

from src.common.errors import InvalidVersion, MalformedAssertion, UnresolvedBundleReference
from src.resolver.builder import (
    build_bundle_resource,
    build_feature_resource,
    build_feature_resources,
    build_universe,
)
from src.resolver.index import ResourceIndex
from src.resolver.models import BundleDescriptor, BundleRef, Conditional, Dependency, Feature, ResourceId
from src.resolver.namespaces import REGISTRY, Namespace, NamespaceRegistry, identity_requirement
from src.versioning.macro import RangeExpansionRule
from src.versioning.models import Version, VersionRange


POLICY = RangeExpansionRule("${range;[====,+)}")


def _bundle_index(*bundles):
    return ResourceIndex(build_bundle_resource(b) for b in bundles)


def _shape(resource):
    return (
        resource.id,
        [c.to_string() for c in resource.capabilities],
        [r.to_string() for r in resource.requirements],
    )


@pytest.fixture
def core_bundle():
    return BundleDescriptor("mvn:org.example/core/1.0", "org.example.core", "1.0")


class TestBundleResources:
    """Plain bundle artifacts."""

    def test_identity_and_location(self, core_bundle):
        res = build_bundle_resource(core_bundle)
        assert res.id == ResourceId("bundle", "org.example.core", Version(1, 0, 0))
        assert res.location == "mvn:org.example/core/1.0"
        assert res.identity.attribute("identity") == "org.example.core"
        assert res.identity.attribute("type") == "bundle"
        assert res.identity.version == Version(1, 0, 0)

    def test_inline_capabilities_and_requirements(self):
        res = build_bundle_resource(BundleDescriptor(
            "mvn:x/y/2", "x.y", "2.0",
            capabilities=("service;objectClass=Foo",),
            requirements=("service;objectClass=Bar",),
        ))
        assert [c.namespace for c in res.capabilities_in("service")] == ["service"]
        assert res.requirements[0].owner == res.id

    def test_lenient_version(self):
        res = build_bundle_resource(BundleDescriptor("mvn:x/y/1.0-SNAPSHOT", "x.y", "1.0-SNAPSHOT"), lenient=True)
        assert res.version == Version(1, 0, 0, "SNAPSHOT")
        with pytest.raises(InvalidVersion):
            build_bundle_resource(BundleDescriptor("mvn:x/y/1.0-SNAPSHOT", "x.y", "1.0-SNAPSHOT"))


class TestFeatureResources:
    """Feature to resource conversion."""

    def test_identity_capability(self):
        res = build_feature_resource(Feature("app", "1.2"), POLICY)
        assert res.id == ResourceId("feature", "app", Version(1, 2, 0))
        assert res.identity.attribute("identity") == "app"
        assert res.requirements == ()

    def test_bundle_reference_is_exact(self, core_bundle):
        index = _bundle_index(core_bundle)
        res = build_feature_resource(Feature("app", "1.0", bundles=(BundleRef(core_bundle.location),)), POLICY, index)
        req = res.requirements[0]
        assert req.name == "org.example.core"
        assert req.kind == "bundle"
        assert req.version_range.is_exact
        assert req.matches(index.by_location(core_bundle.location).identity)

    def test_missing_bundle_fails_build(self):
        with pytest.raises(UnresolvedBundleReference) as excinfo:
            build_feature_resource(Feature("app", "1.0", bundles=(BundleRef("mvn:missing/1"),)), POLICY)
        assert excinfo.value.location == "mvn:missing/1"
        assert "app" in str(excinfo.value)

    def test_dependency_only_bundle_adds_no_requirement(self):
        res = build_feature_resource(
            Feature("app", "1.0", bundles=(BundleRef("mvn:missing/1", dependency=True),)), POLICY
        )
        assert res.requirements == ()

    def test_unversioned_dependency_matches_any(self):
        req = build_feature_resource(Feature("app", "1.0", dependencies=(Dependency("base"),)), POLICY).requirements[0]
        assert req.name == "base"
        assert req.kind == "feature"
        assert req.version_range is None
        req_zero = build_feature_resource(
            Feature("app", "1.0", dependencies=(Dependency("base", "0.0.0"),)), POLICY
        ).requirements[0]
        assert req_zero.version_range is None

    def test_bare_dependency_version_is_expanded(self):
        req = build_feature_resource(
            Feature("app", "1.0", dependencies=(Dependency("camel", "2.1"),)), POLICY
        ).requirements[0]
        assert str(req.version_range) == "[2.1.0,3.0.0)"

    def test_bracketed_dependency_used_verbatim(self):
        req = build_feature_resource(
            Feature("app", "1.0", dependencies=(Dependency("camel", "[2.0,2.5]"),)), POLICY
        ).requirements[0]
        assert req.version_range == VersionRange.parse("[2.0,2.5]")

    def test_explicit_clauses_appended_last(self):
        res = build_feature_resource(Feature(
            "app", "1.0",
            dependencies=(Dependency("base"),),
            capabilities=("service;objectClass=Foo",),
            requirements=("osgi.ee;filter:=\"(osgi.ee=JavaSE)\"",),
        ), POLICY)
        assert [r.namespace for r in res.requirements] == ["identity", "osgi.ee"]
        assert res.capabilities_in("service")[0].owner == res.id

    def test_malformed_clause_fails_build(self):
        with pytest.raises(MalformedAssertion):
            build_feature_resource(Feature("app", "1.0", capabilities=("foo;;",)), POLICY)

    def test_conditional_becomes_condition_resource(self):
        extra = BundleDescriptor("mvn:e/1", "E", "1.0")
        index = _bundle_index(extra)
        feature = Feature("A", "1.0", conditionals=(
            Conditional(condition=(Dependency("D"),), bundles=(BundleRef("mvn:e/1"),), dependencies=(Dependency("F", "1.0"),)),
        ))
        main, condition = build_feature_resources(feature, POLICY, index)
        assert condition.id == ResourceId("condition", "A#D", Version(1, 0, 0))
        assert condition.is_synthetic
        names = [r.name for r in condition.requirements]
        assert names == ["D", "A", "E", "F"]
        assert not any(r.optional for r in condition.requirements)
        owner_req = main.requirements[-1]
        assert owner_req.optional
        assert owner_req.matches(condition.identity)

    def test_condition_ids_are_unique(self):
        feature = Feature("A", "1.0", conditionals=(
            Conditional(condition=(Dependency("D"),)),
            Conditional(condition=(Dependency("D"),)),
        ))
        _, first, second = build_feature_resources(feature, POLICY)
        assert first.id != second.id

    def test_build_is_deterministic(self, core_bundle):
        index = _bundle_index(core_bundle)
        feature = Feature(
            "A", "1.0",
            bundles=(BundleRef(core_bundle.location),),
            dependencies=(Dependency("B", "1.0"), Dependency("C")),
            conditionals=(Conditional(condition=(Dependency("D"),)),),
            capabilities=("x;y=1",),
        )
        first = build_feature_resources(feature, POLICY, index)
        second = build_feature_resources(feature, POLICY, index)
        assert [_shape(r) for r in first] == [_shape(r) for r in second]


class TestBuildUniverse:
    """Batch building with per-entry failures."""

    def test_failures_are_isolated(self, core_bundle):
        report = build_universe(
            bundles=[core_bundle, BundleDescriptor("mvn:bad/1", "bad", "1.x")],
            features=[
                Feature("good", "1.0", bundles=(BundleRef(core_bundle.location),)),
                Feature("broken", "1.x"),
                Feature("dangling", "1.0", bundles=(BundleRef("mvn:bad/1"),)),
            ],
            policy=POLICY,
        )
        assert not report.ok
        assert set(report.errors) == {"mvn:bad/1", "broken/1.x", "dangling/1.0"}
        assert isinstance(report.errors["dangling/1.0"], UnresolvedBundleReference)
        names = [r.name for r in report.index]
        assert names == ["org.example.core", "good"]
        with pytest.raises(InvalidVersion):
            report.raise_first()

    def test_clean_build(self, core_bundle):
        report = build_universe([core_bundle], [Feature("good", "1.0")], POLICY)
        assert report.ok
        report.raise_first()
        assert len(report.index) == 2

    def test_lenient_applies_to_dependency_versions(self):
        features = [
            Feature("x", "1.0-SNAPSHOT"),
            Feature("app", "1.0", dependencies=(Dependency("x", "1.0-SNAPSHOT"),)),
        ]
        report = build_universe([], features, POLICY, lenient=True)
        assert report.ok
        app = report.index.get(ResourceId("feature", "app", Version(1, 0, 0)))
        snapshot = report.index.get(ResourceId("feature", "x", Version(1, 0, 0, "SNAPSHOT")))
        assert app.requirements[0].matches(snapshot.identity)
        strict = build_universe([], features, POLICY)
        assert set(strict.errors) == {"x/1.0-SNAPSHOT", "app/1.0"}


class TestResourceIndex:
    """Lookups over the immutable universe."""

    def test_duplicate_ids_keep_first(self, caplog):
        first = build_bundle_resource(BundleDescriptor("mvn:a/1", "a", "1.0"))
        second = build_bundle_resource(BundleDescriptor("mvn:a/1-copy", "a", "1.0"))
        with caplog.at_level(logging.WARNING):
            index = ResourceIndex([first, second])
        assert len(index) == 1
        assert index.get(first.id).location == "mvn:a/1"
        assert index.by_location("mvn:a/1-copy") is None
        assert "Duplicate resource" in caplog.text

    def test_find_providers_in_discovery_order(self):
        resources = [
            build_bundle_resource(BundleDescriptor(f"mvn:a/{v}", "a", v)) for v in ("2.0", "1.0", "3.0")
        ]
        index = ResourceIndex(resources)
        providers = index.find_providers(identity_requirement("a", VersionRange.parse("[1.0,3.0)")))
        assert [str(p.version) for p in providers] == ["2.0.0", "1.0.0"]
        assert resources[0] in index
        assert resources[0].id in index

    def test_with_resources_returns_new_index(self):
        index = ResourceIndex()
        bigger = index.with_resources([build_bundle_resource(BundleDescriptor("mvn:a/1", "a", "1.0"))])
        assert len(index) == 0
        assert len(bigger) == 1

    def test_by_name_lists_all_versions(self):
        index = ResourceIndex(
            build_bundle_resource(BundleDescriptor(f"mvn:a/{v}", "a", v)) for v in ("1.0", "2.0")
        )
        assert [str(r.version) for r in index.by_name("a")] == ["1.0.0", "2.0.0"]
        assert index.by_name("b") == []


class TestNamespaceRegistry:
    """Built-in and generic namespaces."""

    def test_builtin_namespaces(self):
        assert "identity" in REGISTRY
        assert "location" in REGISTRY
        assert REGISTRY.is_identifying("identity")
        assert not REGISTRY.is_identifying("location")

    def test_unknown_namespace_is_generic(self):
        assert "osgi.service" not in REGISTRY
        assert REGISTRY.get("osgi.service") == Namespace("osgi.service")
        assert not REGISTRY.is_identifying("osgi.service")

    def test_register(self):
        registry = NamespaceRegistry()
        registry.register(Namespace("custom", identifying=True))
        assert registry.is_identifying("custom")
        assert [ns.name for ns in registry] == ["custom"]
