"""Repository descriptor loading (YAML or JSON).

A descriptor lists plain ``bundles`` and ``features``::

    bundles:
      - location: mvn:org.example/core/1.0
        name: org.example.core
        version: 1.0.0
        capabilities: ["osgi.service;objectClass=Foo"]
    features:
      - name: app
        version: 1.0.0
        bundles: ["mvn:org.example/core/1.0", {location: "mvn:x/y/1", dependency: true}]
        dependencies: ["base", "logging/2.1", {name: "web", version: "[1,2)"}]
        conditionals:
          - condition: ["web"]
            bundles: ["mvn:org.example/web-support/1.0"]
"""

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Tuple

try:
    from ..common.errors import DescriptorError
    from ..common.logging_utils import extra_context, is_debug_enabled
    from ..constants import Constants
    from ..resolver.models import BundleDescriptor, BundleRef, Conditional, Dependency, Feature
    from ..versioning.parser import tokenize_root
except ImportError:
    from common.errors import DescriptorError
    from common.logging_utils import extra_context, is_debug_enabled
    from constants import Constants
    from resolver.models import BundleDescriptor, BundleRef, Conditional, Dependency, Feature
    from versioning.parser import tokenize_root

logger = logging.getLogger(__name__)


def _as_list(value: Any, where: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise DescriptorError(f"{where}: expected a list, got {type(value).__name__}")
    return value


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _clauses(value: Any, where: str) -> Tuple[str, ...]:
    return tuple(_text(item) for item in _as_list(value, where) if _text(item))


def _bundle_ref(entry: Any, where: str) -> BundleRef:
    if isinstance(entry, str):
        return BundleRef(entry.strip())
    if isinstance(entry, dict) and entry.get("location"):
        return BundleRef(_text(entry["location"]), bool(entry.get("dependency", False)))
    raise DescriptorError(f"{where}: bundle reference needs a location")


def _dependency(entry: Any, where: str) -> Dependency:
    if isinstance(entry, str):
        name, version = tokenize_root(entry)
        if not name:
            raise DescriptorError(f"{where}: empty dependency name")
        return Dependency(name, version)
    if isinstance(entry, dict) and entry.get("name"):
        version = entry.get("version")
        return Dependency(_text(entry["name"]), _text(version) if version is not None else None)
    raise DescriptorError(f"{where}: dependency needs a name")


def parse_bundle(entry: Any, where: str = "bundle") -> BundleDescriptor:
    """Convert one ``bundles`` entry into a BundleDescriptor."""
    if not isinstance(entry, dict):
        raise DescriptorError(f"{where}: expected a mapping")
    location = _text(entry.get("location"))
    if not location:
        raise DescriptorError(f"{where}: missing location")
    return BundleDescriptor(
        location=location,
        name=_text(entry.get("name")) or location,
        version=_text(entry.get("version")) or Constants.ANY_VERSION,
        capabilities=_clauses(entry.get("capabilities"), f"{where}.capabilities"),
        requirements=_clauses(entry.get("requirements"), f"{where}.requirements"),
    )


def parse_feature(entry: Any, where: str = "feature") -> Feature:
    """Convert one ``features`` entry into a Feature."""
    if not isinstance(entry, dict):
        raise DescriptorError(f"{where}: expected a mapping")
    name = _text(entry.get("name"))
    if not name:
        raise DescriptorError(f"{where}: missing name")
    where = f"feature {name}"
    conditionals = []
    for i, block in enumerate(_as_list(entry.get("conditionals"), f"{where}.conditionals")):
        if not isinstance(block, dict):
            raise DescriptorError(f"{where}.conditionals[{i}]: expected a mapping")
        conditionals.append(Conditional(
            condition=tuple(_dependency(d, f"{where}.conditionals[{i}].condition")
                            for d in _as_list(block.get("condition"), f"{where}.conditionals[{i}].condition")),
            bundles=tuple(_bundle_ref(b, f"{where}.conditionals[{i}].bundles")
                          for b in _as_list(block.get("bundles"), f"{where}.conditionals[{i}].bundles")),
            dependencies=tuple(_dependency(d, f"{where}.conditionals[{i}].dependencies")
                               for d in _as_list(block.get("dependencies"), f"{where}.conditionals[{i}].dependencies")),
        ))
    return Feature(
        name=name,
        version=_text(entry.get("version")) or Constants.ANY_VERSION,
        bundles=tuple(_bundle_ref(b, f"{where}.bundles") for b in _as_list(entry.get("bundles"), f"{where}.bundles")),
        dependencies=tuple(_dependency(d, f"{where}.dependencies")
                           for d in _as_list(entry.get("dependencies"), f"{where}.dependencies")),
        conditionals=tuple(conditionals),
        capabilities=_clauses(entry.get("capabilities"), f"{where}.capabilities"),
        requirements=_clauses(entry.get("requirements"), f"{where}.requirements"),
    )


def _read(path: str) -> Dict[str, Any]:
    ext = os.path.splitext(path)[1].lstrip(".").lower()
    if ext not in Constants.DESCRIPTOR_FORMATS:
        raise DescriptorError(f"{path}: unsupported descriptor format '{ext}'")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if ext == "json":
                data = json.load(fh)
            else:
                import yaml  # pylint: disable=import-outside-toplevel
                try:
                    data = yaml.safe_load(fh)
                except yaml.YAMLError as exc:
                    raise DescriptorError(f"{path}: invalid YAML: {exc}") from exc
    except FileNotFoundError as exc:
        raise DescriptorError(f"{path}: file not found") from exc
    except json.JSONDecodeError as exc:
        raise DescriptorError(f"{path}: invalid JSON: {exc}") from exc
    except OSError as exc:
        raise DescriptorError(f"{path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DescriptorError(f"{path}: top level must be a mapping")
    return data


def load_descriptor(path: str) -> Tuple[List[BundleDescriptor], List[Feature]]:
    """Load one descriptor file.

    Raises:
        DescriptorError: unreadable file or invalid structure.
    """
    data = _read(path)
    bundles = [parse_bundle(entry, f"{path}: bundles[{i}]")
               for i, entry in enumerate(_as_list(data.get("bundles"), f"{path}: bundles"))]
    features = [parse_feature(entry, f"{path}: features[{i}]")
                for i, entry in enumerate(_as_list(data.get("features"), f"{path}: features"))]
    if is_debug_enabled(logger):
        logger.debug(
            "Loaded descriptor",
            extra=extra_context(event="load", component="loader", target=path,
                                bundles=len(bundles), features=len(features))
        )
    return bundles, features


def load_descriptors(paths: Iterable[str]) -> Tuple[List[BundleDescriptor], List[Feature]]:
    """Load and merge several descriptors in the given order."""
    bundles: List[BundleDescriptor] = []
    features: List[Feature] = []
    for path in paths:
        more_bundles, more_features = load_descriptor(path)
        bundles.extend(more_bundles)
        features.extend(more_features)
    logger.info("Loaded %d bundle(s) and %d feature(s)", len(bundles), len(features))
    return bundles, features
