"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    BUILD_ERROR = 3
    RESOLUTION_ERROR = 4


class TieBreak(Enum):
    """Provider preference when several candidates share the same version.

    Args:
        Enum (string): Tie-break strategies supported by the resolver.
    """

    FIRST = "first"
    LAST = "last"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Namespaces and attribute keys
    IDENTITY_NAMESPACE = "identity"
    LOCATION_NAMESPACE = "location"
    VERSION_ATTRIBUTE = "version"
    TYPE_ATTRIBUTE = "type"
    LOCATION_URL_ATTRIBUTE = "url"
    TYPE_FEATURE = "feature"
    TYPE_BUNDLE = "bundle"
    TYPE_CONDITION = "condition"
    RESOLUTION_DIRECTIVE = "resolution"
    RESOLUTION_OPTIONAL = "optional"
    FILTER_DIRECTIVE = "filter"

    # Resolver tunables
    ANY_VERSION = "0.0.0"
    DEFAULT_RANGE_POLICY = "${range;[====,+)}"
    RANGE_POLICY = DEFAULT_RANGE_POLICY
    TIE_BREAK = TieBreak.FIRST.value
    MAX_WORKERS = 4
    LENIENT_VERSIONS = False

    # Input / output
    DESCRIPTOR_FORMATS = ["yaml", "yml", "json"]
    OUTPUT_FORMATS = ["json", "csv"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "FEATURESOLVE_LOG_LEVEL"
    ENV_CONFIG = "FEATURESOLVE_CONFIG"
    DEFAULT_CONFIG_LOCATIONS = [
        "featuresolve.yml",
        "featuresolve.yaml",
        os.path.join("~", ".config", "featuresolve", "featuresolve.yml"),
    ]


def _config_candidates():
    """Return config file paths to try, explicit environment path first."""
    paths = []
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        paths.append(env_path)
    paths.extend(os.path.expanduser(p) for p in Constants.DEFAULT_CONFIG_LOCATIONS)
    return paths


def _load_yaml_config(paths=None):
    """Load the first readable YAML config from the default locations.

    Args:
        paths (list, optional): Explicit candidate paths. Defaults to the
            environment path followed by Constants.DEFAULT_CONFIG_LOCATIONS.

    Returns:
        dict: Parsed configuration, or an empty dict when nothing is found.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    for path in paths if paths is not None else _config_candidates():
        if not path or not os.path.isfile(path):
            continue
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if isinstance(data, dict):
            return data
    return {}


def apply_config(cfg):
    """Apply the ``resolver`` and ``versions`` sections of a config dict onto Constants.

    Args:
        cfg (dict): Parsed configuration.
    """
    if not isinstance(cfg, dict):
        return
    resolver_cfg = cfg.get("resolver") or {}
    if isinstance(resolver_cfg, dict):
        if resolver_cfg.get("range_policy"):
            Constants.RANGE_POLICY = str(resolver_cfg["range_policy"])
        tie_break = str(resolver_cfg.get("tie_break", "")).lower()
        if tie_break in (t.value for t in TieBreak):
            Constants.TIE_BREAK = tie_break
        if resolver_cfg.get("max_workers") is not None:
            Constants.MAX_WORKERS = max(1, int(resolver_cfg["max_workers"]))
    versions_cfg = cfg.get("versions") or {}
    if isinstance(versions_cfg, dict) and "lenient" in versions_cfg:
        Constants.LENIENT_VERSIONS = bool(versions_cfg["lenient"])
