"""CLI configuration for resolver tunables.

Loads the YAML config (explicit ``--config`` first, then the default
locations) and applies CLI overrides with highest precedence. Overrides
never raise so a bad value cannot break the CLI.
"""

from __future__ import annotations

import logging

try:
    from src.constants import Constants, TieBreak, _load_yaml_config, apply_config
except ImportError:
    from constants import Constants, TieBreak, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)


def load_config(args) -> dict:
    """Load and apply the YAML config selected by ``args.CONFIG`` or the defaults.

    Returns:
        dict: The parsed configuration (empty when none was found).
    """
    path = getattr(args, "CONFIG", None)
    cfg = _load_yaml_config([path] if path else None)
    if path and not cfg:
        logger.warning("Config file %s not found or empty; using defaults", path)
    apply_config(cfg)
    return cfg


def apply_resolver_overrides(args) -> None:
    """Apply CLI overrides for range policy, tie-break and version cleaning."""
    try:
        if getattr(args, "RANGE_POLICY", None):
            Constants.RANGE_POLICY = str(args.RANGE_POLICY)
        tie_break = getattr(args, "TIE_BREAK", None)
        if tie_break and tie_break in (t.value for t in TieBreak):
            Constants.TIE_BREAK = tie_break
        if getattr(args, "LENIENT_VERSIONS", False):
            Constants.LENIENT_VERSIONS = True
    except (AttributeError, TypeError, ValueError) as exc:
        logger.debug("Ignoring invalid CLI override: %s", exc)
