"""featuresolve - feature/capability closure resolver

    Loads repository descriptors, builds the resource universe and resolves
    the requested features into an install closure.

    Returns:
        int: Exit code
"""
import csv
import sys
import logging
import json
import os

# Imports support both source and installed modes:
# - Source/tests: import via src.*
# - Installed console script: import top-level modules directly
try:
    from src.args import parse_args
    from src.cli_config import apply_resolver_overrides, load_config
    from src.common.errors import BuildError, DescriptorError, ResolutionError
    from src.common.logging_utils import configure_logging, extra_context, is_debug_enabled
    from src.constants import Constants, ExitCodes
    from src.repository.loader import load_descriptors
    from src.resolver.service import ResolutionService
    from src.versioning.macro import RangeExpansionRule
except ImportError:  # Fall back when 'src' package is not available
    from args import parse_args
    from cli_config import apply_resolver_overrides, load_config
    from common.errors import BuildError, DescriptorError, ResolutionError
    from common.logging_utils import configure_logging, extra_context, is_debug_enabled
    from constants import Constants, ExitCodes
    from repository.loader import load_descriptors
    from resolver.service import ResolutionService
    from versioning.macro import RangeExpansionRule


def export_csv(closure, path):
    """Exports the closure to a CSV file.

    Args:
        closure (Closure): Resolved closure.
        path (str): File path to export the CSV.
    """
    headers = ["Name", "Version", "Type", "Location", "Requires"]
    rows = [headers]

    def _nv(v):
        return "" if v is None else v

    for res in closure.installable():
        requires = sorted(str(dep) for dep in closure.edges.get(res.id, ()))
        rows.append([res.name, str(res.version), res.kind, _nv(res.location), " ".join(requires)])
    try:
        with open(path, 'w', newline='', encoding='utf-8') as file:
            export = csv.writer(file)
            export.writerows(rows)
        logging.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logging.error("CSV file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_json(closure, path):
    """Exports the closure to a JSON file.

    Args:
        closure (Closure): Resolved closure.
        path (str): File path to export the JSON.
    """
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(closure.to_dict(), file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def print_closure(closure):
    """Prints the installable part of the closure to stdout."""
    for res in closure.installable():
        location = f"  {res.location}" if res.location else ""
        print(f"{res.kind:<8} {res.name}/{res.version}{location}")
    for req in closure.missing_optional:
        print(f"skipped  {req}")


def _output_format(args):
    if getattr(args, "OUTPUT_FORMAT", None):
        return args.OUTPUT_FORMAT.lower()
    lower = args.OUTPUT.lower()
    if lower.endswith(".csv"):
        return "csv"
    return "json"


def _setup_logging(args):
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()
    try:
        _level_name = str(args.LOG_LEVEL).upper()
        logging.getLogger().setLevel(getattr(logging, _level_name, logging.INFO))
    except (ValueError, AttributeError, TypeError):
        pass
    if getattr(args, "LOG_FILE", None):
        handler = logging.FileHandler(args.LOG_FILE, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    _setup_logging(args)

    try:
        load_config(args)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logging.error("Unable to read configuration: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    apply_resolver_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main",
                                count=len(args.FEATURES))
        )
    logging.info("Arguments parsed.")

    try:
        bundles, features = load_descriptors(args.REPOSITORIES)
    except DescriptorError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        service = ResolutionService.from_descriptors(
            bundles,
            features,
            policy=RangeExpansionRule(Constants.RANGE_POLICY),
            tie_break=Constants.TIE_BREAK,
            strict=args.STRICT_BUILD,
        )
        closure = service.resolve_features(args.FEATURES)
    except BuildError as e:
        logging.error("Build failed: %s", e)
        sys.exit(ExitCodes.BUILD_ERROR.value)
    except ResolutionError as e:
        logging.error("Resolution failed: %s", e)
        sys.exit(ExitCodes.RESOLUTION_ERROR.value)

    if service.report and not service.report.ok:
        logging.warning("%d entr(y/ies) failed to build and were skipped.", len(service.report.errors))

    if not args.QUIET:
        print_closure(closure)

    if getattr(args, "OUTPUT", None):
        if _output_format(args) == "csv":
            export_csv(closure, args.OUTPUT)
        else:
            export_json(closure, args.OUTPUT)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
