"""Argument parsing functionality for featuresolve."""

import argparse

try:
    from src.constants import Constants, TieBreak
except ImportError:
    from constants import Constants, TieBreak


def parse_args(argv=None):
    """Parses the arguments passed to the program.

    Args:
        argv (list, optional): Argument list; defaults to sys.argv[1:].
    """
    parser = argparse.ArgumentParser(
        prog="featuresolve",
        description=(
            "featuresolve - Resolve feature/capability closures from repository descriptors"
        ),
        add_help=True,
    )

    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Repository descriptor (YAML or JSON); may be repeated",
                        action="append", type=str,
                        required=True)
    parser.add_argument("-f", "--feature",
                        dest="FEATURES",
                        help="Feature to resolve as name or name/version-range; may be repeated",
                        action="append", type=str,
                        required=True)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=Constants.OUTPUT_FORMATS)

    parser.add_argument("--range-policy",
                        dest="RANGE_POLICY",
                        help="Range macro for bare dependency versions, e.g. '${range;[====,+)}'",
                        action="store",
                        type=str)
    parser.add_argument("--tie-break",
                        dest="TIE_BREAK",
                        help="Provider preference when versions are equal (default: first)",
                        action="store",
                        type=str.lower,
                        choices=[t.value for t in TieBreak])
    parser.add_argument("--lenient-versions",
                        dest="LENIENT_VERSIONS",
                        help="Clean loosely formatted versions (e.g. 1.0-SNAPSHOT) while loading",
                        action="store_true")
    parser.add_argument("--strict-build",
                        dest="STRICT_BUILD",
                        help="Abort when any bundle or feature fails to build.",
                        action="store_true")

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML or YML)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
