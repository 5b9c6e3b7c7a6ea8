"""Argument parsing functionality for typefetch."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="typefetch",
        description=(
            "typefetch - Fetch TypeScript declaration files for a dependency manifest"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-f", "--file",
                        dest="MANIFEST",
                        help="Read dependencies from a package.json file",
                        action="store", type=str)
    input_group.add_argument("-p", "--package",
                        dest="PACKAGES",
                        help="Name a single package, optionally with a range (name@range). Repeatable.",
                        action="append", type=str)

    parser.add_argument("--include-dev",
                        dest="INCLUDE_DEV",
                        help="Also resolve devDependencies from the package.json",
                        action="store_true")
    parser.add_argument("-d", "--directory",
                        dest="OUTPUT_DIR",
                        help="Write every fetched file under this directory",
                        action="store", type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the path -> contents mapping to a JSON file",
                        action="store", type=str)

    parser.add_argument("--cdn-base",
                        dest="CDN_BASE_URL",
                        help=f"CDN base URL (default: {Constants.CDN_BASE_URL})",
                        action="store", type=str)
    parser.add_argument("--data-base",
                        dest="DATA_API_BASE_URL",
                        help=f"Data API base URL (default: {Constants.DATA_API_BASE_URL})",
                        action="store", type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"Per-request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store", type=int)
    parser.add_argument("--max-connections",
                        dest="MAX_CONNECTIONS",
                        help=f"Maximum concurrent connections (default: {Constants.HTTP_MAX_CONNECTIONS})",
                        action="store", type=int)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store", type=str)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="INFO")

    return parser.parse_args(argv)
