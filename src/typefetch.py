"""typefetch - TypeScript declaration fetcher for a dependency manifest

    Reads dependencies from a package.json (or -p tokens), resolves type
    declarations for the whole transitive graph from jsDelivr and writes the
    resulting virtual file tree to disk and/or a JSON file.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys
from typing import Dict, Iterable, Tuple

from constants import Constants, ExitCodes
from common.errors import TypingsError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_cli_overrides, apply_file_config
from typings import FetchConfig, run_sync

logger = logging.getLogger(__name__)


def parse_package_token(token: str) -> Tuple[str, str]:
    """Split ``name@range`` on the rightmost ``@`` that is not a scope marker.

    Args:
        token (str): e.g. ``lodash``, ``lodash@^4``, ``@types/node@18``.

    Returns:
        tuple: (name, range); the range defaults to ``latest``.
    """
    token = token.strip()
    at = token.rfind("@")
    if at <= 0:
        return token, Constants.DEFAULT_VERSION_RANGE
    name, spec = token[:at], token[at + 1:].strip()
    return name, spec or Constants.DEFAULT_VERSION_RANGE


def load_dependencies(file_name: str, include_dev: bool = False) -> Dict[str, str]:
    """Read the dependency manifest out of a package.json.

    Args:
        file_name (str): Path to package.json.
        include_dev (bool): Also include ``devDependencies``.

    Returns:
        dict: Package name -> version range.
    """
    try:
        with open(file_name, encoding="utf-8") as file:
            manifest = json.load(file)
    except FileNotFoundError as e:
        logging.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except (IOError, json.JSONDecodeError) as e:
        logging.error("Couldn't read %s: %s, aborting", file_name, e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if not isinstance(manifest, dict):
        logging.error("%s is not a package manifest, aborting", file_name)
        sys.exit(ExitCodes.FILE_ERROR.value)

    dependencies: Dict[str, str] = {}
    sections = ["dependencies", "devDependencies"] if include_dev else ["dependencies"]
    for section in sections:
        entries = manifest.get(section) or {}
        if not isinstance(entries, dict):
            logging.warning("Ignoring malformed %s in %s", section, file_name)
            continue
        for name, spec in entries.items():
            dependencies.setdefault(name, str(spec) if spec else Constants.DEFAULT_VERSION_RANGE)
    return dependencies


def dependencies_from_tokens(tokens: Iterable[str]) -> Dict[str, str]:
    """Build a dependency manifest from ``name@range`` tokens."""
    dependencies: Dict[str, str] = {}
    for token in tokens:
        name, spec = parse_package_token(token)
        if name:
            dependencies[name] = spec
    return dependencies


def materialize(fetched_paths: Dict[str, str], root: str) -> int:
    """Write every virtual path under ``root``, creating parent directories.

    Paths that would land outside ``root`` are skipped.

    Returns:
        int: Number of files written.
    """
    root_abs = os.path.abspath(root)
    written = 0
    for virtual_path, contents in sorted(fetched_paths.items()):
        target = os.path.abspath(os.path.join(root_abs, virtual_path))
        if os.path.commonpath([root_abs, target]) != root_abs:
            logging.warning("Refusing to write %s outside %s", virtual_path, root_abs)
            continue
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "w", encoding="utf-8") as fh:
            fh.write(contents)
        written += 1
    return written


def export_json(fetched_paths: Dict[str, str], path: str) -> None:
    """Write the flat mapping as JSON.

    Args:
        fetched_paths (dict): Virtual path -> contents.
        path (str): Output file.
    """
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(fetched_paths, file, ensure_ascii=False, indent=2, sort_keys=True)
        logging.info("JSON file (%s) written successfully", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    # Honor CLI --loglevel by passing it to centralized logger via env
    os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()

    apply_file_config(args)
    apply_cli_overrides(args)

    if args.MANIFEST:
        dependencies = load_dependencies(args.MANIFEST, include_dev=args.INCLUDE_DEV)
    else:
        dependencies = dependencies_from_tokens(args.PACKAGES or [])

    if not dependencies:
        logging.warning("No dependencies found in the input.")
        sys.exit(ExitCodes.SUCCESS.value)

    if is_debug_enabled(logger):
        logger.debug(
            "Resolving dependencies",
            extra=extra_context(event="function_entry", component="cli", count=len(dependencies)),
        )
    logging.info("Resolving typings for %d dependencies.", len(dependencies))

    try:
        fetched_paths = run_sync(dependencies, FetchConfig.from_constants())
    except (TypingsError, OSError) as e:
        logging.error("Couldn't reach the registry: %s", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    logging.info("Fetched %d declaration files.", len(fetched_paths))

    if args.OUTPUT_DIR:
        count = materialize(fetched_paths, args.OUTPUT_DIR)
        logging.info("Wrote %d files under %s", count, args.OUTPUT_DIR)
    if args.OUTPUT:
        export_json(fetched_paths, args.OUTPUT)
    if not args.OUTPUT_DIR and not args.OUTPUT:
        for virtual_path in sorted(fetched_paths):
            print(virtual_path)

    if not fetched_paths:
        sys.exit(ExitCodes.NO_TYPINGS.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
