"""CLI configuration overrides for runtime tunables.

Kept out of typefetch.py to keep the entrypoint slim. Precedence, lowest to
highest: built-in Constants, YAML config file, CLI flags.
"""

from __future__ import annotations

import logging

from constants import Constants, _load_yaml_config, apply_config

logger = logging.getLogger(__name__)


def apply_file_config(args) -> None:
    """Load the YAML config (explicit --config, env, or default locations)."""
    cfg = _load_yaml_config(getattr(args, "CONFIG", None))
    if cfg:
        apply_config(cfg)


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides for network tunables (highest precedence)."""
    if getattr(args, "CDN_BASE_URL", None):
        Constants.CDN_BASE_URL = args.CDN_BASE_URL.rstrip("/")
    if getattr(args, "DATA_API_BASE_URL", None):
        Constants.DATA_API_BASE_URL = args.DATA_API_BASE_URL.rstrip("/")
    if getattr(args, "TIMEOUT", None) is not None:
        if int(args.TIMEOUT) <= 0:
            logger.warning("Ignoring non-positive --timeout %s", args.TIMEOUT)
        else:
            Constants.REQUEST_TIMEOUT = int(args.TIMEOUT)
    if getattr(args, "MAX_CONNECTIONS", None) is not None:
        if int(args.MAX_CONNECTIONS) <= 0:
            logger.warning("Ignoring non-positive --max-connections %s", args.MAX_CONNECTIONS)
        else:
            Constants.HTTP_MAX_CONNECTIONS = int(args.MAX_CONNECTIONS)
