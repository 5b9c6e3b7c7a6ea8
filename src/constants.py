"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    NO_TYPINGS = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CDN_BASE_URL = "https://cdn.jsdelivr.net"
    DATA_API_BASE_URL = "https://data.jsdelivr.com/v1"
    PACKAGE_JSON_FILE = "package.json"
    NODE_MODULES_DIR = "node_modules"
    TYPES_SCOPE = "@types"
    DEFAULT_VERSION_RANGE = "latest"
    DECLARATION_SUFFIX = ".d.ts"
    TYPESCRIPT_SUFFIX = ".ts"
    INDEX_DECLARATION = "index.d.ts"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "TYPEFETCH_LOG_LEVEL"
    CONFIG_ENV = "TYPEFETCH_CONFIG"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for every HTTP request
    HTTP_MAX_CONNECTIONS = 32
    USER_AGENT = "typefetch/0.1"


# Default locations searched when TYPEFETCH_CONFIG is unset
DEFAULT_CONFIG_PATHS = (
    "typefetch.yml",
    "typefetch.yaml",
    os.path.join("~", ".config", "typefetch", "typefetch.yml"),
)


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML configuration file, if any.

    Precedence: explicit ``path`` argument, then the ``TYPEFETCH_CONFIG``
    environment variable, then the first existing default location.

    Returns:
        dict: Parsed configuration, or an empty dict when nothing was found.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = []
    if path:
        candidates.append(path)
    else:
        env_path = os.environ.get(Constants.CONFIG_ENV)
        if env_path:
            candidates.append(env_path)
        candidates.extend(DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        expanded = os.path.expanduser(candidate)
        if not os.path.isfile(expanded):
            continue
        with open(expanded, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: top level is not a mapping", expanded)
            return {}
        logger.debug("Loaded config from %s", expanded)
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Copy the ``http`` and ``registry`` sections of a config dict onto Constants."""
    http_cfg = cfg.get("http") or {}
    registry_cfg = cfg.get("registry") or {}
    if not isinstance(http_cfg, dict) or not isinstance(registry_cfg, dict):
        logger.warning("Ignoring malformed http/registry config sections")
        return

    if http_cfg.get("timeout") is not None:
        Constants.REQUEST_TIMEOUT = int(http_cfg["timeout"])
    if http_cfg.get("max_connections") is not None:
        Constants.HTTP_MAX_CONNECTIONS = int(http_cfg["max_connections"])
    if http_cfg.get("user_agent"):
        Constants.USER_AGENT = str(http_cfg["user_agent"])
    if registry_cfg.get("cdn_base_url"):
        Constants.CDN_BASE_URL = str(registry_cfg["cdn_base_url"]).rstrip("/")
    if registry_cfg.get("data_api_base_url"):
        Constants.DATA_API_BASE_URL = str(registry_cfg["data_api_base_url"]).rstrip("/")
