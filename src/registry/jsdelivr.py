"""jsDelivr registry client: version resolution, flat listings, raw files.

All requests go through a shared ``FetchCache`` so any URL is fetched once no
matter how many recursion branches ask for it.
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any, Dict, List, Optional

from constants import Constants
from common.errors import NetworkError, ParseError, VersionResolutionError
from common.http_client import FetchCache
from common.logging_utils import extra_context, is_debug_enabled

from .models import FileMeta, FileMetadataIndex
from .schemas import FLAT_LISTING_SCHEMA, MANIFEST_SCHEMA, RESOLVE_SCHEMA, validate_response

logger = logging.getLogger(__name__)

# Characters npm ranges use that need no escaping in a path segment
_RANGE_SAFE = "^~*.<>=|-+"


def _decode_json(text: str, url: str) -> Any:
    """Parse a response body, mapping decode failures to ParseError."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON from {url}: {exc}") from exc


class RegistryClient:
    """Client for the jsDelivr CDN and data API."""

    def __init__(
        self,
        fetch_cache: FetchCache,
        cdn_base: Optional[str] = None,
        data_base: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            fetch_cache: Deduplicating fetcher every request goes through.
            cdn_base: CDN base URL (raw file content).
            data_base: Data API base URL (resolve and flat listing endpoints).
        """
        self._cache = fetch_cache
        self.cdn_base = (cdn_base or Constants.CDN_BASE_URL).rstrip("/")
        self.data_base = (data_base or Constants.DATA_API_BASE_URL).rstrip("/")

    @staticmethod
    def _spec(name: str, version: str) -> str:
        return f"{urllib.parse.quote(name, safe='@/')}@{urllib.parse.quote(version, safe=_RANGE_SAFE)}"

    def package_url(self, name: str, version: str) -> str:
        """CDN base URL of one package@version, without trailing slash."""
        return f"{self.cdn_base}/npm/{self._spec(name, version)}"

    def resolve_url(self, name: str, version_range: str) -> str:
        return f"{self.data_base}/package/resolve/npm/{self._spec(name, version_range)}"

    def listing_url(self, name: str, version: str) -> str:
        return f"{self.data_base}/package/npm/{self._spec(name, version)}/flat"

    def file_url(self, name: str, version: str, path: str) -> str:
        return f"{self.package_url(name, version)}/{urllib.parse.quote(path.lstrip('/'), safe='/@')}"

    async def fetch_text(self, url: str) -> str:
        """Fetch ``url`` through the cache."""
        return await self._cache.fetch(url)

    async def resolve_version(self, name: str, version_range: str) -> str:
        """Resolve a version range to a concrete version.

        Raises:
            VersionResolutionError: If the range cannot be satisfied or the
                resolve request fails.
        """
        url = self.resolve_url(name, version_range)
        try:
            data = _decode_json(await self.fetch_text(url), url)
            validate_response(RESOLVE_SCHEMA, data, url)
        except (NetworkError, ParseError) as exc:
            raise VersionResolutionError(name, version_range, str(exc)) from exc

        version = data.get("version")
        if not version:
            raise VersionResolutionError(name, version_range, "no matching version")
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved version",
                extra=extra_context(
                    event="version_resolved",
                    component="registry",
                    package=name,
                    requested=version_range,
                    resolved=version,
                ),
            )
        return version

    async def fetch_manifest(self, name: str, version: str) -> Dict[str, Any]:
        """Fetch and decode ``package.json`` of package@version."""
        url = self.file_url(name, version, Constants.PACKAGE_JSON_FILE)
        data = _decode_json(await self.fetch_text(url), url)
        validate_response(MANIFEST_SCHEMA, data, url)
        return data

    async def list_entries(self, name: str, version: str, prefix: str = "/") -> List[FileMeta]:
        """Flat listing of package@version restricted to paths under ``prefix``."""
        url = self.listing_url(name, version)
        data = _decode_json(await self.fetch_text(url), url)
        validate_response(FLAT_LISTING_SCHEMA, data, url)
        return [
            FileMeta(name=f["name"], size=f.get("size"), hash=f.get("hash"))
            for f in data["files"]
            if f["name"].startswith(prefix)
        ]

    async def list_files(self, name: str, version: str, prefix: str = "/") -> List[str]:
        """Names of every published file under ``prefix``."""
        return [f.name for f in await self.list_entries(name, version, prefix)]

    async def get_file_index(self, name: str, version: str, prefix: str = "/") -> FileMetadataIndex:
        """Build the metadata index for package@version under ``prefix``."""
        entries = await self.list_entries(name, version, prefix)
        return FileMetadataIndex.from_entries(name, version, entries)

    async def fetch_file(self, name: str, version: str, path: str) -> str:
        """Raw text of one file within package@version."""
        return await self.fetch_text(self.file_url(name, version, path))
