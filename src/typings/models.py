"""Session and per-package state shared across one resolution run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Set

from constants import Constants
from common.paths import join
from registry.jsdelivr import RegistryClient
from registry.models import FileMetadataIndex

# Mapping of virtual path -> file contents handed to the type-checking host
FetchedPaths = Dict[str, str]


@dataclass
class FetchConfig:
    """Effective network settings for a run."""

    cdn_base: str = Constants.CDN_BASE_URL
    data_base: str = Constants.DATA_API_BASE_URL
    timeout: float = Constants.REQUEST_TIMEOUT
    max_connections: int = Constants.HTTP_MAX_CONNECTIONS

    @classmethod
    def from_constants(cls) -> "FetchConfig":
        """Snapshot the current Constants (after YAML/CLI overrides)."""
        return cls(
            cdn_base=Constants.CDN_BASE_URL,
            data_base=Constants.DATA_API_BASE_URL,
            timeout=Constants.REQUEST_TIMEOUT,
            max_connections=Constants.HTTP_MAX_CONNECTIONS,
        )


class ResolutionSession:
    """Caller-owned state threaded through every recursive call.

    Holds the registry client and the set of package names already dispatched.
    Reusing one session across several top-level runs extends package dedup
    across those runs; a fresh session starts clean.
    """

    def __init__(
        self,
        registry: RegistryClient,
        visited: Optional[Set[str]] = None,
        strategies: Optional[Sequence[Any]] = None,
    ):
        self.registry = registry
        self.visited: Set[str] = visited if visited is not None else set()
        self.strategies = strategies

    def mark_visited(self, name: str) -> bool:
        """Mark ``name`` as dispatched; False if it already was.

        Check and mark happen without a suspension point in between.
        """
        if name in self.visited:
            return False
        self.visited.add(name)
        return True


@dataclass
class PackageContext:
    """One strategy attempt for one package@version.

    Files are recorded into ``staged`` and only reach ``fetched_paths`` on
    ``commit()``, so a failed attempt leaves the run accumulator untouched.
    """

    session: ResolutionSession
    name: str
    version: str
    fetched_paths: FetchedPaths
    staged: FetchedPaths = field(default_factory=dict)
    index: Optional[FileMetadataIndex] = None

    @property
    def registry(self) -> RegistryClient:
        return self.session.registry

    def virtual_path(self, path: str) -> str:
        """``node_modules/<name>/<path>``, normalized."""
        return join(Constants.NODE_MODULES_DIR, self.name, path)

    def is_recorded(self, virtual_path: str) -> bool:
        return virtual_path in self.staged or virtual_path in self.fetched_paths

    def record(self, virtual_path: str, content: str) -> bool:
        """Record a file unless the path is already known; first writer wins."""
        if self.is_recorded(virtual_path):
            return False
        self.staged[virtual_path] = content
        return True

    def retarget(self, name: str, version: str) -> "PackageContext":
        """Same attempt and staging area, different package coordinates."""
        return PackageContext(
            session=self.session,
            name=name,
            version=version,
            fetched_paths=self.fetched_paths,
            staged=self.staged,
        )

    def commit(self) -> int:
        """Publish staged files to the run accumulator; returns how many were new."""
        added = 0
        for path, content in self.staged.items():
            if path not in self.fetched_paths:
                self.fetched_paths[path] = content
                added += 1
        self.staged.clear()
        return added

    def discard(self) -> None:
        self.staged.clear()
