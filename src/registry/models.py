"""Data models for registry responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional


@dataclass(frozen=True)
class FileMeta:
    """One entry of a flat file listing."""

    name: str
    size: Optional[int] = None
    hash: Optional[str] = None


@dataclass
class FileMetadataIndex:
    """Files published under one package@version, keyed by absolute in-package path.

    Built once from a flat listing and read-only afterwards.
    """

    package: str
    version: str
    files: Dict[str, FileMeta] = field(default_factory=dict)

    @classmethod
    def from_entries(cls, package: str, version: str, entries: Iterable[FileMeta]) -> "FileMetadataIndex":
        """Index listing entries by name."""
        return cls(package=package, version=version, files={e.name: e for e in entries})

    def exists(self, path: str) -> bool:
        """True if ``path`` (leading slash) is in the listing."""
        return path in self.files

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)
