"""Pick the concrete declaration file behind an extensionless candidate."""

from __future__ import annotations

from registry.models import FileMetadataIndex

# Tried in order; the first one present in the listing wins
CANDIDATE_SUFFIXES = (".d.ts", ".ts", "", "/index.d.ts")


def resolve_appropriate_file(index: FileMetadataIndex, relative_path: str) -> str:
    """Return the first existing variant of ``relative_path``.

    Falls back to ``relative_path`` unchanged when none is listed; the listing
    can lag behind what the CDN actually serves, so callers still try it.
    """
    absolute_path = f"/{relative_path}"
    for suffix in CANDIDATE_SUFFIXES:
        if index.exists(absolute_path + suffix):
            return relative_path + suffix
    return relative_path
