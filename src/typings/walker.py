"""Recursive walk over a package's declaration files.

``walk`` records one file, scans it for references, dispatches bare package
references as nested dependencies and recurses into relative references. The
accumulator check on both sides of the single fetch is the only
synchronization: the first writer wins and every later branch is a no-op.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from constants import Constants
from common.errors import TypingsError
from common.logging_utils import extra_context, is_debug_enabled
from common.paths import dirname, join

from .models import PackageContext
from .resolver import resolve_appropriate_file
from .scanner import get_require_statements, partition_references

logger = logging.getLogger(__name__)


def _escapes_package(path: str) -> bool:
    return path == ".." or path.startswith("../")


async def _dispatch_nested(ctx: PackageContext, packages: List[str]) -> None:
    """Resolve referenced packages into the same accumulator, best effort."""
    from typings.driver import fetch_and_add_dependencies  # pylint: disable=import-outside-toplevel

    dependencies = {name: Constants.DEFAULT_VERSION_RANGE for name in packages}
    try:
        await fetch_and_add_dependencies(
            ctx.session, dependencies, fetched_paths=ctx.fetched_paths
        )
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.debug("Nested dependencies of %s failed: %s", ctx.name, exc)


async def _walk_branch(ctx: PackageContext, path: str) -> None:
    """Walk a relative reference; a failure ends this branch only."""
    try:
        await walk(ctx, path)
    except TypingsError as exc:
        logger.debug(
            "Skipping unreachable reference",
            extra=extra_context(
                event="walk_branch_failed",
                component="walker",
                package=ctx.name,
                target=path,
                outcome=str(exc),
            ),
        )


async def walk(ctx: PackageContext, path: str) -> None:
    """Fetch ``path`` within the package and everything it references.

    Raises:
        TypingsError: If ``path`` itself cannot be fetched.
    """
    virtual_path = ctx.virtual_path(path)
    if ctx.is_recorded(virtual_path):
        return

    content = await ctx.registry.fetch_file(ctx.name, ctx.version, path)
    if ctx.is_recorded(virtual_path):
        # A sibling branch got here first
        return
    ctx.record(virtual_path, content)

    packages, local = partition_references(get_require_statements(path, content))
    if is_debug_enabled(logger):
        logger.debug(
            "Scanned declaration file",
            extra=extra_context(
                event="scan",
                component="walker",
                package=ctx.name,
                target=virtual_path,
                packages=len(packages),
                local=len(local),
            ),
        )

    branches = []
    if packages:
        branches.append(_dispatch_nested(ctx, packages))
    base = dirname(path)
    for reference in local:
        next_path = join(base, reference)
        if _escapes_package(next_path):
            logger.debug("Ignoring reference %s outside %s", reference, ctx.name)
            continue
        if ctx.index is not None:
            next_path = resolve_appropriate_file(ctx.index, next_path)
        branches.append(_walk_branch(ctx, next_path))

    if branches:
        await asyncio.gather(*branches)
