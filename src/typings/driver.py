"""Top-level entry point: resolve typings for a dependency manifest."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Mapping, Optional

from common.http_client import FetchCache, HttpClient
from common.logging_utils import extra_context, is_debug_enabled, Timer
from registry.jsdelivr import RegistryClient

from .models import FetchConfig, FetchedPaths, PackageContext, ResolutionSession
from .strategies import DEFAULT_STRATEGIES, run_strategy_chain

logger = logging.getLogger(__name__)

OnDependencies = Callable[[FetchedPaths], None]


async def _resolve_dependency(
    session: ResolutionSession,
    name: str,
    version_range: str,
    fetched_paths: FetchedPaths,
) -> None:
    """Resolve one dependency; every failure stays inside this function."""
    if not session.mark_visited(name):
        logger.debug("Skipping %s: already dispatched", name)
        return

    try:
        with Timer() as t:
            version = await session.registry.resolve_version(name, version_range)
            strategies = session.strategies or DEFAULT_STRATEGIES
            result = await run_strategy_chain(
                strategies,
                lambda: PackageContext(
                    session=session, name=name, version=version, fetched_paths=fetched_paths
                ),
            )
    except Exception as exc:  # pylint: disable=broad-exception-caught
        # Missing types for one dependency must not abort its siblings
        logger.debug("Couldn't find typings for %s: %s", name, exc)
        return

    if result.ok:
        logger.info(
            "Typings for %s@%s found via %s (%d files)",
            name,
            version,
            result.resolved_by,
            result.files_added,
        )
    elif is_debug_enabled(logger):
        logger.debug(
            "No typings found",
            extra=extra_context(
                event="typings_not_found",
                component="driver",
                package=name,
                version=version,
                duration_ms=t.duration_ms(),
                outcome=str(result.error),
            ),
        )


async def fetch_and_add_dependencies(
    session: ResolutionSession,
    dependencies: Mapping[str, str],
    on_dependencies: Optional[OnDependencies] = None,
    fetched_paths: Optional[FetchedPaths] = None,
) -> FetchedPaths:
    """Resolve every dependency concurrently and deliver the file mapping.

    Args:
        session: Caller-owned session (registry client, visited packages).
        dependencies: Package name -> version range.
        on_dependencies: Called once with the mapping after every dependency
            settled.
        fetched_paths: Accumulator to extend; a new one is used when omitted.

    Returns:
        The accumulated virtual path -> contents mapping.
    """
    if fetched_paths is None:
        fetched_paths = {}

    await asyncio.gather(
        *(
            _resolve_dependency(session, name, version_range, fetched_paths)
            for name, version_range in dependencies.items()
        )
    )

    if on_dependencies is not None:
        on_dependencies(fetched_paths)
    return fetched_paths


async def resolve_typings(
    dependencies: Mapping[str, str],
    config: Optional[FetchConfig] = None,
    on_dependencies: Optional[OnDependencies] = None,
) -> FetchedPaths:
    """One self-contained run: own HTTP client, fetch cache and session."""
    config = config or FetchConfig.from_constants()
    async with HttpClient(timeout=config.timeout, max_connections=config.max_connections) as http:
        registry = RegistryClient(FetchCache(http), cdn_base=config.cdn_base, data_base=config.data_base)
        session = ResolutionSession(registry)
        return await fetch_and_add_dependencies(session, dependencies, on_dependencies)


def run_sync(
    dependencies: Mapping[str, str],
    config: Optional[FetchConfig] = None,
    on_dependencies: Optional[OnDependencies] = None,
) -> FetchedPaths:
    """Blocking wrapper around ``resolve_typings``."""
    return asyncio.run(resolve_typings(dependencies, config, on_dependencies))
