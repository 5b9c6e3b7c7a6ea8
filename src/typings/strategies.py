"""Ordered strategies for locating a package's type declarations.

1. ``ManifestStrategy``: the ``typings``/``types`` field of package.json.
2. ``InlineMetaStrategy``: every .d.ts (else .ts) file the package publishes.
3. ``DefinitelyTypedStrategy``: the ``@types/<name>`` companion package.

``run_strategy_chain`` tries them in order. Each attempt gets a fresh staging
area and reports a ``StrategyAttempt`` value; only the winning attempt's
files are committed to the run accumulator.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from constants import Constants
from common.errors import NoInlineTypingsError, NoTypingsFieldError, TypingsError, TypingsNotFoundError
from common.logging_utils import extra_context, is_debug_enabled
from common.paths import absolute, dirname, join, normalize

from .models import PackageContext
from .resolver import resolve_appropriate_file
from .walker import walk

logger = logging.getLogger(__name__)


def types_package_name(name: str) -> str:
    """DefinitelyTyped companion of ``name``: ``@scope/pkg`` -> ``@types/scope__pkg``."""
    bare = name[1:] if name.startswith("@") else name
    return f"{Constants.TYPES_SCOPE}/{bare.replace('/', '__')}"


def _package_relative(path: str) -> str:
    """Manifest path (``./lib/index``, ``/lib/index``, ``lib/``) -> ``lib/index``, ``lib``."""
    return normalize(absolute(path)).strip("/")


def _manifest_types(manifest: Dict[str, Any]) -> Optional[str]:
    """First non-empty string among ``typings`` and ``types``; other values count as absent."""
    for key in ("typings", "types"):
        value = manifest.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _serialize_manifest(manifest: Dict[str, Any]) -> str:
    return json.dumps(manifest, ensure_ascii=False, separators=(",", ":"))


@dataclass
class StrategyAttempt:
    """Outcome of one strategy for one package."""

    strategy: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ChainResult:
    """Outcome of the whole chain for one package."""

    package: str
    version: str
    resolved_by: Optional[str] = None
    attempts: List[StrategyAttempt] = field(default_factory=list)
    files_added: int = 0

    @property
    def ok(self) -> bool:
        return self.resolved_by is not None

    @property
    def error(self) -> Optional[TypingsNotFoundError]:
        """Aggregate failure, or None when a strategy succeeded."""
        if self.ok:
            return None
        return TypingsNotFoundError(
            self.package, [a.error for a in self.attempts if a.error is not None]
        )


class TypingsStrategy:
    """Base class: subclasses implement ``run`` and raise on failure."""

    name = "base"

    async def run(self, ctx: PackageContext) -> None:
        raise NotImplementedError

    async def attempt(self, ctx: PackageContext) -> StrategyAttempt:
        """Run the strategy and report the outcome as a value."""
        try:
            await self.run(ctx)
        except TypingsError as exc:
            return StrategyAttempt(self.name, exc)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Unexpected %s failure for %s: %s", self.name, ctx.name, exc)
            return StrategyAttempt(self.name, exc)
        return StrategyAttempt(self.name)


class ManifestStrategy(TypingsStrategy):
    """Follow the ``typings``/``types`` field of the package manifest."""

    name = "manifest"

    async def run(self, ctx: PackageContext) -> None:
        manifest = await ctx.registry.fetch_manifest(ctx.name, ctx.version)
        types = _manifest_types(manifest)
        if not types:
            raise NoTypingsFieldError(f"No typings field in package.json of {ctx.name}@{ctx.version}")

        # package.json tells the type checker where the types live
        ctx.record(ctx.virtual_path(Constants.PACKAGE_JSON_FILE), _serialize_manifest(manifest))

        target = _package_relative(types)
        ctx.index = await ctx.registry.get_file_index(
            ctx.name, ctx.version, join("/", dirname(target))
        )
        await walk(ctx, resolve_appropriate_file(ctx.index, target))


class InlineMetaStrategy(TypingsStrategy):
    """Capture every published declaration file, without following references."""

    name = "inline"

    async def run(self, ctx: PackageContext) -> None:
        files = await ctx.registry.list_files(ctx.name, ctx.version)
        candidates = [f for f in files if f.endswith(Constants.DECLARATION_SUFFIX)]
        if not candidates:
            candidates = [f for f in files if f.endswith(Constants.TYPESCRIPT_SUFFIX)]
        if not candidates:
            raise NoInlineTypingsError(f"No inline typings found in {ctx.name}@{ctx.version}")

        await asyncio.gather(*(self._capture(ctx, f) for f in candidates))

    @staticmethod
    async def _capture(ctx: PackageContext, path: str) -> None:
        virtual_path = ctx.virtual_path(path)
        if ctx.is_recorded(virtual_path):
            return
        try:
            content = await ctx.registry.fetch_file(ctx.name, ctx.version, path)
        except TypingsError as exc:
            logger.debug("Skipping %s: %s", virtual_path, exc)
            return
        ctx.record(virtual_path, content)


class DefinitelyTypedStrategy(TypingsStrategy):
    """Walk the ``@types`` companion package from its ``index.d.ts``."""

    name = "definitely-typed"

    async def run(self, ctx: PackageContext) -> None:
        types_name = types_package_name(ctx.name)
        version = await ctx.registry.resolve_version(types_name, Constants.DEFAULT_VERSION_RANGE)
        manifest = await ctx.registry.fetch_manifest(types_name, version)

        types_ctx = ctx.retarget(types_name, version)
        types_ctx.record(
            types_ctx.virtual_path(Constants.PACKAGE_JSON_FILE), _serialize_manifest(manifest)
        )
        types_ctx.index = await ctx.registry.get_file_index(types_name, version, "/")
        await walk(types_ctx, Constants.INDEX_DECLARATION)


DEFAULT_STRATEGIES: Sequence[TypingsStrategy] = (
    ManifestStrategy(),
    InlineMetaStrategy(),
    DefinitelyTypedStrategy(),
)


async def run_strategy_chain(
    strategies: Sequence[TypingsStrategy],
    make_context: Callable[[], PackageContext],
) -> ChainResult:
    """Try each strategy in order until one succeeds."""
    result: Optional[ChainResult] = None
    for strategy in strategies:
        ctx = make_context()
        if result is None:
            result = ChainResult(package=ctx.name, version=ctx.version)
        attempt = await strategy.attempt(ctx)
        result.attempts.append(attempt)
        if attempt.ok:
            result.resolved_by = strategy.name
            result.files_added = ctx.commit()
            return result

        ctx.discard()
        if is_debug_enabled(logger):
            logger.debug(
                "Strategy failed, falling through",
                extra=extra_context(
                    event="strategy_failed",
                    component="strategies",
                    action=strategy.name,
                    package=ctx.name,
                    outcome=str(attempt.error),
                ),
            )

    if result is None:
        ctx = make_context()
        result = ChainResult(package=ctx.name, version=ctx.version)
    return result
