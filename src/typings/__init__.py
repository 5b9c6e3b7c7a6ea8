"""TypeScript typings resolution package.

This package resolves type declaration files for a dependency manifest:
- scanner.py: module references found in declaration files (tree-sitter)
- resolver.py: which concrete declaration file an extensionless path names
- strategies.py: manifest / inline / DefinitelyTyped fallback chain
- walker.py: recursive walk over a package's declaration files
- driver.py: top-level ``fetch_and_add_dependencies`` entry point
"""

from .models import FetchConfig, FetchedPaths, PackageContext, ResolutionSession  # noqa: F401
from .driver import fetch_and_add_dependencies, resolve_typings, run_sync  # noqa: F401
from .strategies import (  # noqa: F401
    DEFAULT_STRATEGIES,
    ChainResult,
    DefinitelyTypedStrategy,
    InlineMetaStrategy,
    ManifestStrategy,
    StrategyAttempt,
    run_strategy_chain,
    types_package_name,
)

__all__ = [
    "FetchConfig",
    "FetchedPaths",
    "PackageContext",
    "ResolutionSession",
    "fetch_and_add_dependencies",
    "resolve_typings",
    "run_sync",
    "DEFAULT_STRATEGIES",
    "ChainResult",
    "DefinitelyTypedStrategy",
    "InlineMetaStrategy",
    "ManifestStrategy",
    "StrategyAttempt",
    "run_strategy_chain",
    "types_package_name",
]
