"""Tests for the typings strategy chain."""

import asyncio
import json

from common.errors import NoInlineTypingsError, NoTypingsFieldError, TypingsNotFoundError
from typings.models import PackageContext, ResolutionSession
from typings.strategies import (
    DEFAULT_STRATEGIES,
    InlineMetaStrategy,
    ManifestStrategy,
    TypingsStrategy,
    run_strategy_chain,
    types_package_name,
)


def _context_factory(npm, name, version, fetched_paths):
    session = ResolutionSession(npm.client())
    return lambda: PackageContext(session=session, name=name, version=version, fetched_paths=fetched_paths)


class _Succeeds(TypingsStrategy):
    name = "succeeds"

    async def run(self, ctx):
        ctx.record(ctx.virtual_path("ok.d.ts"), "ok")


class _Fails(TypingsStrategy):
    name = "fails"

    async def run(self, ctx):
        ctx.record(ctx.virtual_path("partial.d.ts"), "partial")
        raise NoTypingsFieldError("nothing here")


class TestTypesPackageName:
    """Tests for DefinitelyTyped name flattening."""

    def test_plain_and_scoped(self):
        """Scoped names flatten into the @types scope."""
        assert types_package_name("lodash") == "@types/lodash"
        assert types_package_name("@babel/core") == "@types/babel__core"


class TestRunStrategyChain:
    """Tests for the ordered fallback combinator."""

    def test_first_success_wins_and_commits(self, npm):
        """The first successful strategy's files are committed."""
        fetched = {}
        make = _context_factory(npm, "pkg", "1.0.0", fetched)

        result = asyncio.run(run_strategy_chain([_Fails(), _Succeeds(), _Fails()], make))

        assert result.ok
        assert result.resolved_by == "succeeds"
        assert [a.strategy for a in result.attempts] == ["fails", "succeeds"]
        assert result.files_added == 1
        assert fetched == {"node_modules/pkg/ok.d.ts": "ok"}

    def test_exhausted_chain_leaves_accumulator_untouched(self, npm):
        """A fully failed chain commits nothing."""
        fetched = {}
        make = _context_factory(npm, "pkg", "1.0.0", fetched)

        result = asyncio.run(run_strategy_chain([_Fails(), _Fails()], make))

        assert not result.ok
        assert fetched == {}
        assert isinstance(result.error, TypingsNotFoundError)
        assert len(result.error.causes) == 2

    def test_unexpected_exception_falls_through(self, npm):
        """Non-typings exceptions still fall through."""
        class _Boom(TypingsStrategy):
            name = "boom"

            async def run(self, ctx):
                raise ValueError("bad data")

        fetched = {}
        make = _context_factory(npm, "pkg", "1.0.0", fetched)
        result = asyncio.run(run_strategy_chain([_Boom(), _Succeeds()], make))

        assert result.resolved_by == "succeeds"
        assert isinstance(result.attempts[0].error, ValueError)


class TestManifestStrategy:
    """Tests for the typings/types manifest strategy."""

    def test_walks_from_types_field(self, npm):
        """The types entry point and its local references are walked."""
        npm.add_package(
            "alpha",
            "1.0.0",
            {
                "lib/index.d.ts": 'import { U } from "./util";\nexport declare const a: U;\n',
                "lib/util.d.ts": "export interface U {}\n",
            },
            manifest={"types": "./lib/index"},
        )
        fetched = {}
        make = _context_factory(npm, "alpha", "1.0.0", fetched)

        result = asyncio.run(run_strategy_chain([ManifestStrategy()], make))

        assert result.resolved_by == "manifest"
        assert set(fetched) == {
            "node_modules/alpha/package.json",
            "node_modules/alpha/lib/index.d.ts",
            "node_modules/alpha/lib/util.d.ts",
        }
        assert json.loads(fetched["node_modules/alpha/package.json"])["types"] == "./lib/index"

    def test_typings_field_takes_precedence(self, npm):
        """typings wins over types."""
        npm.add_package(
            "beta",
            "2.0.0",
            {"a.d.ts": "export {};\n", "b.d.ts": "export {};\n"},
            manifest={"typings": "a.d.ts", "types": "b.d.ts"},
        )
        fetched = {}
        asyncio.run(run_strategy_chain([ManifestStrategy()], _context_factory(npm, "beta", "2.0.0", fetched)))
        assert "node_modules/beta/a.d.ts" in fetched
        assert "node_modules/beta/b.d.ts" not in fetched

    def test_missing_field_fails(self, npm):
        """No typings field means NoTypingsFieldError."""
        npm.add_package("gamma", "1.0.0", {"index.d.ts": ""})
        result = asyncio.run(
            run_strategy_chain([ManifestStrategy()], _context_factory(npm, "gamma", "1.0.0", {}))
        )
        assert isinstance(result.attempts[0].error, NoTypingsFieldError)

    def test_null_typings_falls_back_to_types(self, npm):
        """A null typings field defers to types."""
        npm.add_package(
            "nt", "1.0.0", {"index.d.ts": "export {};\n"}, manifest={"typings": None, "types": "index.d.ts"}
        )
        fetched = {}
        result = asyncio.run(run_strategy_chain([ManifestStrategy()], _context_factory(npm, "nt", "1.0.0", fetched)))

        assert result.resolved_by == "manifest"
        assert "node_modules/nt/index.d.ts" in fetched

    def test_non_string_typings_counts_as_absent(self, npm):
        """A non-string typings value is treated as missing."""
        npm.add_package("odd", "1.0.0", {"index.d.ts": ""}, manifest={"typings": ["index.d.ts"]})
        result = asyncio.run(
            run_strategy_chain([ManifestStrategy()], _context_factory(npm, "odd", "1.0.0", {}))
        )
        assert isinstance(result.attempts[0].error, NoTypingsFieldError)

    def test_directory_types_with_trailing_slash(self, npm):
        """A directory entry point with a trailing slash finds its index."""
        npm.add_package("dirty", "1.0.0", {"dist/index.d.ts": "export {};\n"}, manifest={"types": "dist/"})
        fetched = {}
        result = asyncio.run(
            run_strategy_chain([ManifestStrategy()], _context_factory(npm, "dirty", "1.0.0", fetched))
        )

        assert result.resolved_by == "manifest"
        assert "node_modules/dirty/dist/index.d.ts" in fetched

    def test_recorded_manifest_keeps_non_ascii_text(self, npm):
        """The recorded package.json keeps non-ASCII text verbatim."""
        npm.add_package(
            "intl", "1.0.0", {"index.d.ts": ""}, manifest={"types": "index.d.ts", "description": "déclarations"}
        )
        fetched = {}
        asyncio.run(run_strategy_chain([ManifestStrategy()], _context_factory(npm, "intl", "1.0.0", fetched)))

        recorded = fetched["node_modules/intl/package.json"]
        assert '"description":"déclarations"' in recorded
        assert "\\u00e9" not in recorded


class TestInlineMetaStrategy:
    """Tests for the flat inline capture strategy."""

    def test_captures_declarations_without_walking(self, npm):
        """Every listed .d.ts is captured and nothing else is followed."""
        npm.add_package(
            "inl",
            "1.0.0",
            {
                "index.d.ts": 'import "./not-listed";\n',
                "sub/types.d.ts": "export {};\n",
                "index.js": "module.exports = 1;\n",
                "src/impl.ts": "export const x = 1;\n",
            },
        )
        fetched = {}
        asyncio.run(run_strategy_chain([InlineMetaStrategy()], _context_factory(npm, "inl", "1.0.0", fetched)))

        assert set(fetched) == {"node_modules/inl/index.d.ts", "node_modules/inl/sub/types.d.ts"}

    def test_falls_back_to_ts_sources(self, npm):
        """.ts sources are captured when no .d.ts exists."""
        npm.add_package("tsonly", "1.0.0", {"src/main.ts": "export const x = 1;\n"})
        fetched = {}
        asyncio.run(run_strategy_chain([InlineMetaStrategy()], _context_factory(npm, "tsonly", "1.0.0", fetched)))
        assert set(fetched) == {"node_modules/tsonly/src/main.ts"}

    def test_no_typescript_files_fails(self, npm):
        """A package without TypeScript files fails the strategy."""
        npm.add_package("jsonly", "1.0.0", {"index.js": ""})
        result = asyncio.run(
            run_strategy_chain([InlineMetaStrategy()], _context_factory(npm, "jsonly", "1.0.0", {}))
        )
        assert isinstance(result.attempts[0].error, NoInlineTypingsError)

    def test_unfetchable_file_is_skipped(self, npm):
        """A file that cannot be fetched is skipped."""
        npm.add_package("flaky", "1.0.0", {"a.d.ts": "export {};\n", "b.d.ts": "export {};\n"})
        del npm.transport.responses[npm.file_url("flaky", "1.0.0", "b.d.ts")]
        fetched = {}
        result = asyncio.run(
            run_strategy_chain([InlineMetaStrategy()], _context_factory(npm, "flaky", "1.0.0", fetched))
        )
        assert result.ok
        assert set(fetched) == {"node_modules/flaky/a.d.ts"}


class TestDefinitelyTypedStrategy:
    """Tests for the @types companion strategy via the default chain."""

    def test_resolves_companion_package(self, npm):
        """The @types companion is walked when the rest fail."""
        npm.add_package("plain", "1.0.0", {"index.js": ""})
        npm.add_package(
            "@types/plain",
            "3.1.0",
            {"index.d.ts": '/// <reference path="extra.d.ts" />\n', "extra.d.ts": "export {};\n"},
        )
        fetched = {}
        result = asyncio.run(
            run_strategy_chain(DEFAULT_STRATEGIES, _context_factory(npm, "plain", "1.0.0", fetched))
        )

        assert result.resolved_by == "definitely-typed"
        assert [a.strategy for a in result.attempts] == ["manifest", "inline", "definitely-typed"]
        assert set(fetched) == {
            "node_modules/@types/plain/package.json",
            "node_modules/@types/plain/index.d.ts",
            "node_modules/@types/plain/extra.d.ts",
        }

    def test_scoped_package_uses_flattened_name(self, npm):
        """Scoped packages use the flattened @types name."""
        npm.add_package("@babel/core", "7.0.0", {"lib/index.js": ""})
        npm.add_package("@types/babel__core", "7.20.0", {"index.d.ts": "export {};\n"})
        fetched = {}
        result = asyncio.run(
            run_strategy_chain(DEFAULT_STRATEGIES, _context_factory(npm, "@babel/core", "7.0.0", fetched))
        )
        assert result.ok
        assert "node_modules/@types/babel__core/index.d.ts" in fetched
