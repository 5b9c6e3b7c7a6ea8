"""Extract module references from TypeScript source with tree-sitter.

Only real syntax nodes count: a string that merely looks like an import
inside a comment body or template literal is never reported.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from constants import Constants

logger = logging.getLogger(__name__)

_REFERENCE_PATH_RE = re.compile(r"""^///\s*<reference\s+path\s*=\s*(["'])(.*?)\1""")

_parser: Optional[Parser] = None


def _get_parser() -> Parser:
    """Create the TypeScript parser once per process."""
    global _parser  # pylint: disable=global-statement
    if _parser is None:
        _parser = Parser(Language(tstypescript.language_typescript()))
    return _parser


def _string_value(node: Node) -> str:
    text = node.text.decode("utf-8", errors="replace")
    if len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _reference_paths(root: Node) -> List[str]:
    """Triple-slash ``path`` references from the file's leading comments."""
    paths = []
    for child in root.children:
        if child.type == "hash_bang_line":
            continue
        if child.type != "comment":
            break
        match = _REFERENCE_PATH_RE.match(child.text.decode("utf-8", errors="replace"))
        if match:
            paths.append(match.group(2))
    return paths


def get_require_statements(title: str, code: str) -> List[str]:
    """Every module specifier ``code`` references, in document order.

    Reference directives come first, followed by the sources of top-level
    import declarations and ``export ... from`` declarations. Duplicates are
    kept.
    """
    tree = _get_parser().parse(code.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        logger.debug("Syntax errors while scanning %s; continuing with partial tree", title)

    requires = _reference_paths(root)
    for node in root.named_children:
        if node.type not in ("import_statement", "export_statement"):
            continue
        # `import x = require("y")` is an import-equals declaration, not an import
        if any(child.type == "import_require_clause" for child in node.named_children):
            continue
        source = node.child_by_field_name("source")
        if source is not None:
            requires.append(_string_value(source))
    return requires


def is_local_reference(specifier: str) -> bool:
    """Relative path or explicit declaration file, as opposed to a package."""
    return specifier.startswith(".") or specifier.endswith(Constants.DECLARATION_SUFFIX)


def package_name(specifier: str) -> Optional[str]:
    """npm package a bare specifier belongs to, or None if it names none.

    ``lodash/fp`` -> ``lodash``, ``@scope/pkg/sub`` -> ``@scope/pkg``.
    """
    if not specifier or specifier.startswith("/") or ":" in specifier:
        return None
    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or not parts[1]:
            return None
        return "/".join(parts[:2])
    return parts[0]


def partition_references(specifiers: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split specifiers into (package names, local references), deduplicated."""
    packages: List[str] = []
    local: List[str] = []
    for spec in specifiers:
        if is_local_reference(spec):
            if spec not in local:
                local.append(spec)
            continue
        name = package_name(spec)
        if name and name not in packages:
            packages.append(name)
    return packages, local
