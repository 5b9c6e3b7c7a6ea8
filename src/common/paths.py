"""POSIX path helpers for virtual (in-memory) file paths.

These mirror Node's ``path.posix`` semantics rather than ``posixpath`` so that
virtual path keys built from registry listings, manifest fields and module
specifiers always normalize to the same string.
"""

from __future__ import annotations

from typing import Any, List

from common.errors import InvalidArgumentError


def _normalize_parts(parts: List[str], allow_above_root: bool) -> List[str]:
    """Resolve ``.`` and ``..`` segments; empty segments are dropped."""
    res: List[str] = []
    for part in parts:
        if not part or part == ".":
            continue
        if part == "..":
            if res and res[-1] != "..":
                res.pop()
            elif allow_above_root:
                res.append("..")
        else:
            res.append(part)
    return res


def is_absolute(path: str) -> bool:
    """Return True if ``path`` starts at the root."""
    return path.startswith("/")


def normalize(path: str) -> str:
    """Collapse ``.``/``..`` segments and duplicate slashes.

    Absolute paths stay absolute, relative paths stay relative (and may keep
    leading ``..`` segments), and a trailing slash is preserved.
    """
    if not path:
        return "."
    is_abs = is_absolute(path)
    trailing_slash = path.endswith("/")

    new_path = "/".join(_normalize_parts(path.split("/"), not is_abs))
    if not new_path and not is_abs:
        new_path = "."
    if new_path and trailing_slash:
        new_path += "/"
    return ("/" if is_abs else "") + new_path


def join(*paths: Any) -> str:
    """Join segments with ``/`` and normalize the result.

    Raises:
        InvalidArgumentError: If any segment is not a string.
    """
    joined = ""
    for segment in paths:
        if not isinstance(segment, str):
            raise InvalidArgumentError("Arguments to path.join must be strings")
        if segment:
            joined = segment if not joined else f"{joined}/{segment}"
    return normalize(joined)


def dirname(path: str) -> str:
    """Directory portion of ``path``; ``"."`` when there is none."""
    if not path:
        return "."
    has_root = path[0] == "/"
    end = -1
    matched_slash = True
    for i in range(len(path) - 1, 0, -1):
        if path[i] == "/":
            if not matched_slash:
                end = i
                break
        else:
            matched_slash = False

    if end == -1:
        return "/" if has_root else "."
    if has_root and end == 1:
        return "//"
    return path[:end]


def basename(path: str, ext: str = "") -> str:
    """Last segment of ``path``, with ``ext`` removed when it is a suffix."""
    if path == "":
        return path
    sections = normalize(path).split("/")
    last = sections[-1]
    if last == "" and len(sections) > 1:
        # "foo/" names the directory itself
        return sections[-2]
    if ext and last.endswith(ext) and last != ext:
        return last[: len(last) - len(ext)]
    return last


def absolute(path: str) -> str:
    """Coerce a bare or ``./``-prefixed path to a root-relative one."""
    if path.startswith("/"):
        return path
    if path.startswith("./"):
        return "/" + path[2:]
    return "/" + path
