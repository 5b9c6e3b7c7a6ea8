"""Exception taxonomy for typings resolution."""

from __future__ import annotations

from typing import Optional, Sequence


class InvalidArgumentError(TypeError):
    """Raised when a path helper receives a non-string argument."""


class TypingsError(Exception):
    """Base class for every recoverable resolution failure."""


class NetworkError(TypingsError):
    """Non-2xx response or transport failure.

    Attributes:
        url: Requested URL.
        status: HTTP status code, or None for transport failures.
        status_text: Reason phrase or transport error description.
    """

    def __init__(self, url: str, status: Optional[int], status_text: str):
        self.url = url
        self.status = status
        self.status_text = status_text
        super().__init__(status_text or (str(status) if status is not None else "network error"))


class ParseError(TypingsError):
    """Malformed JSON response body."""


class VersionResolutionError(TypingsError):
    """A version range could not be resolved to a concrete version."""

    def __init__(self, name: str, version_range: str, reason: str = ""):
        self.name = name
        self.version_range = version_range
        message = f"Cannot resolve {name}@{version_range}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoTypingsFieldError(TypingsError):
    """The package manifest declares neither ``typings`` nor ``types``."""


class NoInlineTypingsError(TypingsError):
    """The package listing contains no .d.ts or .ts files."""


class TypingsNotFoundError(TypingsError):
    """Every strategy failed for one package."""

    def __init__(self, name: str, causes: Sequence[Exception] = ()):
        self.name = name
        self.causes = list(causes)
        detail = "; ".join(str(c) for c in self.causes)
        message = f"No typings found for {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
