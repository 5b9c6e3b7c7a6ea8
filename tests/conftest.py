"""Shared in-memory stand-ins for the jsDelivr endpoints."""

import asyncio
import json
from typing import Dict, Iterable, List, Optional

import pytest

from common.errors import NetworkError
from common.http_client import FetchCache
from registry.jsdelivr import RegistryClient

CDN = "https://cdn.test"
DATA = "https://data.test/v1"


class FakeTransport:
    """Serves canned bodies by URL and records every request."""

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses: Dict[str, object] = dict(responses or {})
        self.calls: List[str] = []

    async def get_text(self, url: str) -> str:
        self.calls.append(url)
        # Yield so sibling branches interleave like real requests
        await asyncio.sleep(0)
        value = self.responses.get(url)
        if value is None:
            raise NetworkError(url, 404, "Not Found")
        if isinstance(value, Exception):
            raise value
        return value

    def count(self, url: str) -> int:
        return self.calls.count(url)


class FakeNpm:
    """Builds resolve/flat/package.json/file responses for fake packages."""

    def __init__(self):
        self.transport = FakeTransport()

    def add_package(
        self,
        name: str,
        version: str,
        files: Dict[str, str],
        manifest: Optional[dict] = None,
        ranges: Iterable[str] = ("latest",),
    ) -> None:
        responses = self.transport.responses
        for spec in set(ranges) | {version}:
            responses[self.resolve_url(name, spec)] = json.dumps({"version": version})

        manifest = dict(manifest or {})
        manifest.setdefault("name", name)
        manifest.setdefault("version", version)
        responses[self.file_url(name, version, "package.json")] = json.dumps(manifest)

        listing = ["/package.json"] + ["/" + p.lstrip("/") for p in files]
        responses[f"{DATA}/package/npm/{name}@{version}/flat"] = json.dumps(
            {"default": None, "files": [{"name": n, "hash": "x", "size": 1} for n in listing]}
        )
        for path, content in files.items():
            responses[self.file_url(name, version, path)] = content

    @staticmethod
    def resolve_url(name: str, spec: str) -> str:
        return f"{DATA}/package/resolve/npm/{name}@{spec}"

    @staticmethod
    def file_url(name: str, version: str, path: str) -> str:
        return f"{CDN}/npm/{name}@{version}/{path.lstrip('/')}"

    def client(self) -> RegistryClient:
        return RegistryClient(FetchCache(self.transport), cdn_base=CDN, data_base=DATA)


@pytest.fixture
def npm():
    return FakeNpm()
