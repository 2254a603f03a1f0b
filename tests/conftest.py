"""Pytest configuration for remote-modules tests."""

import httpx
import pytest
from remote_modules.module_resolution.fetcher import ModuleFetcher
from remote_modules.module_resolution.repository import RemoteRepositoryClient
from remote_modules.settings import RepositoryConfig

ROOT_URL = "http://repo.test/modules/"


class FakeRepository:
    """In-memory module repository served through httpx.MockTransport.

    Paths are relative to ROOT_URL, e.g. ``trunk/org/example/foo/main/foo.jar``.
    """

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.status_codes: dict[str, int] = {}
        self.requests: list[str] = []
        self.online = True

    def add(self, path: str, content: bytes) -> None:
        self.files[path] = content

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/modules/")
        self.requests.append(path)
        if not self.online:
            raise httpx.ConnectError("Repository unreachable", request=request)
        if path in self.status_codes:
            return httpx.Response(self.status_codes[path])
        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


def build_module_xml(*resource_paths: str, name: str = "org.example.foo") -> bytes:
    roots = "\n".join(f'        <resource-root path="{p}"/>' for p in resource_paths)
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<module xmlns="urn:jboss:module:1.0" name="{name}">\n'
        f"    <resources>\n{roots}\n    </resources>\n"
        f"</module>\n"
    ).encode()


@pytest.fixture
def module_xml():
    """Factory for module.xml bytes declaring the given resources."""
    return build_module_xml


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def config(cache_root):
    return RepositoryConfig(root_url=ROOT_URL, cache_root=cache_root, backoff_factor=0)


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def repository_client(config, repo):
    client = RemoteRepositoryClient(config, http_client=repo.client(), sleep=lambda _: None)
    yield client
    client.close()


@pytest.fixture
def fetcher(config, repository_client):
    return ModuleFetcher(config, repository=repository_client)
