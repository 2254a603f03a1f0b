"""Remote-fallback fetch-and-cache for a module's descriptor and resources.

Fetch policy:
- The descriptor is mandatory: missing remotely means the module does not exist.
- Resources and their .index sidecars are best effort: a missing or unreachable
  artifact is skipped and reported, never raised.
- Anything already cached is trusted and never re-fetched.
- Disk failures while persisting a fetched artifact always propagate.
"""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass
from dataclasses import field
from enum import Enum

from ..errors import CacheWriteError
from ..errors import ModuleFetchError
from ..settings import RepositoryConfig
from .cache_store import ByteStream
from .cache_store import LocalCacheStore
from .descriptor import DescriptorParser
from .descriptor import ModuleXmlParser
from .identifier import ModuleIdentifier
from .paths import DESCRIPTOR_NAME
from .paths import INDEX_SUFFIX
from .paths import compose_local_path
from .paths import compose_remote_path
from .repository import LookupOutcome
from .repository import RemoteRepositoryClient

logger = logging.getLogger(__name__)


class FetchOutcome(str, Enum):
    CACHED = "cached"
    FETCHED = "fetched"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


_SKIPPED = {
    LookupOutcome.NOT_FOUND: FetchOutcome.NOT_FOUND,
    LookupOutcome.TRANSPORT_ERROR: FetchOutcome.TRANSPORT_ERROR,
}


@dataclass(frozen=True)
class ArtifactResult:
    """What happened to one artifact (descriptor, resource or sidecar)."""

    name: str
    outcome: FetchOutcome

    @property
    def materialized(self) -> bool:
        return self.outcome in (FetchOutcome.CACHED, FetchOutcome.FETCHED)


@dataclass
class FetchReport:
    """Per-artifact outcome of fetching one module, in fetch order.

    Truthiness follows ``found``: whether the descriptor is available locally.
    """

    identifier: ModuleIdentifier
    found: bool = False
    artifacts: list[ArtifactResult] = field(default_factory=list)

    @property
    def fetched(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if a.outcome is FetchOutcome.FETCHED]

    @property
    def skipped(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if not a.materialized]

    def __bool__(self) -> bool:
        return self.found


class ModuleFetcher:
    """Fetches modules from the remote repository into the local cache.

    Concurrent fetches of the same identifier are serialized, so the second
    caller finds the first caller's artifacts already cached.
    """

    def __init__(
        self,
        config: RepositoryConfig,
        cache: LocalCacheStore | None = None,
        repository: RemoteRepositoryClient | None = None,
        parser: DescriptorParser | None = None,
    ):
        """Initialize fetcher.

        Args:
            config: Repository configuration (version tag, cache root)
            cache: Cache store; built from config.cache_root if None
            repository: Repository client; built from config if None
            parser: Descriptor parser; ModuleXmlParser if None
        """
        self.version = config.version
        self.cache = cache or LocalCacheStore(config.cache_root)
        self.repository = repository or RemoteRepositoryClient(config)
        self.parser = parser or ModuleXmlParser()
        # Entries live only while some caller holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[ModuleIdentifier, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def fetch_module(self, identifier: ModuleIdentifier) -> bool:
        """Make a module's descriptor available locally.

        Returns:
            True if the descriptor was already cached or was fetched;
            False if the repository does not have it (or is unreachable)

        Raises:
            ModuleFetchError: Cached descriptor unreadable, or a fetched artifact could not be written
            DescriptorParseError: Descriptor is malformed
        """
        return self.fetch(identifier).found

    def fetch(self, identifier: ModuleIdentifier) -> FetchReport:
        """Same as fetch_module, returning the per-artifact report."""
        with self._lock_for(identifier):
            return self._fetch(identifier)

    def _lock_for(self, identifier: ModuleIdentifier) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = self._locks[identifier] = threading.Lock()
            return lock

    def _fetch(self, identifier: ModuleIdentifier) -> FetchReport:
        local_prefix = compose_local_path(identifier)
        remote_prefix = compose_remote_path(identifier, self.version)
        descriptor_name = local_prefix + DESCRIPTOR_NAME
        report = FetchReport(identifier=identifier)

        if self.cache.exists(descriptor_name):
            report.artifacts.append(ArtifactResult(DESCRIPTOR_NAME, FetchOutcome.CACHED))
        else:
            lookup = self.repository.lookup(remote_prefix, DESCRIPTOR_NAME)
            if lookup.resource is None:
                logger.info(f"Module not available remotely: {identifier}", extra={"event": "module:missing"})
                report.artifacts.append(ArtifactResult(DESCRIPTOR_NAME, _SKIPPED[lookup.outcome]))
                return report
            self._persist(identifier, lookup.resource, descriptor_name)
            report.artifacts.append(ArtifactResult(DESCRIPTOR_NAME, FetchOutcome.FETCHED))

        # Always parse the on-disk copy so what was parsed is what later readers see
        resource_paths = self._read_resource_paths(identifier, descriptor_name)
        report.found = True

        for resource in resource_paths:
            report.artifacts.append(self._fetch_artifact(identifier, local_prefix, remote_prefix, resource))
            report.artifacts.append(
                self._fetch_artifact(identifier, local_prefix, remote_prefix, resource + INDEX_SUFFIX)
            )

        skipped = len(report.skipped)
        logger.info(
            f"Module fetch completed OK: {identifier}" + (f" ({skipped} artifacts skipped)" if skipped else ""),
            extra={"event": "module:fetch"},
        )
        return report

    def _fetch_artifact(
        self, identifier: ModuleIdentifier, local_prefix: str, remote_prefix: str, name: str
    ) -> ArtifactResult:
        local_name = local_prefix + name
        if self.cache.exists(local_name):
            return ArtifactResult(name, FetchOutcome.CACHED)

        lookup = self.repository.lookup(remote_prefix, name)
        if lookup.resource is None:
            logger.debug(f"Skipping {name} for {identifier}: {lookup.outcome.value}", extra={"event": "resource:skipped"})
            return ArtifactResult(name, _SKIPPED[lookup.outcome])

        self._persist(identifier, lookup.resource, local_name)
        return ArtifactResult(name, FetchOutcome.FETCHED)

    def _persist(self, identifier: ModuleIdentifier, stream: ByteStream, local_name: str) -> None:
        try:
            self.cache.write(stream, local_name)
        except CacheWriteError as e:
            raise ModuleFetchError(identifier, e) from e

    def _read_resource_paths(self, identifier: ModuleIdentifier, descriptor_name: str) -> list[str]:
        try:
            with self.cache.open(descriptor_name) as stream:
                return self.parser.parse_resource_paths(stream, identifier)
        except OSError as e:
            raise ModuleFetchError(identifier, e) from e

    def close(self) -> None:
        self.repository.close()

    def __repr__(self) -> str:
        return f"ModuleFetcher({self.repository!r} -> {self.cache!r})"
