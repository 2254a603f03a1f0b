"""Remote module repository client.

Fetches module artifacts over HTTP. Nothing here raises on a failed fetch:
absence (``None``) is the uniform "not found or unreachable" answer, and
``lookup`` additionally says which of the two it was.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from ..settings import RepositoryConfig

logger = logging.getLogger(__name__)

NOT_FOUND_STATUS_CODES = frozenset({404, 410})
CHUNK_SIZE = 64 * 1024


class LookupOutcome(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


class RemoteResource:
    """Open streaming response for one remote artifact.

    File-like enough for ``shutil.copyfileobj``: supports ``read`` and ``close``.
    Errors while reading the body surface as ``OSError``; passing the
    ``deadline`` (a ``clock()`` value) raises ``TimeoutError``.
    """

    def __init__(
        self,
        url: str,
        response: httpx.Response,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self._response = response
        self._chunks = response.iter_bytes(CHUNK_SIZE)
        self._pending = b""
        self._exhausted = False
        self._deadline = deadline
        self._clock = clock

    def read(self, size: int = -1) -> bytes:
        read_all = size is None or size < 0
        try:
            while not self._exhausted and (read_all or len(self._pending) < size):
                self._check_deadline()
                chunk = next(self._chunks, None)
                if chunk is None:
                    self._exhausted = True
                else:
                    self._pending += chunk
        except httpx.HTTPError as e:
            raise OSError(f"Failed reading {self.url}: {e}") from e
        if read_all:
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def _check_deadline(self) -> None:
        if self._deadline is not None and self._clock() > self._deadline:
            raise TimeoutError(f"Download deadline exceeded for {self.url}")

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> RemoteResource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RemoteResource({self.url})"


@dataclass
class RemoteLookup:
    """Result of a single remote fetch attempt."""

    url: str
    outcome: LookupOutcome
    resource: RemoteResource | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is LookupOutcome.FOUND


class RemoteRepositoryClient:
    """Blocking HTTP client for a module repository."""

    def __init__(
        self,
        config: RepositoryConfig,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize repository client.

        Args:
            config: Repository configuration (root URL, timeout, retry policy)
            http_client: Pre-built httpx client (for custom transports); created from config if None
            sleep: Delay function used between retries
            clock: Monotonic clock for the per-artifact download deadline
        """
        self.config = config
        self.root_url = config.root_url
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(config.timeout), follow_redirects=True)
        self._sleep = sleep
        self._clock = clock

    def fetch(self, remote_prefix: str, resource_name: str) -> RemoteResource | None:
        """Open a remote artifact, or None when it is missing or unreachable."""
        return self.lookup(remote_prefix, resource_name).resource

    def lookup(self, remote_prefix: str, resource_name: str) -> RemoteLookup:
        """Open a remote artifact and report the outcome.

        Connection errors, timeouts and 5xx responses are retried with
        exponential backoff; 404/410, other non-success codes and other
        request errors (e.g. too many redirects) are not.

        Args:
            remote_prefix: Composed remote path (``trunk/org/example/foo/main/``)
            resource_name: Artifact name relative to the module (``module.xml``, ``foo.jar``)

        Returns:
            RemoteLookup; ``resource`` is set only when the outcome is FOUND
        """
        url = self.root_url + remote_prefix + resource_name
        logger.debug(f"Fetching resource: {url}", extra={"event": "resource:fetch", "url": url})

        error = ""
        for attempt in range(self.config.max_attempts):
            if attempt:
                self._sleep(self._backoff(attempt - 1))
            try:
                request = self._http.build_request("GET", url)
                response = self._http.send(request, stream=True)
            except httpx.InvalidURL as e:
                return self._failed(url, f"Invalid URL: {e}")
            except httpx.UnsupportedProtocol as e:
                return self._failed(url, f"Unsupported protocol: {e}")
            except httpx.TransportError as e:
                error = f"{type(e).__name__}: {e}"
                logger.debug(f"Attempt {attempt + 1}/{self.config.max_attempts} failed for {url}: {error}")
                continue
            except httpx.RequestError as e:
                # Redirect loops, undecodable bodies; not retried
                return self._failed(url, f"{type(e).__name__}: {e}")

            if response.is_success:
                resource = RemoteResource(url, response, self._download_deadline(), self._clock)
                return RemoteLookup(url=url, outcome=LookupOutcome.FOUND, resource=resource)

            response.close()
            if response.status_code in NOT_FOUND_STATUS_CODES:
                logger.debug(f"Resource not found: {url}")
                return RemoteLookup(url=url, outcome=LookupOutcome.NOT_FOUND, error=f"HTTP {response.status_code}")

            error = f"HTTP {response.status_code}"
            if response.status_code < 500:
                break
            logger.debug(f"Attempt {attempt + 1}/{self.config.max_attempts} failed for {url}: {error}")

        return self._failed(url, error)

    def _download_deadline(self) -> float | None:
        if self.config.download_timeout is None:
            return None
        return self._clock() + self.config.download_timeout

    def _backoff(self, retry_index: int) -> float:
        return min(self.config.backoff_factor * (2**retry_index), self.config.max_backoff)

    def _failed(self, url: str, error: str) -> RemoteLookup:
        logger.warning(f"Cannot open stream: {url} ({error})", extra={"event": "resource:error", "url": url})
        return RemoteLookup(url=url, outcome=LookupOutcome.TRANSPORT_ERROR, error=error)

    def close(self) -> None:
        self._http.close()

    def __repr__(self) -> str:
        return f"RemoteRepositoryClient({self.root_url}{self.config.version}/)"
