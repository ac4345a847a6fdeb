"""HTTP and local-filesystem implementations of the StorageBackend port."""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Tuple

import httpx

from ..application.domain import LocatorKind, Origin, StorageBackend
from ..application.exceptions import ConfigurationError, StorageError

from .base_client import BaseClient
from .decorators import traced_operation

_CONTENT_RANGE = re.compile(r"bytes\s+(\d+)-(\d+)/(\d+|\*)")


class HttpRangeBackend(BaseClient, StorageBackend):
    """A backend that reads byte ranges of static objects over HTTP."""

    def __init__(self, client: httpx.AsyncClient, timeout: float):
        """Initializes the backend with a client bound to one origin."""
        super().__init__(client, timeout)

    async def _fetch_range(
        self, path: str, start: int, end: int
    ) -> Tuple[httpx.Response, bytes]:
        """Issues a single ranged GET and returns the response and its body."""
        headers = {"Range": f"bytes={start}-{end}"}
        async with self.client.stream(
            "GET", path, headers=headers, timeout=self.timeout
        ) as response:
            response.raise_for_status()
            # A 200 would carry the whole object; refuse it unread.
            if response.status_code != httpx.codes.PARTIAL_CONTENT:
                raise StorageError(
                    f"{response.url} does not support range requests "
                    f"(status {response.status_code})"
                )
            body = await response.aread()
        return response, body

    async def stat(self, path: str) -> int:
        """
        Determines the object size with a one-byte range probe.

        Raises:
            StorageError: If the request fails or the server does not
                          report the total size.
        """

        try:
            response, _ = await self._fetch_range(path, 0, 0)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to probe {path}: {e}") from e

        match = _CONTENT_RANGE.match(response.headers.get("Content-Range", ""))
        if not match or match.group(3) == "*":
            raise StorageError(
                f"Server did not report the size of {path} "
                f"(Content-Range: {response.headers.get('Content-Range')!r})"
            )
        return int(match.group(3))

    async def read(self, path: str, offset: int, length: int) -> bytes:
        if length <= 0:
            return b""
        try:
            _, body = await self._fetch_range(path, offset, offset + length - 1)
        except httpx.HTTPError as e:
            raise StorageError(
                f"Failed to read {path} [{offset}+{length}]: {e}"
            ) from e
        return body[:length]

    async def aclose(self):
        await self.client.aclose()


class LocalFileBackend(StorageBackend):
    """A backend that reads files below a filesystem root."""

    def __init__(self, root: Path = Path("/")):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.root = root

    def _resolve(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    async def stat(self, path: str) -> int:
        target = self._resolve(path)
        try:
            stat = await asyncio.to_thread(target.stat)
        except OSError as e:
            raise StorageError(f"Failed to stat {target}: {e}") from e
        if not target.is_file():
            raise StorageError(f"{target} is not a regular file")
        return stat.st_size

    async def read(self, path: str, offset: int, length: int) -> bytes:
        target = self._resolve(path)

        def _read_range():
            with open(target, "rb") as f:
                f.seek(offset)
                return f.read(length)

        try:
            return await asyncio.to_thread(_read_range)
        except OSError as e:
            raise StorageError(f"Failed to read {target}: {e}") from e

    async def aclose(self):
        pass


class ObservedBackend(StorageBackend):
    """A proxy that traces every operation of the backend it wraps."""

    def __init__(self, inner: StorageBackend, endpoint: str):
        self.inner = inner
        self.endpoint = endpoint

    @traced_operation("stat")
    async def stat(self, path: str) -> int:
        return await self.inner.stat(path)

    @traced_operation("read")
    async def read(self, path: str, offset: int, length: int) -> bytes:
        return await self.inner.read(path, offset, length)

    async def aclose(self):
        await self.inner.aclose()


def build_backend(
    origin: Origin,
    timeout: float = 30,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StorageBackend:
    """
    Constructs the traced backend for an origin.

    Remote origins get their own httpx.AsyncClient rooted at the origin
    endpoint; the local origin gets a filesystem backend rooted at `/`.

    Args:
        origin: The origin the backend serves.
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport, e.g. a MockTransport.

    Raises:
        ConfigurationError: If no backend exists for the origin kind.
    """

    if origin.kind is LocatorKind.REMOTE:
        client = httpx.AsyncClient(
            base_url=origin.endpoint, timeout=timeout, transport=transport
        )
        backend = HttpRangeBackend(client, timeout)
    elif origin.kind is LocatorKind.LOCAL:
        backend = LocalFileBackend(root=Path(origin.endpoint))
    else:
        raise ConfigurationError(f"No storage backend for {origin}")

    return ObservedBackend(backend, origin.endpoint)
