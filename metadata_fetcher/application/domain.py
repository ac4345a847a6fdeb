"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the application's business logic operates on, together with
the ports that infrastructure adapters implement.
"""

import dataclasses
import enum
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import List, Optional, Union
from urllib.parse import unquote

from .exceptions import FetchError, NoFileNameError


# --- Domain Models ---

class LocatorKind(enum.Enum):
    """The two kinds of storage an archive can live in."""

    REMOTE = "remote"
    LOCAL = "local"


@dataclasses.dataclass(frozen=True)
class Origin:
    """Identifies the storage backend a locator is routed through."""

    kind: LocatorKind
    endpoint: str


LOCAL_ORIGIN = Origin(kind=LocatorKind.LOCAL, endpoint="/")


def _last_segment(path: str) -> str:
    name = PurePosixPath(path).name
    if name in ("", ".", ".."):
        raise NoFileNameError(f"Path has no file name: {path!r}")
    return name


@dataclasses.dataclass(frozen=True)
class RemoteLocator:
    """An archive served over HTTP(S), addressed by scheme, host and path."""

    scheme: str
    host: str
    path: str
    url: str

    @property
    def origin(self) -> Origin:
        return Origin(
            kind=LocatorKind.REMOTE, endpoint=f"{self.scheme}://{self.host}"
        )

    def display_name(self) -> str:
        return unquote(_last_segment(self.path))

    def __str__(self) -> str:
        return self.url


@dataclasses.dataclass(frozen=True)
class LocalLocator:
    """An archive on the local filesystem, addressed by absolute path."""

    path: str

    @property
    def origin(self) -> Origin:
        return LOCAL_ORIGIN

    def display_name(self) -> str:
        return _last_segment(self.path)

    def __str__(self) -> str:
        return self.path


ArchiveLocator = Union[RemoteLocator, LocalLocator]


def printable(text: str) -> str:
    """
    Makes text that may carry undecodable filesystem bytes safe to encode.

    Command-line paths with non-UTF-8 bytes arrive as lone surrogates; those
    bytes are rendered as backslash escapes, e.g. `bad\\xff.whl`.
    """
    raw = text.encode("utf-8", "surrogateescape")
    return raw.decode("utf-8", "backslashreplace")


def output_key(locator: ArchiveLocator) -> str:
    """The JSON member name for a locator: its file name, else its full form."""
    try:
        return printable(locator.display_name())
    except NoFileNameError:
        return printable(str(locator))


class FetchStage(enum.Enum):
    """States of a single fetch task, in the order they are reached."""

    PENDING = "pending"
    BACKEND_RESOLVED = "backend_resolved"
    ARCHIVE_OPENED = "archive_opened"
    ENTRY_LOCATED = "entry_located"
    ENTRY_READ = "entry_read"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class MetadataResult:
    """The outcome of one fetch task: the metadata text or the failure."""

    locator: ArchiveLocator
    text: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def key(self) -> str:
        return output_key(self.locator)


@dataclasses.dataclass(frozen=True)
class ArchiveDirectory:
    """
    The entries of an opened archive, in central-directory order.

    `handle` is adapter-owned state that lets the ArchiveReader address an
    entry by index; the application never inspects it.
    """

    names: List[str]
    handle: object = dataclasses.field(repr=False, compare=False)


# --- Ports (Interfaces) ---

class StorageBackend(ABC):
    """A port for random-access reads against one origin."""

    @abstractmethod
    async def stat(self, path: str) -> int:
        """Returns the size in bytes of the object at `path`."""
        pass

    @abstractmethod
    async def read(self, path: str, offset: int, length: int) -> bytes:
        """Reads up to `length` bytes of `path` starting at `offset`."""
        pass

    @abstractmethod
    async def aclose(self):
        """Releases any connections held by the backend."""
        pass


class ArchiveReader(ABC):
    """A port for opening archives and reading their entries."""

    @abstractmethod
    async def open(self, backend: StorageBackend, path: str) -> ArchiveDirectory:
        """
        Opens the archive at `path` through `backend`.
        Raises ArchiveFormatError if the central directory is unreadable.
        """
        pass

    @abstractmethod
    async def read_entry(self, directory: ArchiveDirectory, index: int) -> bytes:
        """Reads the entry at `index` fully into memory."""
        pass

    @abstractmethod
    async def aclose(self):
        """Waits for in-flight work and releases the reader's workers."""
        pass
