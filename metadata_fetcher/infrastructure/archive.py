"""
Random-access ZIP reading over a StorageBackend.

zipfile is synchronous and needs a seekable file object, so archives are
parsed in a worker thread over a RangeStream whose reads are handed back to
the event loop as backend range reads.
"""

import asyncio
import io
import logging
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO

from ..application.domain import ArchiveDirectory, ArchiveReader, StorageBackend
from ..application.exceptions import ArchiveFormatError


class RangeStream(io.RawIOBase):
    """
    A read-only, seekable raw stream over one object of a backend.

    Must be read from a thread other than the event loop's: each read blocks
    on a coroutine submitted to `loop`.
    """

    def __init__(
        self,
        backend: StorageBackend,
        path: str,
        size: int,
        loop: asyncio.AbstractEventLoop,
    ):
        super().__init__()
        self.backend = backend
        self.path = path
        self.size = size
        self.loop = loop
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        # zipfile probes for the end record with a negative seek and
        # expects OSError on objects that are too short.
        if position < 0:
            raise OSError(f"Negative seek position {position} in {self.path}")
        self._position = position
        return position

    def readinto(self, buffer) -> int:
        length = min(len(buffer), self.size - self._position)
        if length <= 0:
            return 0
        future = asyncio.run_coroutine_threadsafe(
            self.backend.read(self.path, self._position, length), self.loop
        )
        data = future.result()
        count = len(data)
        buffer[:count] = data
        self._position += count
        return count


async def open_random_access(
    backend: StorageBackend, path: str, buffer_size: int = io.DEFAULT_BUFFER_SIZE
) -> BinaryIO:
    """Opens a buffered, seekable stream over `path` through `backend`."""
    size = await backend.stat(path)
    raw = RangeStream(backend, path, size, asyncio.get_running_loop())
    return io.BufferedReader(raw, buffer_size=buffer_size)


def open_archive(stream: BinaryIO, name: str = "") -> zipfile.ZipFile:
    """
    Parses the ZIP central directory from the tail of `stream`.

    Raises:
        ArchiveFormatError: If the directory cannot be located or parsed.
    """

    try:
        return zipfile.ZipFile(stream)
    except (zipfile.BadZipFile, EOFError) as e:
        raise ArchiveFormatError(f"Not a readable ZIP archive {name}: {e}") from e


def read_member(zip_file: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
    """Decompresses one entry fully into memory."""
    try:
        return zip_file.read(info)
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
        raise ArchiveFormatError(
            f"Cannot read entry {info.filename}: {e}"
        ) from e


class ZipArchiveReader(ArchiveReader):
    """An adapter that implements the ArchiveReader port with zipfile."""

    def __init__(self, block_size: int = 65536, workers: int = 8):
        """Initializes the reader and its worker pool."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.block_size = block_size
        self._executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="archive"
        )

    async def open(self, backend: StorageBackend, path: str) -> ArchiveDirectory:
        """
        Opens the archive at `path` without reading it in full.

        Only the stat probe and the reads zipfile asks for (end record,
        central directory) reach the backend here.

        Raises:
            StorageError: If the backend cannot stat or read the object.
            ArchiveFormatError: If the central directory is unreadable.
        """

        stream = await open_random_access(backend, path, self.block_size)
        loop = asyncio.get_running_loop()
        zip_file = await loop.run_in_executor(
            self._executor, open_archive, stream, path
        )
        names = [info.filename for info in zip_file.infolist()]
        self.logger.debug(f"Opened {path} with {len(names)} entries")
        return ArchiveDirectory(names=names, handle=zip_file)

    async def read_entry(self, directory: ArchiveDirectory, index: int) -> bytes:
        zip_file: zipfile.ZipFile = directory.handle
        info = zip_file.infolist()[index]
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, read_member, zip_file, info
        )

    def close(self):
        """Drops queued work and waits for running workers to finish."""
        self._executor.shutdown(wait=True, cancel_futures=True)

    async def aclose(self):
        # Workers mid-read need the loop to keep running until they finish.
        await asyncio.to_thread(self.close)
