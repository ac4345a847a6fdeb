"""
Streaming JSON output.

The output object is produced member by member from an async stream of
results and copied to the sink as it is generated, so nothing waits for the
slowest archive except the closing brace.
"""

import asyncio
import enum
import logging
from typing import Any, AsyncIterable, AsyncIterator, BinaryIO, Tuple

from pydantic import BaseModel
from pydantic_core import to_json

from ..application.domain import MetadataResult, printable

from .output_models import FailureMarker

logger = logging.getLogger(__name__)


class ErrorPolicy(enum.Enum):
    """How failed locators are represented in the output object."""

    MARKER = "marker"
    OMIT = "omit"


def _dump(value: Any) -> bytes:
    if isinstance(value, BaseModel):
        return value.model_dump_json().encode("utf-8")
    if isinstance(value, str):
        value = printable(value)
    return to_json(value)


async def encode_map(
    items: AsyncIterable[Tuple[str, Any]]
) -> AsyncIterator[bytes]:
    """
    Encodes `(key, value)` pairs as one JSON object, incrementally.

    Yields the opening brace immediately, one chunk per member as each pair
    arrives (preceded by a comma for all but the first), and the closing
    brace once `items` is exhausted. Pairs are never reordered.
    """

    yield b"{"
    first = True
    async for key, value in items:
        member = _dump(key) + b":" + _dump(value)
        yield member if first else b"," + member
        first = False
    yield b"}"


async def result_members(
    results: AsyncIterable[MetadataResult], policy: ErrorPolicy
) -> AsyncIterator[Tuple[str, Any]]:
    """Maps results to output members according to the error policy."""
    async for result in results:
        if result.ok:
            yield result.key, result.text
        elif policy is ErrorPolicy.MARKER:
            yield result.key, FailureMarker.from_error(result.error)
        else:
            logger.info(f"Omitting {result.key} from output")


async def copy_stream(chunks: AsyncIterable[bytes], sink: BinaryIO) -> int:
    """Writes each chunk to `sink` as it is produced. Returns bytes written."""

    def _write(chunk: bytes):
        sink.write(chunk)
        sink.flush()

    written = 0
    async for chunk in chunks:
        await asyncio.to_thread(_write, chunk)
        written += len(chunk)
    return written
