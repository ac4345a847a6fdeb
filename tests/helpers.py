"""Archive builders and a range-capable mock HTTP server for the tests."""

import asyncio
import io
import os
import zipfile
from typing import Dict, List, Optional

import httpx


def build_archive(entries: Dict[str, bytes], padding: int = 0) -> bytes:
    """Builds a ZIP archive in memory, optionally with an incompressible tail entry."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
        if padding:
            zf.writestr(
                zipfile.ZipInfo("pkg/data/blob.bin"),
                os.urandom(padding),
                compress_type=zipfile.ZIP_STORED,
            )
    return buffer.getvalue()


class RangeServer:
    """
    A MockTransport handler serving static objects with HTTP range semantics.

    Every request is recorded; `delays` maps a path to seconds slept before
    each response for that path.
    """

    def __init__(
        self,
        objects: Dict[str, bytes],
        delays: Optional[Dict[str, float]] = None,
        support_ranges: bool = True,
    ):
        self.objects = objects
        self.delays = delays or {}
        self.support_ranges = support_ranges
        self.requests: List[httpx.Request] = []
        self.bytes_served = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        delay = self.delays.get(request.url.path)
        if delay:
            await asyncio.sleep(delay)

        body = self.objects.get(request.url.path)
        if body is None:
            return httpx.Response(404)

        header = request.headers.get("Range")
        if not header or not self.support_ranges:
            self.bytes_served += len(body)
            return httpx.Response(200, content=body)

        start, end = header[len("bytes="):].split("-")
        start, end = int(start), min(int(end), len(body) - 1)
        if start >= len(body):
            return httpx.Response(
                416, headers={"Content-Range": f"bytes */{len(body)}"}
            )
        chunk = body[start:end + 1]
        self.bytes_served += len(chunk)
        return httpx.Response(
            206,
            content=chunk,
            headers={"Content-Range": f"bytes {start}-{end}/{len(body)}"},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
