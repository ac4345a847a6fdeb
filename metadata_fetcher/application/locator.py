"""Parsing of command-line arguments into archive locators."""

from typing import List
from urllib.parse import unquote, urlsplit

from .domain import ArchiveLocator, LocalLocator, RemoteLocator
from .exceptions import InvalidLocatorError, UnsupportedSchemeError

_REMOTE_SCHEMES = ("http", "https")
_FILE_SCHEME = "file"


def _local(path: str, raw: str) -> LocalLocator:
    if not path.startswith("/"):
        raise InvalidLocatorError(f"Local paths must be absolute: {raw!r}")
    return LocalLocator(path=path)


def parse_locator(raw: str) -> ArchiveLocator:
    """
    Parses a single argument into a remote or local archive locator.

    Strings carrying a URL scheme must use http, https or file; anything
    else is treated as an absolute filesystem path.

    Args:
        raw: A URL or filesystem path as given on the command line.

    Returns:
        A RemoteLocator for http(s) URLs, a LocalLocator otherwise.

    Raises:
        UnsupportedSchemeError: If the URL scheme is not allowed.
        InvalidLocatorError: If the URL is malformed or the path relative.
    """

    if not raw or not raw.strip():
        raise InvalidLocatorError("Empty locator")

    try:
        parts = urlsplit(raw)
        # urlsplit defers port validation until the attribute is read.
        parts.port
    except ValueError as e:
        raise InvalidLocatorError(f"Invalid URL {raw!r}: {e}") from e

    if not parts.scheme:
        return _local(raw, raw)

    if parts.scheme in _REMOTE_SCHEMES:
        if not parts.netloc:
            raise InvalidLocatorError(f"URL has no host: {raw!r}")
        return RemoteLocator(
            scheme=parts.scheme,
            host=parts.netloc,
            path=parts.path or "/",
            url=raw,
        )

    if parts.scheme == _FILE_SCHEME:
        return _local(unquote(parts.path), raw)

    raise UnsupportedSchemeError(f"Unknown scheme {parts.scheme!r}: {raw}")


def parse_locators(raws: List[str]) -> List[ArchiveLocator]:
    """Parses every argument, failing on the first invalid one."""
    return [parse_locator(raw) for raw in raws]
