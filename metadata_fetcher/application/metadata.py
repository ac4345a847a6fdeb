"""Locating and decoding the package metadata entry of an archive."""

import re
from typing import Iterable, Pattern, Union

from .exceptions import MetadataEncodingError, MetadataNotFoundError

DEFAULT_METADATA_PATTERN = r".*/METADATA$"


def compile_pattern(pattern: Union[str, Pattern]) -> Pattern:
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


def find_entry(names: Iterable[str], pattern: Union[str, Pattern]) -> int:
    """
    Returns the index of the first entry name matching `pattern`.

    Names are scanned in the order given (central-directory order), so the
    earliest match wins when several entries qualify.

    Raises:
        MetadataNotFoundError: If no name matches.
    """

    regex = compile_pattern(pattern)
    for index, name in enumerate(names):
        if regex.match(name):
            return index
    raise MetadataNotFoundError(
        f"No entry matching {regex.pattern!r} in archive"
    )


def decode_metadata(data: bytes) -> str:
    """Decodes an entry payload as strict UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MetadataEncodingError(f"Metadata is not valid UTF-8: {e}") from e
