"""Tests for locating and decoding the metadata entry."""

import re

import pytest

from metadata_fetcher.application.exceptions import (
    MetadataEncodingError,
    MetadataNotFoundError,
)
from metadata_fetcher.application.metadata import (
    DEFAULT_METADATA_PATTERN,
    decode_metadata,
    find_entry,
)


def test_finds_dist_info_metadata():
    names = [
        "pkg/__init__.py",
        "pkg-1.0.dist-info/WHEEL",
        "pkg-1.0.dist-info/METADATA",
        "pkg-1.0.dist-info/RECORD",
    ]
    assert find_entry(names, DEFAULT_METADATA_PATTERN) == 2


def test_first_match_in_directory_order_wins():
    names = [
        "vendored/other-2.0.dist-info/METADATA",
        "pkg-1.0.dist-info/METADATA",
    ]
    assert find_entry(names, DEFAULT_METADATA_PATTERN) == 0


def test_top_level_metadata_does_not_match():
    with pytest.raises(MetadataNotFoundError):
        find_entry(["METADATA", "pkg/METADATA.txt"], DEFAULT_METADATA_PATTERN)


def test_empty_directory():
    with pytest.raises(MetadataNotFoundError):
        find_entry([], DEFAULT_METADATA_PATTERN)


def test_accepts_compiled_pattern():
    pattern = re.compile(r".*\.egg-info/PKG-INFO$")
    assert find_entry(["a/b", "x.egg-info/PKG-INFO"], pattern) == 1


def test_decode_utf8():
    assert decode_metadata("Name: café\n".encode("utf-8")) == "Name: café\n"


def test_decode_invalid_utf8():
    with pytest.raises(MetadataEncodingError):
        decode_metadata(b"Name: \xff\xfe")
