"""
Core business exceptions for the metadata fetcher.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""


class MetadataFetcherError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(MetadataFetcherError):
    """Raised for errors related to application configuration."""
    pass


# --- Locator Errors ---

class LocatorError(MetadataFetcherError):
    """Raised when a command-line argument cannot be parsed into a locator."""
    pass


class UnsupportedSchemeError(LocatorError):
    """Raised for URLs whose scheme is not http, https or file."""
    pass


class InvalidLocatorError(LocatorError):
    """Raised for malformed URLs and relative or empty paths."""
    pass


class NoFileNameError(LocatorError):
    """Raised when a locator's path has no final segment to name it by."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(MetadataFetcherError):
    """Base class for errors related to external systems (network, disk)."""
    pass


class StorageError(InfrastructureError):
    """Raised when a storage backend fails to stat or read an object."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(MetadataFetcherError):
    """Base class for errors related to archive content."""
    pass


class ArchiveFormatError(DomainError):
    """Raised when the ZIP central directory or an entry cannot be read."""
    pass


class MetadataNotFoundError(DomainError):
    """Raised when no archive entry matches the metadata pattern."""
    pass


class MetadataEncodingError(DomainError):
    """Raised when the metadata entry is not valid UTF-8."""
    pass


# --- Task Errors ---

class FetchError(MetadataFetcherError):
    """
    Wraps a failure of a single fetch task.

    Attributes:
        locator: The locator whose task failed.
        stage: The FetchStage the task was trying to reach.
        cause: The underlying exception.
    """

    def __init__(self, locator, stage, cause: BaseException):
        super().__init__(f"{locator}: {stage.value} failed: {cause}")
        self.locator = locator
        self.stage = stage
        self.cause = cause
