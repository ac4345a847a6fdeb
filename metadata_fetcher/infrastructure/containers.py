"""
Dependency Injection container for the metadata_fetcher component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from dependency_injector import containers, providers

from ..application.backends import BackendCache
from ..application.service import MetadataFetchService
from ..settings import settings as app_settings

from .archive import ZipArchiveReader
from .output import ErrorPolicy
from .storage import build_backend


def _override_or(override, default):
    return default if override is None else override


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    settings = providers.Object(app_settings)

    http_transport = providers.Object(None)

    backend_factory = providers.Factory(
        build_backend,
        timeout=settings.provided.fetcher.timeout,
        transport=http_transport,
    )

    backend_cache = providers.Factory(
        BackendCache,
        factory=backend_factory.provider,
    )

    archive_reader = providers.Factory(
        ZipArchiveReader,
        block_size=settings.provided.fetcher.block_size,
        workers=settings.provided.fetcher.archive_workers,
    )

    show_progress = providers.Callable(
        _override_or,
        cli_args.progress,
        settings.provided.output.progress,
    )

    error_policy = providers.Callable(
        ErrorPolicy,
        providers.Callable(
            _override_or,
            cli_args.on_error,
            settings.provided.output.on_error,
        ),
    )

    metadata_service = providers.Factory(
        MetadataFetchService,
        backend_cache_factory=backend_cache.provider,
        archive_reader_factory=archive_reader.provider,
        metadata_pattern=settings.provided.fetcher.metadata_pattern,
        concurrent_fetches=settings.provided.fetcher.concurrent_fetches,
        show_progress=show_progress,
    )
