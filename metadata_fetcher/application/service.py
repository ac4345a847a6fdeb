"""
The core application service and pipeline, containing pure business logic.

This module defines the main orchestrator (MetadataFetchService) that fans
out one task per archive locator and yields results as they complete, and
the pipeline (MetadataExtractionPipeline) that handles a single locator.
"""

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Callable, List, Optional, Pattern, Union

from tqdm.asyncio import tqdm_asyncio
from tqdm.contrib.logging import logging_redirect_tqdm

from .backends import BackendCache
from .domain import (
    ArchiveLocator,
    ArchiveReader,
    FetchStage,
    MetadataResult,
)
from .exceptions import FetchError, MetadataFetcherError
from .metadata import DEFAULT_METADATA_PATTERN, compile_pattern, decode_metadata, find_entry

logger = logging.getLogger(__name__)


class MetadataExtractionPipeline:
    """Encapsulates the full extraction pipeline for a single archive."""

    def __init__(
        self,
        backends: BackendCache,
        archive_reader: ArchiveReader,
        metadata_pattern: Union[str, Pattern] = DEFAULT_METADATA_PATTERN,
    ):
        """Initializes the pipeline with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.backends = backends
        self.archive_reader = archive_reader
        self.metadata_pattern = compile_pattern(metadata_pattern)

    async def _extract(self, locator: ArchiveLocator, progress: List[FetchStage]) -> str:
        """Runs the steps in order, recording each stage once reached."""

        # Step 1: Resolve the backend shared by the locator's origin
        backend = self.backends.resolve(locator)
        progress.append(FetchStage.BACKEND_RESOLVED)

        # Step 2: Open the archive through range reads
        directory = await self.archive_reader.open(backend, locator.path)
        progress.append(FetchStage.ARCHIVE_OPENED)

        # Step 3: Find the first entry matching the metadata pattern
        index = find_entry(directory.names, self.metadata_pattern)
        progress.append(FetchStage.ENTRY_LOCATED)
        self.logger.debug(f"{locator}: using entry {directory.names[index]}")

        # Step 4: Read and decode the entry
        data = await self.archive_reader.read_entry(directory, index)
        progress.append(FetchStage.ENTRY_READ)
        return decode_metadata(data)

    async def run(self, locator: ArchiveLocator) -> MetadataResult:
        """
        Extracts the metadata text of one archive.

        Never raises for task-scoped failures: they are returned as a
        MetadataResult carrying a FetchError, tagged with the stage the
        task was trying to reach.

        Args:
            locator: The archive to process.
        """

        self.logger.info(f"Starting pipeline for {locator}...")
        progress = [FetchStage.PENDING]
        stages = list(FetchStage)

        try:
            text = await self._extract(locator, progress)
        except Exception as e:
            if isinstance(e, MetadataFetcherError):
                self.logger.error(f"Failed to process {locator}: {e}")
            else:
                self.logger.exception(f"Unexpected error processing {locator}")
            failed_stage = stages[stages.index(progress[-1]) + 1]
            return MetadataResult(
                locator=locator, error=FetchError(locator, failed_stage, e)
            )

        self.logger.info(f"Successfully extracted metadata from {locator}")
        return MetadataResult(locator=locator, text=text)


class MetadataFetchService:
    """Orchestrates metadata extraction by running pipelines concurrently."""

    def __init__(
        self,
        backend_cache_factory: Callable[[], BackendCache],
        archive_reader_factory: Callable[[], ArchiveReader],
        metadata_pattern: Union[str, Pattern] = DEFAULT_METADATA_PATTERN,
        concurrent_fetches: int = 0,
        show_progress: bool = False,
    ):
        """
        Initializes the service.

        The factories are called once per run, so every run gets its own
        backend cache and archive worker pool, both released when it ends.
        A `concurrent_fetches` of 0 leaves the number of tasks unbounded.
        """
        self.backend_cache_factory = backend_cache_factory
        self.archive_reader_factory = archive_reader_factory
        self.metadata_pattern = compile_pattern(metadata_pattern)
        self.concurrent_fetches = concurrent_fetches
        self.show_progress = show_progress

    async def _run_pipeline_with_semaphore(
        self,
        pipeline: MetadataExtractionPipeline,
        locator: ArchiveLocator,
        semaphore: Optional[asyncio.Semaphore],
    ) -> MetadataResult:
        """Wrapper to acquire a semaphore, if any, before running a pipeline."""
        if semaphore is None:
            return await pipeline.run(locator)
        async with semaphore:
            return await pipeline.run(locator)

    async def run_all(
        self, locators: List[ArchiveLocator]
    ) -> AsyncIterator[MetadataResult]:
        """
        Processes all locators, yielding each result as soon as it is ready.

        Results come out in completion order, not input order. A failing
        locator yields a failed MetadataResult and does not affect the
        others.
        """

        logger.info(f"Fetching metadata for {len(locators)} archives")

        backends = self.backend_cache_factory()
        archive_reader = self.archive_reader_factory()
        pipeline = MetadataExtractionPipeline(
            backends, archive_reader, self.metadata_pattern
        )
        semaphore = (
            asyncio.Semaphore(self.concurrent_fetches)
            if self.concurrent_fetches > 0
            else None
        )
        tasks = [
            asyncio.create_task(
                self._run_pipeline_with_semaphore(pipeline, locator, semaphore)
            )
            for locator in locators
        ]

        redirect = (
            logging_redirect_tqdm() if self.show_progress else contextlib.nullcontext()
        )
        try:
            with redirect:
                for next_result in tqdm_asyncio.as_completed(
                    tasks,
                    total=len(tasks),
                    desc="Overall Progress",
                    unit="archive",
                    disable=not self.show_progress,
                ):
                    yield await next_result
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await archive_reader.aclose()
            await backends.aclose()
            logger.info(f"Closed {len(tasks)} tasks and their backends.")
