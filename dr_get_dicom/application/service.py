"""
The core application service and pipeline, containing pure business logic.

This module defines the retrieval pipeline (RetrievalPipeline), which wires
the collection scan, the file selection pool and the retrieval pool together
with bounded queues, and the main orchestrator (RetrieverService) that runs
one pipeline per repository collection.
"""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncGenerator, Callable, Iterable, List

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .dedup import CollectionDeduplicator
from .domain import Artifact, Catalog
from .exceptions import CatalogQueryError, RetrieverError
from .queries import collections_on_date
from .retriever import Retriever
from .selector import FileSelector

logger = logging.getLogger(__name__)

# end-of-stream marker, one per downstream consumer
_CLOSED = object()


class RetrievalPipeline:
    """
    Discovers, selects and retrieves the DICOM data of one date.

    The pipeline has three stages running concurrently:

    1. a scan task streaming collection names from the catalog through the
       deduplicator into the collection queue;
    2. ``workers`` selector tasks turning collections into data objects;
    3. ``workers`` retrieval tasks turning data objects into artifacts.

    Queues are bounded so that no stage runs far ahead of the next. The
    output queue of a pool is closed only after every worker of that pool has
    returned.
    """

    def __init__(
        self,
        catalog: Catalog,
        deduplicator: CollectionDeduplicator,
        selector: FileSelector,
        retriever: Retriever,
        date: str,
        workers: int = 4,
    ):
        """Initializes the pipeline with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.catalog = catalog
        self.deduplicator = deduplicator
        self.selector = selector
        self.retriever = retriever
        self.date = date
        self.workers = workers

    async def _scan(self, namespace: str, collections: asyncio.Queue):
        """Streams matching collection names into the collection queue."""
        query = collections_on_date(namespace, self.date)
        self.logger.debug(query)
        try:
            async with contextlib.aclosing(
                self.catalog.list_matching(query)
            ) as names:
                async for name in names:
                    if self.deduplicator.admit(name):
                        await collections.put(name)
        except CatalogQueryError as e:
            self.logger.error(f"Collection scan of {namespace} failed: {e}")
        self.logger.debug(f"Collection scan of {namespace} finished")

    async def _select(self, collections: asyncio.Queue, files: asyncio.Queue):
        while (collection := await collections.get()) is not _CLOSED:
            async with contextlib.aclosing(
                self.selector.select(collection)
            ) as selected:
                async for remote in selected:
                    await files.put(remote)

    async def _retrieve(self, files: asyncio.Queue, artifacts: asyncio.Queue):
        while (remote := await files.get()) is not _CLOSED:
            try:
                artifact = await self.retriever.retrieve(remote)
            except RetrieverError as e:
                self.logger.error(f"Dropping {remote.name}: {e}")
                continue
            await artifacts.put(artifact)

    async def _close_after(
        self, pool: List[asyncio.Task], queue: asyncio.Queue, consumers: int
    ):
        """
        Waits until every worker of a pool has returned, then closes the
        queue the pool was feeding. A crashed worker is re-raised afterwards.
        """
        done, _ = await asyncio.wait(pool)
        for _ in range(consumers):
            await queue.put(_CLOSED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def run(self, namespace: str) -> AsyncGenerator[Artifact, None]:
        """Yields the artifacts retrieved from one collection namespace.

        The stream ends once every stage has drained. Artifacts arrive in no
        particular order. Closing the generator early cancels all stages.

        Args:
            namespace: The catalog namespace to scan, e.g.
                ``/rdm/di/dccn/DAC_3055010.01_490/raw``.

        Yields:
            Artifact: A file materialized on local disk.
        """

        capacity = 2 * self.workers
        collections = asyncio.Queue(maxsize=capacity)
        files = asyncio.Queue(maxsize=capacity)
        artifacts = asyncio.Queue(maxsize=self.workers)

        scanner = asyncio.create_task(self._scan(namespace, collections))
        selectors = [
            asyncio.create_task(self._select(collections, files))
            for _ in range(self.workers)
        ]
        retrievers = [
            asyncio.create_task(self._retrieve(files, artifacts))
            for _ in range(self.workers)
        ]
        closers = [
            asyncio.create_task(
                self._close_after([scanner], collections, self.workers)
            ),
            asyncio.create_task(
                self._close_after(selectors, files, self.workers)
            ),
            asyncio.create_task(self._close_after(retrievers, artifacts, 1)),
        ]
        tasks = [scanner, *selectors, *retrievers, *closers]

        try:
            while (artifact := await artifacts.get()) is not _CLOSED:
                yield artifact
            await asyncio.gather(*closers)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


class RetrieverService:
    """Orchestrates the retrieval by running one pipeline per collection."""

    def __init__(
        self,
        pipeline_factory: Callable[[], RetrievalPipeline],
        namespace: str,
        collections: Iterable[str],
    ):
        """Initializes the service with a factory for fresh pipelines."""
        self.pipeline_factory = pipeline_factory
        self.namespace = namespace
        self.collections = list(collections)

    def _collection_namespace(self, collection: str) -> str:
        return f"{self.namespace.rstrip('/')}/{collection}/raw"

    async def run(self) -> List[Path]:
        """Executes the retrieval for all configured collections."""

        retrieved = []
        with logging_redirect_tqdm():
            with tqdm(desc="Retrieved", unit="file") as progress_bar:
                for collection in self.collections:
                    logger.debug(f"checking {collection} ...")
                    pipeline = self.pipeline_factory()
                    ns = self._collection_namespace(collection)
                    async for artifact in pipeline.run(ns):
                        logger.info(str(artifact.path))
                        retrieved.append(artifact.path)
                        progress_bar.update(1)

        logger.info(f"All collections checked, {len(retrieved)} files retrieved.")
        return retrieved
