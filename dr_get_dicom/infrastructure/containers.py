"""
Dependency Injection container for the dr_get_dicom component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from dependency_injector import containers, providers

from ..application.dedup import CollectionDeduplicator
from ..application.domain import Catalog, Extractor, SeenSet
from ..application.retriever import Retriever
from ..application.selector import FileSelector
from ..application.service import RetrievalPipeline, RetrieverService
from ..settings import settings

from .extraction import DicomExtractor
from .irods_client import IrodsCatalog
from .options import RetrieverOptions


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Object(settings)

    options = providers.Singleton(
        RetrieverOptions.from_sources,
        settings=config,
        cli_args=cli_args,
    )

    catalog: providers.Singleton[Catalog] = providers.Singleton(
        IrodsCatalog,
        iquest=options.provided.iquest,
        iget=options.provided.iget,
        transfer_attempts=options.provided.transfer_attempts,
    )

    extractor: providers.Factory[Extractor] = providers.Factory(
        DicomExtractor,
        sync_tool=options.provided.sync_tool,
    )

    # a fresh seen-set per pipeline run
    deduplicator = providers.Factory(
        CollectionDeduplicator,
        seen=providers.Factory(SeenSet),
    )

    selector = providers.Factory(FileSelector, catalog=catalog)

    retriever = providers.Factory(
        Retriever,
        catalog=catalog,
        extractor=extractor,
        date=options.provided.date,
        destination=options.provided.destination,
    )

    pipeline = providers.Factory(
        RetrievalPipeline,
        catalog=catalog,
        deduplicator=deduplicator,
        selector=selector,
        retriever=retriever,
        date=options.provided.date,
        workers=options.provided.workers,
    )

    retriever_service = providers.Factory(
        RetrieverService,
        pipeline_factory=pipeline.provider,
        namespace=options.provided.namespace,
        collections=options.provided.collections,
    )
