"""Selection of the data objects to retrieve from a collection."""

import contextlib
import logging
from typing import AsyncIterator

from .domain import ArchiveKind, Catalog, RemoteObject
from .exceptions import CatalogQueryError
from .queries import NO_ROWS_MARKER, files_in_collection


class FileSelector:
    """
    Picks the data objects worth retrieving from one collection.

    Every zip file of a collection is a self-contained session bundle, so all
    of them are taken. Any other object (a tarball or a single IMA file) is
    one of many redundant copies in its series collection, so the first one
    is taken and the listing is abandoned.
    """

    def __init__(self, catalog: Catalog):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.catalog = catalog

    async def select(self, collection: str) -> AsyncIterator[RemoteObject]:
        """Yields the objects of the collection chosen for retrieval.

        Args:
            collection: The catalog name of the collection.

        Yields:
            RemoteObject: A data object to download.
        """

        query = files_in_collection(collection)
        self.logger.debug(query)

        try:
            async with contextlib.aclosing(
                self.catalog.list_matching(query)
            ) as results:
                async for line in results:
                    if NO_ROWS_MARKER in line:
                        continue
                    remote = RemoteObject(name=line)
                    yield remote
                    if remote.kind is not ArchiveKind.ZIP_ARCHIVE:
                        break
        except CatalogQueryError as e:
            self.logger.error(f"Cannot list files in {collection}: {e}")
