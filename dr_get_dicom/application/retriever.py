"""Retrieval of selected data objects into the local date-keyed tree."""

import asyncio
import logging
from pathlib import Path

from .domain import (
    ArchiveKind,
    Artifact,
    Catalog,
    DownloadedObject,
    Extractor,
    RemoteObject,
)
from .exceptions import DirectoryCreationError, PathResolutionError


def resolve_local_path(remote: RemoteObject, date: str, root: Path) -> Path:
    """
    Maps a remote name onto the local tree ``<root>/<date>/...``.

    Everything following the date marker in the remote name is kept. A single
    DICOM file is moved up one level so that files of a session sit at the
    session level rather than in a per-series folder.

    Raises:
        PathResolutionError: If the date does not occur in the remote name.
    """

    i = remote.name.find(date)
    if i < 0:
        raise PathResolutionError(f"unknown path: {remote.name}")

    relative = remote.name[i + len(date):].lstrip("/")
    local = root / date / relative

    if remote.kind is ArchiveKind.PLAIN_FILE:
        local = local.parent.parent / local.name

    return local


class Retriever:
    """Downloads one data object and turns it into the final artifact."""

    def __init__(
        self,
        catalog: Catalog,
        extractor: Extractor,
        date: str,
        destination: Path,
    ):
        """Initializes the retriever with its ports and the local layout."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.catalog = catalog
        self.extractor = extractor
        self.date = date
        self.destination = Path(destination)

    async def _ensure_directory(self, directory: Path):
        try:
            await asyncio.to_thread(
                directory.mkdir, mode=0o755, parents=True, exist_ok=True
            )
        except OSError as e:
            raise DirectoryCreationError(
                f"cannot create dir: {directory}"
            ) from e

    async def retrieve(self, remote: RemoteObject) -> Artifact:
        """
        Fetches a remote object and extracts the artifact from it.

        Args:
            remote: The data object chosen by the file selector.

        Returns:
            The artifact on local disk.

        Raises:
            PathResolutionError: If the local path cannot be derived.
            DirectoryCreationError: If the local directory cannot be made.
            TransferError: If the fetch fails.
            ArchiveOpenError, EmptyArchiveError: If extraction fails.
        """

        local = resolve_local_path(remote, self.date, self.destination)
        await self._ensure_directory(local.parent)

        self.logger.debug(f"{remote.name} -> {local}")
        await self.catalog.fetch(remote.name, local)

        return await self.extractor.extract(
            DownloadedObject(remote=remote, path=local)
        )
