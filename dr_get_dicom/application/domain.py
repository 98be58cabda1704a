"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the retrieval pipeline operates on, together with the ports
implemented by the infrastructure layer.
"""

import dataclasses
import enum
import threading
from pathlib import Path

from abc import ABC, abstractmethod
from typing import AsyncGenerator, Set


# --- Domain Models ---

class ArchiveKind(enum.Enum):
    """The closed set of shapes a retrieved data object can take."""

    PLAIN_FILE = "plain"
    COMPRESSED_ARCHIVE = "tar.gz"
    ZIP_ARCHIVE = "zip"

    @classmethod
    def of(cls, name: str) -> "ArchiveKind":
        """Classifies a path purely by its suffix."""
        if name.endswith(".zip"):
            return cls.ZIP_ARCHIVE
        if name.endswith((".tar.gz", ".tgz")):
            return cls.COMPRESSED_ARCHIVE
        return cls.PLAIN_FILE


@dataclasses.dataclass(frozen=True)
class RemoteObject:
    """A data object in the catalog that was selected for retrieval."""

    name: str

    @property
    def kind(self) -> ArchiveKind:
        return ArchiveKind.of(self.name)


@dataclasses.dataclass(frozen=True)
class DownloadedObject:
    """
    A data object fetched to local disk, still in the shape it had in the
    catalog (possibly an archive).
    """

    remote: RemoteObject
    path: Path


@dataclasses.dataclass(frozen=True)
class Artifact:
    """The final local file produced for one session or series."""

    path: Path


class SeenSet:
    """A set of session keys with an atomic test-and-insert."""

    def __init__(self):
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    def add_if_absent(self, key: str) -> bool:
        """Inserts the key and returns True, or False if already present."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


# --- Ports (Interfaces) ---

class Catalog(ABC):
    """A port for the remote repository holding the raw data."""

    @abstractmethod
    def list_matching(self, query: str) -> AsyncGenerator[str, None]:
        """
        Lazily yields the names matching a catalog query.
        Raises CatalogQueryError if the query exits abnormally.
        """
        pass

    @abstractmethod
    async def fetch(self, remote_name: str, local_path: Path):
        """
        Fetches a data object to a local path.
        Raises TransferError on a non-zero exit status.
        """
        pass


class Extractor(ABC):
    """A port for turning a downloaded object into the final artifact."""

    @abstractmethod
    async def extract(self, downloaded: DownloadedObject) -> Artifact:
        """Keeps or unpacks a downloaded object."""
        pass
