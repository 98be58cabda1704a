"""Pytest configuration and shared fakes for the dr_get_dicom tests."""

import asyncio
import io
import tarfile
from pathlib import Path

import pytest

from dr_get_dicom.application.domain import Catalog
from dr_get_dicom.application.exceptions import CatalogQueryError, TransferError

DATE = "20240101"


class FakeCatalog(Catalog):
    """An in-memory catalog answering the two pipeline queries."""

    def __init__(
        self,
        collections=(),
        files=None,
        blobs=None,
        failing=(),
        scan_error_after=None,
        gates=None,
    ):
        self.collections = list(collections)
        self.files = files or {}
        self.blobs = blobs or {}
        self.failing = set(failing)
        self.scan_error_after = scan_error_after
        self.gates = gates or {}
        self.queries = []
        self.fetched = []

    async def list_matching(self, query):
        self.queries.append(query)
        if query.startswith("SELECT COLL_NAME WHERE"):
            for i, name in enumerate(self.collections):
                if i == self.scan_error_after:
                    raise CatalogQueryError(query, 1, "connection lost")
                await asyncio.sleep(0)
                yield name
            return

        collection = query.split("'")[1]
        rows = self.files.get(collection)
        if rows is None:
            raise CatalogQueryError(query, 4, "SYS_SOCK_READ_ERR")
        for row in rows:
            await asyncio.sleep(0)
            yield row

    async def fetch(self, remote_name, local_path):
        await asyncio.sleep(0)
        gate = self.gates.get(remote_name)
        if gate is not None:
            await gate.wait()
        if remote_name in self.failing:
            raise TransferError(remote_name, 3, "USER_FILE_DOES_NOT_EXIST")
        self.fetched.append(remote_name)
        Path(local_path).write_bytes(self.blobs.get(remote_name, b"DICM"))


def _write_tarball(path: Path, entries):
    """Writes a gzipped tarball; entries ending with '/' are directories."""
    with tarfile.open(path, "w:gz") as archive:
        for name, *rest in entries:
            info = tarfile.TarInfo(name.rstrip("/"))
            if name.endswith("/"):
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                archive.addfile(info)
                continue
            data = rest[0] if rest else name.encode()
            info.size = len(data)
            info.mode = rest[1] if len(rest) > 1 else 0o644
            archive.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def date():
    return DATE


@pytest.fixture
def fake_catalog():
    """Returns the FakeCatalog class for building catalogs per test."""
    return FakeCatalog


@pytest.fixture
def make_tarball():
    return _write_tarball
