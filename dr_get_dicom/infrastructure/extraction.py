"""
Infrastructure adapter turning downloaded data objects into DICOM artifacts.
"""

import asyncio
import gzip
import logging
import os
import posixpath
import shutil
import tarfile
import zlib
from pathlib import Path

from ..application.domain import (
    ArchiveKind,
    Artifact,
    DownloadedObject,
    Extractor,
)
from ..application.exceptions import (
    ArchiveOpenError,
    ArtifactWriteError,
    EmptyArchiveError,
)

#: Name of the companion file describing how to sync the full dataset.
INSTRUCTION_FILE = "cmd.sh"

# raised by a bad gzip header or a truncated stream
_STREAM_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)


class DicomExtractor(Extractor):
    """
    An adapter that implements the Extractor port for the three shapes a
    DICOM data object can have in the repository.

    A zip file is a complete session bundle and is kept. A single DICOM file
    is kept too. A gzipped tarball holds a whole series, of which only the
    first regular file is extracted; the tarball is removed afterwards.

    Next to single files and extracted files a ``cmd.sh`` is left behind
    with the sync command that fetches the rest of the session or series.
    """

    def __init__(self, sync_tool: str = "irsync", chunk_size: int = 65536):
        """Initializes the extractor."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.sync_tool = sync_tool
        self.chunk_size = chunk_size
        self._handlers = {
            ArchiveKind.ZIP_ARCHIVE: self._keep_bundle,
            ArchiveKind.PLAIN_FILE: self._keep_single_file,
            ArchiveKind.COMPRESSED_ARCHIVE: self._extract_first_member,
        }

    def write_sync_instruction(self, remote_dir: str, local_dir: Path):
        """Writes the command syncing ``remote_dir`` into ``local_dir``.

        The file is only left for a human or a later job to run. Failing to
        write it does not fail the retrieval.
        """
        path = local_dir / INSTRUCTION_FILE
        command = f"{self.sync_tool} -r i:{remote_dir} {local_dir}\n"
        try:
            path.write_text(command)
            path.chmod(0o755)
        except OSError as e:
            self.logger.warning(f"cannot write command: {e}")

    def _keep_bundle(self, downloaded: DownloadedObject) -> Artifact:
        return Artifact(path=downloaded.path)

    def _keep_single_file(self, downloaded: DownloadedObject) -> Artifact:
        session = posixpath.dirname(posixpath.dirname(downloaded.remote.name))
        self.write_sync_instruction(session, downloaded.path.parent)
        return Artifact(path=downloaded.path)

    def _first_regular_member(self, archive: tarfile.TarFile, source: Path):
        for member in archive:
            if member.isdir():
                continue
            if member.isreg():
                return member
        raise EmptyArchiveError(f"empty archive: {source}")

    def _copy_member(
        self, archive: tarfile.TarFile, member: tarfile.TarInfo, target: Path
    ):
        """Streams a member to the target, leaving nothing behind on failure."""
        reader = archive.extractfile(member)
        try:
            out_fh = open(target, "wb")
        except OSError as e:
            raise ArtifactWriteError(f"cannot write {target}: {e}") from e

        try:
            with out_fh:
                shutil.copyfileobj(reader, out_fh, self.chunk_size)
            os.chmod(target, member.mode)
        except _STREAM_ERRORS:
            target.unlink(missing_ok=True)
            raise
        except OSError as e:
            target.unlink(missing_ok=True)
            raise ArtifactWriteError(f"cannot write {target}: {e}") from e

    def _extract_first_member(self, downloaded: DownloadedObject) -> Artifact:
        """Streams the first regular file out of a gzipped tarball."""
        source = downloaded.path

        try:
            archive = tarfile.open(source, mode="r|gz")
        except (*_STREAM_ERRORS, OSError) as e:
            raise ArchiveOpenError(f"cannot open {source}: {e}") from e

        try:
            with archive:
                member = self._first_regular_member(archive, source)
                target = source.parent / posixpath.basename(member.name)
                self._copy_member(archive, member, target)
        except _STREAM_ERRORS as e:
            raise ArchiveOpenError(f"cannot read {source}: {e}") from e
        finally:
            source.unlink(missing_ok=True)

        self.logger.debug(f"DICOM file extracted: {target}")

        series = posixpath.dirname(downloaded.remote.name)
        self.write_sync_instruction(series, source.parent)
        return Artifact(path=target)

    async def extract(self, downloaded: DownloadedObject) -> Artifact:
        """
        Returns the artifact for a downloaded object.

        This public method fulfills the Extractor port contract. The handler
        is chosen once from the object's archive kind, and the blocking file
        work runs in a separate thread to keep the event loop responsive.

        Raises:
            ArchiveOpenError: If a tarball is malformed or truncated.
            EmptyArchiveError: If a tarball holds no regular file.
            ArtifactWriteError: If the extracted file cannot be written.
        """
        handler = self._handlers[downloaded.remote.kind]
        return await asyncio.to_thread(handler, downloaded)
