"""iRODS icommands implementation of the Catalog port."""

import asyncio
import re
from pathlib import Path
from typing import AsyncGenerator

from ..application.domain import Catalog
from ..application.exceptions import CatalogQueryError, TransferError
from ..application.queries import NO_ROWS_MARKER

from .base_client import BaseClient
from .decorators import retry_on_transfer_error

_SELECT_CLAUSE = re.compile(r"^\s*SELECT\s+(.+?)\s+WHERE\s", re.IGNORECASE)


def _output_format(query: str) -> str:
    """
    Builds the iquest format string for a query, one ``%s`` per selected
    column joined with ``/`` so that rows read as catalog paths.
    """
    match = _SELECT_CLAUSE.match(query)
    columns = match.group(1).split(",") if match else [""]
    return "/".join(["%s"] * len(columns))


class IrodsCatalog(BaseClient, Catalog):
    """A catalog backed by the ``iquest`` and ``iget`` icommands."""

    def __init__(
        self,
        iquest: str = "iquest",
        iget: str = "iget",
        transfer_attempts: int = 1,
    ):
        """Initializes the catalog adapter."""
        super().__init__(iquest, iget)
        self.iquest = iquest
        self.iget = iget
        self.transfer_attempts = transfer_attempts
        self._warn_if_missing(iquest)
        self._warn_if_missing(iget)

    async def list_matching(self, query: str) -> AsyncGenerator[str, None]:
        """
        Streams the rows of a GenQuery as they are printed by ``iquest``.

        A query matching nothing yields no rows and is not an error.

        Args:
            query: A GenQuery string, e.g. ``SELECT COLL_NAME WHERE ...``.

        Yields:
            str: One catalog name per result row.

        Raises:
            CatalogQueryError: If ``iquest`` cannot start or exits non-zero.
        """

        args = [self.iquest, "--no-page", _output_format(query), query]
        try:
            process = await self._spawn(args)
        except OSError as e:
            raise CatalogQueryError(query, -1, str(e)) from e

        no_rows = False
        try:
            async for raw in process.stdout:
                line = raw.decode(errors="replace").rstrip("\r\n")
                if not line:
                    continue
                if NO_ROWS_MARKER in line:
                    no_rows = True
                    continue
                yield line
        except (asyncio.CancelledError, GeneratorExit):
            await self._terminate(process)
            raise

        stderr = (await process.stderr.read()).decode(errors="replace")
        status = await process.wait()

        diagnostic = stderr.strip()
        for line in diagnostic.splitlines():
            self.logger.debug(f"iquest: {line}")

        if status != 0 and not (no_rows or NO_ROWS_MARKER in diagnostic):
            raise CatalogQueryError(query, status, diagnostic)

    async def _iget(self, remote_name: str, local_path: Path):
        """Runs a single ``iget`` and checks its exit status."""
        args = [self.iget, "-f", remote_name, str(local_path)]
        try:
            process = await self._spawn(args)
        except OSError as e:
            raise TransferError(remote_name, -1, str(e)) from e

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        if process.returncode != 0:
            raise TransferError(
                remote_name,
                process.returncode,
                stderr.decode(errors="replace").strip(),
            )

    async def fetch(self, remote_name: str, local_path: Path):
        """
        Downloads a data object, overwriting any local copy.

        This is the public method that fulfills the Catalog port contract.
        Transfers are attempted ``transfer_attempts`` times.

        Raises:
            TransferError: If the last attempt exits with a non-zero status.
        """
        transfer = retry_on_transfer_error(self.transfer_attempts)(self._iget)
        await transfer(remote_name, local_path)
