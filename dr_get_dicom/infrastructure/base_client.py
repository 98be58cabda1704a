"""Base class for clients driving the iRODS icommands."""

import asyncio
import logging
import shutil
from typing import List

from ..application.exceptions import ConfigurationError


class BaseClient:
    """A base client that resolves and launches command-line tools."""

    def __init__(self, *executables: str):
        """
        Initializes the base client.

        Args:
            executables: The names or paths of the tools the client runs.

        Raises:
            ConfigurationError: If an executable name is empty.
        """

        for executable in executables:
            if not executable or not executable.strip():
                raise ConfigurationError(
                    f"An executable for {self.__class__.__name__} is not "
                    f"configured. Please check your config files."
                )

        self.logger = logging.getLogger(self.__class__.__name__)

    def _warn_if_missing(self, executable: str):
        if shutil.which(executable) is None:
            self.logger.warning(f"{executable} not found on PATH")

    async def _spawn(self, args: List[str]) -> asyncio.subprocess.Process:
        """Starts a process with piped output streams."""
        self.logger.debug(f"Running {' '.join(args)}")
        return await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def _terminate(self, process: asyncio.subprocess.Process):
        """Kills a process that is still running and reaps it."""
        if process.returncode is None:
            process.kill()
        await process.wait()
