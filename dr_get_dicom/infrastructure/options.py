"""
Pydantic model validating the options of a retrieval run.

The model is the strict contract between the configuration sources (the
Dynaconf settings and the command line) and the application, so that a bad
value is caught before any query is issued.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..application.exceptions import ConfigurationError


class RetrieverOptions(BaseModel):
    """The validated options of one run."""

    date: str = Field(pattern=r"^[0-9]{8}$")
    destination: Path
    namespace: str = "/rdm/di/dccn"
    collections: List[str] = Field(default_factory=list)
    workers: int = Field(default=4, ge=1)
    transfer_attempts: int = Field(default=1, ge=1)
    iquest: str = "iquest"
    iget: str = "iget"
    sync_tool: str = "irsync"

    @classmethod
    def from_sources(
        cls, settings: Any, cli_args: Optional[Dict[str, Any]] = None
    ) -> "RetrieverOptions":
        """
        Merges the settings sections with the command-line values, the
        latter taking precedence when given.

        Raises:
            ConfigurationError: If a value does not validate.
        """
        retriever = settings.get("retriever", {})
        irods = settings.get("irods", {})
        merged = {
            "namespace": retriever.get("namespace"),
            "collections": retriever.get("collections"),
            "workers": retriever.get("workers"),
            "destination": retriever.get("destination"),
            "transfer_attempts": retriever.get("transfer_attempts"),
            "iquest": irods.get("iquest"),
            "iget": irods.get("iget"),
            "sync_tool": irods.get("sync_tool"),
        }
        for key, value in (cli_args or {}).items():
            if key in cls.model_fields:
                merged[key] = value

        try:
            return cls.model_validate(
                {k: v for k, v in merged.items() if v is not None}
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid options: {e}") from e
