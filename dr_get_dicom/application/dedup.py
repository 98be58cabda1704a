"""Deduplication of series collections belonging to the same session."""

import logging
import posixpath
import re
from typing import Optional

from .domain import SeenSet

# a series collection carries a three-digit numeric prefix, e.g. "002-t1_mprage"
_SERIES_PATTERN = re.compile(r"[0-9]{3}-")


def session_key(name: str) -> Optional[str]:
    """
    Returns the session collection a series collection belongs to, or None
    when the name has no series subdivision.
    """
    if not _SERIES_PATTERN.search(name):
        return None
    return posixpath.dirname(name)


class CollectionDeduplicator:
    """Lets through at most one series collection per session."""

    def __init__(self, seen: SeenSet):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.seen = seen

    def admit(self, name: str) -> bool:
        """Decides whether a collection name is forwarded downstream."""
        key = session_key(name)
        if key is None:
            return True
        if self.seen.add_if_absent(key):
            return True
        self.logger.debug(f"Session {key} already dispatched, dropping {name}")
        return False
