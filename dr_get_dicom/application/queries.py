"""Catalog query strings issued by the pipeline."""

#: Marker printed by the catalog when a query matches nothing.
NO_ROWS_MARKER = "CAT_NO_ROWS_FOUND"


def collections_on_date(namespace: str, date: str) -> str:
    """Selects every collection below the namespace whose name holds the date."""
    return f"SELECT COLL_NAME WHERE COLL_NAME LIKE '{namespace}/%{date}%'"


def files_in_collection(collection: str) -> str:
    """Selects the data objects directly inside one collection."""
    return f"SELECT COLL_NAME,DATA_NAME WHERE COLL_NAME = '{collection}'"
