"""Query functions for the local key-value store."""

from docflow.database.queries.local_storage import (
    EntryStamp,
    get_entry_stamp,
    get_value,
    set_value,
)

__all__ = [
    "EntryStamp",
    "get_entry_stamp",
    "get_value",
    "set_value",
]
