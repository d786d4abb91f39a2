"""Project store adapters.

Public API:
    ProjectStore: Contract shared by both adapters.
    LocalProjectStore: Whole-collection store on the device.
    RemoteProjectStore: Per-user cloud collection.
"""

from docflow.storage.base import ProjectStore
from docflow.storage.local import LocalProjectStore
from docflow.storage.remote import RemoteProjectStore

__all__ = [
    "ProjectStore",
    "LocalProjectStore",
    "RemoteProjectStore",
]
