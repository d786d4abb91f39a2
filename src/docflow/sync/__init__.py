"""Change propagation and migration.

Public API:
    ChangeNotificationBus: In-process publish/subscribe for change signals.
    StorageChangeWatcher: Cross-context signal over the shared local key.
    PollingReconciler: Fixed-interval re-fetch safety net.
    MigrationCoordinator: Local-to-remote copy on session start.
    LiveProjectList, LiveProjectDetail: Self-refreshing views.
"""

from docflow.sync.bus import ChangeChannel, ChangeEvent, ChangeNotificationBus, Subscription
from docflow.sync.live import LiveProjectDetail, LiveProjectList
from docflow.sync.migration import MigrationCoordinator, MigrationReport
from docflow.sync.reconciler import PollingReconciler
from docflow.sync.watcher import StorageChangeWatcher

__all__ = [
    "ChangeChannel",
    "ChangeEvent",
    "ChangeNotificationBus",
    "Subscription",
    "StorageChangeWatcher",
    "PollingReconciler",
    "MigrationCoordinator",
    "MigrationReport",
    "LiveProjectList",
    "LiveProjectDetail",
]
