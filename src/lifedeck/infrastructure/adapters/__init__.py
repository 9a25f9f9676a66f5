# Infrastructure Adapters Package
from .json_store import JsonSnapshotStore, MemorySnapshotStore
from .notifications import LoggingNotificationScheduler
from .personalization import HttpPersonalizationService
from .subscriptions import StaticSubscriptionProvider

__all__ = [
    "JsonSnapshotStore",
    "MemorySnapshotStore",
    "LoggingNotificationScheduler",
    "HttpPersonalizationService",
    "StaticSubscriptionProvider",
]
