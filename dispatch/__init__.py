#Expose the high-level pipeline pieces:
#Candidate filtering (hard rules)
#Nearest-candidate selection
#Order state machine
#Dispatcher orchestrator (the lifecycle entry point)
#Retry scheduler, notification sinks, in-memory adapters

from .candidate_filter import filter_eligible_pharmacies, filter_eligible_riders
from .selection import rank_candidates, require_nearest, select_nearest
from .policy import DispatchPolicy, default_dispatch_policy
from .locks import InMemoryLockManager
from .repository import InMemoryOrderRepository, OrderRepository
from .scheduler import InMemoryRetryScheduler, RetryKind, RetryScheduler, RetryTask
from .notifications import (
    FanOutNotificationSink,
    Notification,
    NotificationSink,
    PushNotificationSink,
    RecordingNotificationSink,
    TargetType,
)
from .dispatcher import Dispatcher, PlaceOrderRequest, TransitionResult #the main entry point for the order lifecycle

__all__ = [
    "filter_eligible_pharmacies",
    "filter_eligible_riders",
    "rank_candidates",
    "require_nearest",
    "select_nearest",
    "DispatchPolicy",
    "default_dispatch_policy",
    "InMemoryLockManager",
    "InMemoryOrderRepository",
    "OrderRepository",
    "InMemoryRetryScheduler",
    "RetryKind",
    "RetryScheduler",
    "RetryTask",
    "FanOutNotificationSink",
    "Notification",
    "NotificationSink",
    "PushNotificationSink",
    "RecordingNotificationSink",
    "TargetType",
    "Dispatcher",
    "PlaceOrderRequest",
    "TransitionResult",
]
