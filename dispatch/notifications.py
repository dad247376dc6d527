#Purpose: The notification "adapter" used by the dispatcher.
#Sole responsibility: tell users, riders and vendors that something happened to an order.
#Encapsulates delivery details:
#in-memory recording (tests, simulation)
#push gateway over HTTP
#fan-out to several sinks
#The Django Notification-table sink lives in logistics.adapters.
#It should not contain dispatch rules.

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
import os
import threading
from typing import Iterable, List, Optional, Protocol

from dotenv import load_dotenv
import requests

# Example in .env:
# PUSH_GATEWAY_URL=https://push.internal.example/api/notify
# PUSH_GATEWAY_TIMEOUT=5
load_dotenv()

logger = logging.getLogger(__name__)


class TargetType(str, Enum):
    USER = "user"
    RIDER = "rider"
    VENDOR = "vendor"


@dataclass(frozen=True)
class Notification:
    target_type: TargetType
    target_id: str
    message: str
    related_order_id: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationSink(Protocol):
    def notify(
        self,
        target_type: TargetType,
        target_id: str,
        message: str,
        related_order_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        ...


class RecordingNotificationSink:
    """
    Keeps every notification in memory, in emission order.
    """

    def __init__(self):
        self.sent: List[Notification] = []
        self._guard = threading.Lock()

    def notify(self, target_type, target_id, message, related_order_id=None, reason=None) -> None:
        with self._guard:
            self.sent.append(Notification(TargetType(target_type), str(target_id), message, related_order_id, reason))

    def for_target(self, target_type: TargetType, target_id: str) -> List[Notification]:
        return [n for n in self.sent if n.target_type == target_type and n.target_id == str(target_id)]

    def for_order(self, order_id: str) -> List[Notification]:
        return [n for n in self.sent if n.related_order_id == order_id]


class PushNotificationSink:
    """
    POSTs each notification to a push gateway.

    Delivery is a side effect outside the order's consistency boundary:
    transport failures are logged and the lifecycle carries on.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.base_url = base_url or os.getenv("PUSH_GATEWAY_URL")
        self.timeout = timeout if timeout is not None else float(os.getenv("PUSH_GATEWAY_TIMEOUT", "5"))
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("Push gateway URL not set. Please set PUSH_GATEWAY_URL in the .env file.")

    def notify(self, target_type, target_id, message, related_order_id=None, reason=None) -> None:
        payload = {
            "target_type": TargetType(target_type).value,
            "target_id": str(target_id),
            "message": message,
            "order_id": related_order_id,
            "reason": reason,
        }
        try:
            response = self.session.post(self.base_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Push to %s %s failed: %s", payload["target_type"], payload["target_id"], e)


class FanOutNotificationSink:
    def __init__(self, sinks: Iterable[NotificationSink]):
        self.sinks = list(sinks)

    def notify(self, target_type, target_id, message, related_order_id=None, reason=None) -> None:
        for sink in self.sinks:
            sink.notify(target_type, target_id, message, related_order_id=related_order_id, reason=reason)
