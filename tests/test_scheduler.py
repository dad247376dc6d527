from datetime import datetime, timedelta, timezone

import pytest
import requests

from dispatch import (
    DispatchPolicy,
    FanOutNotificationSink,
    InMemoryRetryScheduler,
    PushNotificationSink,
    RecordingNotificationSink,
    RetryKind,
    RetryTask,
    TargetType,
)
from orders import OrderStatus

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def task(order_id, seconds, attempt=1):
    return RetryTask(order_id, RetryKind.RIDER_ASSIGNMENT, T0 + timedelta(seconds=seconds), attempt, 3, OrderStatus.RIDER_ASSIGNMENT_PENDING)


def test_claim_due_returns_oldest_first_and_removes():
    scheduler = InMemoryRetryScheduler()
    scheduler.schedule(task("b", 10))
    scheduler.schedule(task("a", 10))
    scheduler.schedule(task("c", 5))
    scheduler.schedule(task("later", 100))

    claimed = scheduler.claim_due(T0 + timedelta(seconds=10))

    assert [t.order_id for t in claimed] == ["c", "a", "b"]
    assert scheduler.claim_due(T0 + timedelta(seconds=10)) == []
    assert [t.order_id for t in scheduler.all()] == ["later"]


def test_one_task_per_order():
    scheduler = InMemoryRetryScheduler()
    scheduler.schedule(task("o", 10, attempt=1))
    scheduler.schedule(task("o", 40, attempt=2))

    assert scheduler.pending("o").attempt == 2
    scheduler.cancel("o")
    assert scheduler.pending("o") is None
    scheduler.cancel("o")


def test_claim_respects_limit():
    scheduler = InMemoryRetryScheduler()
    for i in range(5):
        scheduler.schedule(task(f"o{i}", i))
    assert len(scheduler.claim_due(T0 + timedelta(minutes=1), limit=2)) == 2
    assert len(scheduler.all()) == 3


def test_backoff_grows_and_caps():
    policy = DispatchPolicy(retry_delay_seconds=30, retry_backoff_multiplier=2.0, max_retry_delay_seconds=100)
    assert [policy.retry_delay_for(n) for n in (1, 2, 3, 4)] == [30, 60, 100, 100]


@pytest.mark.parametrize("kwargs", [
    {"retry_delay_seconds": -1},
    {"retry_backoff_multiplier": 0.5},
    {"max_assignment_attempts": 0},
    {"pickup_proximity_m": 0},
])
def test_policy_validation(kwargs):
    with pytest.raises(ValueError):
        DispatchPolicy(**kwargs).validate()


class _FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class _FakeSession:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        return _FakeResponse(self.status_code)


def test_push_sink_posts_payload():
    session = _FakeSession()
    sink = PushNotificationSink(base_url="https://push.example/notify", timeout=2, session=session)

    sink.notify(TargetType.RIDER, "r1", "New delivery", related_order_id="o1", reason="rider_assigned")

    [(url, payload, timeout)] = session.posts
    assert url == "https://push.example/notify"
    assert payload == {
        "target_type": "rider",
        "target_id": "r1",
        "message": "New delivery",
        "order_id": "o1",
        "reason": "rider_assigned",
    }
    assert timeout == 2


def test_push_failures_are_logged_not_raised(caplog):
    sink = PushNotificationSink(base_url="https://push.example/notify", session=_FakeSession(503))
    sink.notify(TargetType.USER, "u1", "hello")
    assert "failed" in caplog.text


def test_push_sink_needs_a_url(monkeypatch):
    monkeypatch.delenv("PUSH_GATEWAY_URL", raising=False)
    with pytest.raises(ValueError):
        PushNotificationSink(session=_FakeSession())


def test_fan_out_reaches_every_sink():
    a, b = RecordingNotificationSink(), RecordingNotificationSink()
    FanOutNotificationSink([a, b]).notify(TargetType.VENDOR, "p1", "New order", related_order_id="o1")
    assert a.for_order("o1") and b.for_order("o1")
