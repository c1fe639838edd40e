"""
공용 테스트 픽스처
"""

import random
import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from pushhub.database import SqlSubscriptionStore
from pushhub.dispatcher import Dispatcher
from pushhub.notifier import MemoryEventNotifier
from pushhub.subscription import BackoffPolicy, SubscriptionLifecycle


class RecordingDispatcher(Dispatcher):
    """등록된 작업을 기록만 하는 디스패처"""

    def __init__(self):
        self.jobs = []

    def enqueue(self, priority, job_kind, subscriber_id):
        self.jobs.append((priority, job_kind, subscriber_id))


class FakeClock:
    """수동으로 움직이는 시계"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store(tmp_path):
    """임시 SQLite 저장소"""
    return SqlSubscriptionStore(f"sqlite:///{tmp_path / 'pushhub.db'}")


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def notifier():
    return MemoryEventNotifier()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 12, 0, 0))


@pytest.fixture
def lifecycle(store, dispatcher, notifier, clock):
    policy = BackoffPolicy(max_retries=14, termination_days=60, jitter_max=30, rng=random.Random(1))
    return SubscriptionLifecycle(store, dispatcher, policy=policy, notifier=notifier, clock=clock)
