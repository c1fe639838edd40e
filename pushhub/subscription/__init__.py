"""
구독자 생명주기 모듈
"""

from .models import (
    Idle,
    Pending,
    Retrying,
    Terminated,
    RetryState,
    Subscriber,
    IDLE,
    PENDING,
    TERMINATED,
)
from .backoff import BackoffPolicy, Retry, Suspend, Terminate
from .store import SubscriptionStore, StoreUnavailableError
from .lifecycle import SubscriptionLifecycle
from .delivery import Deliverer, DeliveryError, DeliveryJob

__all__ = [
    "Idle",
    "Pending",
    "Retrying",
    "Terminated",
    "RetryState",
    "Subscriber",
    "IDLE",
    "PENDING",
    "TERMINATED",
    "BackoffPolicy",
    "Retry",
    "Suspend",
    "Terminate",
    "SubscriptionStore",
    "StoreUnavailableError",
    "SubscriptionLifecycle",
    "Deliverer",
    "DeliveryError",
    "DeliveryJob",
]
