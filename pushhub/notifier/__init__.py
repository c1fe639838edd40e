"""
상태 전이 알림 모듈
"""

from .events import (
    TransitionKind,
    TransitionEvent,
    EventNotifier,
    LoggingEventNotifier,
    MemoryEventNotifier,
    get_notifier,
    set_notifier,
)

__all__ = [
    "TransitionKind",
    "TransitionEvent",
    "EventNotifier",
    "LoggingEventNotifier",
    "MemoryEventNotifier",
    "get_notifier",
    "set_notifier",
]
