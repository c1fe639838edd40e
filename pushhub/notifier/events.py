"""
PushHub Transition Events
Reports subscriber state transitions for operational monitoring
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional, List

logger = logging.getLogger(__name__)


class TransitionKind(PyEnum):
    """Subscriber state transition"""
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    PENDING = "pending"        # idle -> pending (publish)
    RETRY = "retry"            # pending/retrying -> retrying
    SUSPEND = "suspend"        # retrying -> idle (gave up for now)
    TERMINATE = "terminate"    # retrying -> terminated
    VITAL = "vital"            # delivered, back to idle


@dataclass
class TransitionEvent:
    """Transition event structure"""
    kind: TransitionKind
    callback_url: str = ""
    nickname: str = ""
    subscriber_id: Optional[int] = None
    details: dict = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
        if self.details is None:
            self.details = {}


class EventNotifier(ABC):
    """Base class for transition notifications"""

    @abstractmethod
    def notify(self, event: TransitionEvent) -> None:
        """Publish a transition event"""
        pass


class LoggingEventNotifier(EventNotifier):
    """Write transition events to the application log"""

    INFO_KINDS = {
        TransitionKind.SUBSCRIBE,
        TransitionKind.UNSUBSCRIBE,
        TransitionKind.TERMINATE,
    }

    def notify(self, event: TransitionEvent) -> None:
        level = logging.INFO if event.kind in self.INFO_KINDS else logging.DEBUG
        logger.log(level, self.format(event))

    @staticmethod
    def format(event: TransitionEvent) -> str:
        """Human readable event line"""
        target = f"[{event.callback_url}] ({event.nickname})"
        details = event.details

        if event.kind == TransitionKind.SUBSCRIBE:
            return f"구독 완료 {target}"
        if event.kind == TransitionKind.UNSUBSCRIBE:
            return f"구독 해지 완료 {target}"
        if event.kind == TransitionKind.PENDING:
            return f"전송 대기 표시 {target}"
        if event.kind == TransitionKind.RETRY:
            return (
                f"전송 실패: {details.get('attempt')}회차 재시도 예정 {target} "
                f"- {details.get('next_attempt_at')}"
            )
        if event.kind == TransitionKind.SUSPEND:
            return f"전송 실패: 다음 발행까지 전송 중단 {target}"
        if event.kind == TransitionKind.TERMINATE:
            return f"전송 실패: 구독 종료 처리 {target}"
        return f"전송 정상 확인 {target}"


class MemoryEventNotifier(EventNotifier):
    """Keep events in memory (for development/testing)"""

    def __init__(self):
        self.events: List[TransitionEvent] = []

    def notify(self, event: TransitionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[TransitionKind]:
        return [event.kind for event in self.events]


# Notifier helper functions
_notifier: Optional[EventNotifier] = None


def get_notifier() -> EventNotifier:
    """Get the configured transition notifier"""
    global _notifier
    if _notifier is None:
        _notifier = LoggingEventNotifier()
    return _notifier


def set_notifier(notifier: EventNotifier) -> None:
    """Replace the process-wide transition notifier"""
    global _notifier
    _notifier = notifier
