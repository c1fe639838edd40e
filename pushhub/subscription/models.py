"""
푸시 구독자 도메인 모델

재시도 상태는 Idle / Pending / Retrying / Terminated 네 가지로 구분한다.
정수 인코딩(0, 1, 2 이상, -1)은 저장소 어댑터에서만 사용한다.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Optional, Union


def utcnow() -> datetime:
    """현재 UTC 시각 (tzinfo 없음)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class Idle:
    """전송할 업데이트 없음"""
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Pending:
    """업데이트 있음, 아직 전송 시도 전"""
    name: ClassVar[str] = "pending"

    @property
    def attempt(self) -> int:
        return 1


@dataclass(frozen=True)
class Retrying:
    """연속 전송 실패 중"""
    failures: int
    name: ClassVar[str] = "retrying"

    def __post_init__(self):
        if self.failures < 1:
            raise ValueError(f"failures must be positive, got {self.failures}")

    @property
    def attempt(self) -> int:
        """다음 시도의 회차 (실패 횟수 + 1)"""
        return self.failures + 1


@dataclass(frozen=True)
class Terminated:
    """장기 실패로 종료된 구독"""
    name: ClassVar[str] = "terminated"


RetryState = Union[Idle, Pending, Retrying, Terminated]

IDLE = Idle()
PENDING = Pending()
TERMINATED = Terminated()

STATE_NAMES = (Idle.name, Pending.name, Retrying.name, Terminated.name)


def state_for_attempt(attempt: int) -> RetryState:
    """시도 회차에 해당하는 상태"""
    if attempt < 1:
        raise ValueError(f"attempt must be positive, got {attempt}")
    if attempt == 1:
        return PENDING
    return Retrying(failures=attempt - 1)


def is_pending(state: RetryState) -> bool:
    """전송 대기 상태(Pending, Retrying) 여부"""
    return isinstance(state, (Pending, Retrying))


@dataclass
class Subscriber:
    """푸시 구독자 (소유자, 콜백 URL 단위)"""
    owner_id: int
    callback_url: str
    topic: str
    nickname: str
    secret: str = ""
    state: RetryState = IDLE
    next_attempt_at: Optional[datetime] = None  # None: 즉시 시도 가능
    last_update_at: Optional[datetime] = None   # 마지막으로 전송된 항목의 시각
    renewed_at: Optional[datetime] = None       # 마지막 구독 갱신 시각
    id: Optional[int] = None

    def is_due(self, now: datetime) -> bool:
        """지금 전송을 시도해야 하는지 여부"""
        if not is_pending(self.state):
            return False
        return self.next_attempt_at is None or self.next_attempt_at <= now

    def to_dict(self) -> dict:
        """딕셔너리로 변환 (secret 제외)"""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "callback_url": self.callback_url,
            "topic": self.topic,
            "nickname": self.nickname,
            "state": self.state.name,
            "attempt": getattr(self.state, "attempt", None),
            "next_attempt_at": self.next_attempt_at.isoformat() if self.next_attempt_at else None,
            "last_update_at": self.last_update_at.isoformat() if self.last_update_at else None,
            "renewed_at": self.renewed_at.isoformat() if self.renewed_at else None,
        }

    def __repr__(self):
        return f"<Subscriber(id={self.id}, callback_url='{self.callback_url}', state={self.state.name})>"
