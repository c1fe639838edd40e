"""
구독 저장소 인터페이스
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .models import RetryState, Subscriber


class StoreUnavailableError(Exception):
    """저장소 접근 실패 (재시도 가능)"""


class SubscriptionStore(ABC):
    """
    구독자 저장소

    모든 연산은 행 단위로 원자적이어야 한다.
    """

    @abstractmethod
    def get_by_id(self, subscriber_id: int) -> Optional[Subscriber]:
        """ID로 구독자 조회"""

    @abstractmethod
    def get_by_callback(self, callback_url: str) -> Optional[Subscriber]:
        """콜백 URL로 구독자 조회"""

    @abstractmethod
    def list_due(self, now: datetime) -> list[Subscriber]:
        """전송 대상 구독자 조회 (조회 시점 스냅샷)"""

    @abstractmethod
    def list_idle_by_owner(self, owner_id: int) -> list[Subscriber]:
        """소유자의 대기(Idle) 구독자 조회"""

    @abstractmethod
    def mark_pending(self, owner_id: int) -> list[Subscriber]:
        """소유자의 Idle 구독자를 Pending으로 일괄 변경, 실제로 변경된 구독자 반환"""

    @abstractmethod
    def upsert(self, subscriber: Subscriber) -> Subscriber:
        """구독자 저장 (없으면 생성)"""

    @abstractmethod
    def update_state(
        self,
        subscriber_id: int,
        state: RetryState,
        next_attempt_at: Optional[datetime],
        last_update_at: Optional[datetime] = None,
        expected_state: Optional[RetryState] = None
    ) -> bool:
        """
        상태 변경

        행이 없거나 expected_state가 현재 상태와 다르면 아무것도 바꾸지 않고
        False를 반환한다. last_update_at이 None이면 기존 값을 유지한다.
        """

    @abstractmethod
    def delete(self, callback_url: str) -> int:
        """콜백 URL로 구독자 삭제, 삭제된 수 반환"""

    @abstractmethod
    def replace(self, callback_url: str, subscriber: Optional[Subscriber]) -> Optional[Subscriber]:
        """콜백 URL의 기존 행을 삭제하고 새 행을 삽입 (단일 트랜잭션)"""

    @abstractmethod
    def count_by_state(self) -> dict[str, int]:
        """상태별 구독자 수"""

    @abstractmethod
    def purge_terminated(self, renewed_before: Optional[datetime] = None) -> int:
        """종료된 구독 삭제, 삭제된 수 반환"""
