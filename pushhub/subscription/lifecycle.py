"""
구독자 생명주기 관리 - 발행, 재전송 예약, 구독 갱신, 전송 결과 반영
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..dispatcher.base import Dispatcher, Priority
from ..notifier.events import EventNotifier, TransitionEvent, TransitionKind, get_notifier
from .backoff import BackoffPolicy, Decision, Retry, Suspend
from .models import (
    IDLE,
    PENDING,
    TERMINATED,
    Retrying,
    RetryState,
    Subscriber,
    Terminated,
    is_pending,
    state_for_attempt,
    utcnow,
)
from .store import SubscriptionStore

logger = logging.getLogger(__name__)


class SubscriptionLifecycle:
    """푸시 구독자 상태 전이 관리"""

    JOB_KIND = "deliver"

    def __init__(
        self,
        store: SubscriptionStore,
        dispatcher: Dispatcher,
        policy: BackoffPolicy = None,
        notifier: EventNotifier = None,
        clock: Callable[[], datetime] = None
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.policy = policy or BackoffPolicy()
        self.notifier = notifier or get_notifier()
        self.clock = clock or utcnow

    def publish(self, owner_id: int, default_priority: Priority = Priority.HIGH) -> int:
        """
        소유자의 새 콘텐츠 발행 알림

        대기(Idle) 상태의 구독자만 전송 대기로 바꾸고 재전송 예약을 실행한다.
        이미 전송 대기이거나 재시도 중인 구독자는 건드리지 않는다.

        Args:
            owner_id: 콘텐츠 소유자 ID
            default_priority: 첫 전송 작업의 우선순위

        Returns:
            전송 대기로 바뀐 구독자 수
        """
        marked = self.store.mark_pending(owner_id)

        for subscriber in marked:
            self._notify(TransitionKind.PENDING, subscriber)

        logger.debug(f"소유자 {owner_id} 발행: 구독자 {len(marked)}명 전송 대기")

        self.requeue(default_priority)
        return len(marked)

    def requeue(self, default_priority: Priority = Priority.HIGH) -> int:
        """
        전송 대상 구독자의 전송 작업 등록

        재시도는 항상 낮은 우선순위로 처리한다.

        Returns:
            등록한 작업 수
        """
        subscribers = self.store.list_due(self.clock())

        for subscriber in subscribers:
            if isinstance(subscriber.state, Retrying):
                priority = Priority.LOW
            else:
                priority = default_priority

            logger.debug(
                f"피드 전송 예약: {subscriber.callback_url} ({subscriber.nickname}), "
                f"우선순위 {priority.name}"
            )
            self.dispatcher.enqueue(priority, self.JOB_KIND, subscriber.id)

        return len(subscribers)

    def renew(
        self,
        owner_id: int,
        nickname: str,
        subscribe: bool,
        callback_url: str,
        topic: str,
        secret: str
    ) -> Optional[Subscriber]:
        """
        구독/해지 요청 반영 (요청 검증은 호출 전에 끝난 상태)

        기존 행은 항상 삭제하고, 구독이면 새 행을 만든다.
        기존 구독의 마지막 전송 시각은 유지하고 재시도 상태는 전송 대기로 낮춘다 (종료된 구독은 종료 상태 유지).

        Returns:
            새로 만든 구독자 (해지면 None)
        """
        now = self.clock()
        existing = self.store.get_by_callback(callback_url)

        subscriber = None
        if subscribe:
            if existing is not None:
                state = self._renewed_state(existing.state)
                last_update_at = existing.last_update_at or now
            else:
                state = IDLE
                last_update_at = now

            subscriber = Subscriber(
                owner_id=owner_id,
                callback_url=callback_url,
                topic=topic,
                nickname=nickname,
                secret=secret,
                state=state,
                last_update_at=last_update_at,
                renewed_at=now,
            )

        result = self.store.replace(callback_url, subscriber)

        if subscribe:
            self._notify(TransitionKind.SUBSCRIBE, result)
        else:
            self._notify(
                TransitionKind.UNSUBSCRIBE,
                existing or Subscriber(owner_id=owner_id, callback_url=callback_url,
                                       topic=topic, nickname=nickname),
            )

        return result

    def record_success(self, subscriber_id: int, delivered_through: datetime) -> bool:
        """
        전송 성공 반영

        Args:
            subscriber_id: 구독자 ID
            delivered_through: 전송된 가장 최신 항목의 시각

        Returns:
            반영 여부 (구독자가 없으면 False)
        """
        subscriber = self.store.get_by_id(subscriber_id)
        if subscriber is None:
            logger.debug(f"전송 성공 반영 생략: 구독자 {subscriber_id} 없음")
            return False

        updated = self.store.update_state(
            subscriber_id,
            IDLE,
            None,
            last_update_at=delivered_through,
        )
        if updated:
            self._notify(TransitionKind.VITAL, subscriber)
        return updated

    def record_failure(self, subscriber_id: int) -> Optional[Decision]:
        """
        전송 실패 반영

        백오프 정책의 결정을 구독자 상태에 적용한다.
        읽은 이후 다른 작업이 상태를 바꿨다면 이 실패 보고는 버린다.

        Returns:
            적용한 결정 (구독자가 없거나 반영하지 않았으면 None)
        """
        subscriber = self.store.get_by_id(subscriber_id)
        if subscriber is None:
            logger.debug(f"전송 실패 반영 생략: 구독자 {subscriber_id} 없음")
            return None

        state = subscriber.state
        if isinstance(state, Terminated):
            logger.debug(f"전송 실패 반영 생략: 이미 종료된 구독 {subscriber.callback_url}")
            return None

        # 대기 상태에서 들어온 실패 보고는 0회차로 계산해 전송 대기로 되돌린다
        attempt = state.attempt if is_pending(state) else 0

        now = self.clock()
        decision = self.policy.decide(attempt, subscriber.renewed_at, now)

        if isinstance(decision, Retry):
            new_state = state_for_attempt(decision.new_retry_count)
            next_attempt_at = now + timedelta(seconds=decision.delay_seconds)
            kind = TransitionKind.RETRY
        elif isinstance(decision, Suspend):
            new_state, next_attempt_at = IDLE, None
            kind = TransitionKind.SUSPEND
        else:
            new_state, next_attempt_at = TERMINATED, None
            kind = TransitionKind.TERMINATE

        updated = self.store.update_state(
            subscriber_id,
            new_state,
            next_attempt_at,
            expected_state=state,
        )
        if not updated:
            logger.debug(f"전송 실패 반영 생략: 구독자 {subscriber_id} 상태가 이미 변경됨")
            return None

        self._notify(
            kind,
            subscriber,
            attempt=decision.new_retry_count if isinstance(decision, Retry) else None,
            next_attempt_at=next_attempt_at.isoformat() if next_attempt_at else None,
        )
        return decision

    @staticmethod
    def _renewed_state(state: RetryState) -> RetryState:
        """갱신 시 이어받을 상태 (전송 대기 이상은 전송 대기로, 대기와 종료는 그대로)"""
        if is_pending(state):
            return PENDING
        return state

    def _notify(self, kind: TransitionKind, subscriber: Subscriber, **details) -> None:
        self.notifier.notify(
            TransitionEvent(
                kind=kind,
                callback_url=subscriber.callback_url,
                nickname=subscriber.nickname,
                subscriber_id=subscriber.id,
                details={key: value for key, value in details.items() if value is not None},
            )
        )
