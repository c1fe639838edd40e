"""
전송 작업 처리기

실제 HTTP 전송은 Deliverer 구현체가 담당하고, 여기서는 결과를 생명주기에 반영한다.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from importlib.metadata import entry_points
from typing import Optional

from .lifecycle import SubscriptionLifecycle
from .models import Subscriber

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "pushhub.deliverers"


class DeliveryError(Exception):
    """전송 실패"""


class Deliverer(ABC):
    """구독자 콜백으로 콘텐츠를 전송하는 외부 구현"""

    @abstractmethod
    def deliver(self, subscriber: Subscriber) -> Optional[datetime]:
        """
        구독자에게 last_update_at 이후의 콘텐츠 전송

        Returns:
            전송한 가장 최신 항목의 시각 (전송할 항목이 없으면 None)

        Raises:
            DeliveryError: 전송 실패
        """
        pass


class DeliveryJob:
    """디스패처의 "deliver" 작업 처리기"""

    def __init__(self, lifecycle: SubscriptionLifecycle, deliverer: Deliverer):
        self.lifecycle = lifecycle
        self.deliverer = deliverer

    def __call__(self, subscriber_id: int) -> None:
        subscriber = self.lifecycle.store.get_by_id(subscriber_id)
        if subscriber is None:
            logger.debug(f"전송 생략: 구독자 {subscriber_id} 없음")
            return

        # 같은 작업이 중복 실행된 경우
        if not subscriber.is_due(self.lifecycle.clock()):
            logger.debug(f"전송 생략: 전송 대상 아님 {subscriber.callback_url}")
            return

        try:
            delivered_through = self.deliverer.deliver(subscriber)
        except DeliveryError as e:
            logger.warning(f"전송 실패 [{subscriber.callback_url}] ({subscriber.nickname}): {e}")
            self.lifecycle.record_failure(subscriber_id)
            return

        self.lifecycle.record_success(
            subscriber_id,
            delivered_through or subscriber.last_update_at or self.lifecycle.clock(),
        )


def load_deliverer(name: str) -> Deliverer:
    """
    entry point 이름으로 전송기 생성

    pyproject.toml 예시:
        [project.entry-points."pushhub.deliverers"]
        http = "mypackage.delivery:HttpDeliverer"
    """
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        if ep.name == name:
            cls = ep.load()
            if not (isinstance(cls, type) and issubclass(cls, Deliverer)):
                raise TypeError(f"전송기 {name}은(는) Deliverer 하위 클래스여야 합니다")
            return cls()
    raise LookupError(f"등록되지 않은 전송기: {name}")
