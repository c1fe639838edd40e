"""
전송 실패 백오프 정책

실패 회차가 올라갈수록 (회차 + 3)^4 초 만큼 간격을 늘리고,
최대 회차를 넘으면 구독 갱신 시점을 기준으로 중단 또는 종료를 결정한다.
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..config import settings

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass(frozen=True)
class Retry:
    """지연 후 재시도"""
    delay_seconds: int
    new_retry_count: int


@dataclass(frozen=True)
class Suspend:
    """재시도 중단, 다음 발행 때까지 대기 상태로 복귀"""


@dataclass(frozen=True)
class Terminate:
    """구독 종료"""


Decision = Union[Retry, Suspend, Terminate]


class BackoffPolicy:
    """재시도 간격 및 포기 결정"""

    def __init__(
        self,
        max_retries: int = None,
        termination_days: int = None,
        jitter_max: int = None,
        rng: Optional[random.Random] = None
    ):
        self.max_retries = settings.push_max_retries if max_retries is None else max_retries
        self.termination_days = settings.push_termination_days if termination_days is None else termination_days
        self.jitter_max = settings.push_jitter_max if jitter_max is None else jitter_max
        self.rng = rng or random.Random()

    def decide(
        self,
        retry_count: int,
        renewed_at: Optional[datetime],
        now: datetime
    ) -> Decision:
        """
        실패 후 다음 처리 결정

        Args:
            retry_count: 실패한 시도의 회차 (대기 상태에서 들어온 보고는 0)
            renewed_at: 마지막 구독 갱신 시각
            now: 현재 시각

        Returns:
            Retry, Suspend 또는 Terminate
        """
        if retry_count > self.max_retries:
            # 갱신 기록이 없으면 오래 방치된 구독으로 본다
            if renewed_at is None:
                return Terminate()

            inactive_days = self.inactive_days(renewed_at, now)
            if inactive_days > self.termination_days:
                return Terminate()
            return Suspend()

        jitter = self.rng.randint(1, self.jitter_max) * (retry_count + 1)
        delay = (retry_count + 3) ** 4 + jitter

        return Retry(delay_seconds=delay, new_retry_count=retry_count + 1)

    @staticmethod
    def inactive_days(renewed_at: datetime, now: datetime) -> int:
        """마지막 갱신 이후 경과 일수 (내림)"""
        return math.floor((now - renewed_at).total_seconds() / SECONDS_PER_DAY)
