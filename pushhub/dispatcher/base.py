"""
작업 디스패처 인터페이스
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum as PyEnum


class Priority(PyEnum):
    """작업 우선순위 (값이 작을수록 먼저 실행)"""
    CRITICAL = 0
    HIGH = 20
    MEDIUM = 40
    LOW = 50
    NEGLIGIBLE = 60

    @classmethod
    def from_name(cls, name: str) -> "Priority":
        """이름으로 우선순위 조회 (대소문자 무시)"""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"알 수 없는 우선순위: {name}") from None


class UnknownJobKindError(Exception):
    """등록되지 않은 작업 종류"""


@dataclass(frozen=True)
class Job:
    """디스패처 작업"""
    priority: Priority
    job_kind: str
    subscriber_id: int


class Dispatcher(ABC):
    """작업 디스패처"""

    @abstractmethod
    def enqueue(self, priority: Priority, job_kind: str, subscriber_id: int) -> None:
        """작업 등록 (완료를 기다리지 않음)"""
        pass
