"""
작업 디스패처 모듈
"""

from .base import Dispatcher, Job, Priority, UnknownJobKindError
from .inprocess import QueueDispatcher

__all__ = [
    "Dispatcher",
    "Job",
    "Priority",
    "UnknownJobKindError",
    "QueueDispatcher",
]
