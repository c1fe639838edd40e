"""
프로세스 내 우선순위 큐 디스패처
"""

import itertools
import logging
import queue
import threading
from typing import Callable, Optional

from ..config import settings
from .base import Dispatcher, Job, Priority, UnknownJobKindError

logger = logging.getLogger(__name__)

JobHandler = Callable[[int], None]


class QueueDispatcher(Dispatcher):
    """
    우선순위 큐 디스패처

    우선순위가 같으면 등록 순서대로 실행한다.
    run_pending()으로 직접 실행하거나 start()로 작업 스레드를 띄운다.
    """

    def __init__(self, workers: int = None):
        self.workers = workers or settings.dispatcher_workers
        self._queue: queue.PriorityQueue = queue.PriorityQueue()
        self._sequence = itertools.count()
        self._handlers: dict[str, JobHandler] = {}
        self._threads: list[threading.Thread] = []
        self._stop_event = threading.Event()

    def register(self, job_kind: str, handler: JobHandler) -> None:
        """작업 종류별 처리기 등록"""
        self._handlers[job_kind] = handler

    def enqueue(self, priority: Priority, job_kind: str, subscriber_id: int) -> None:
        if job_kind not in self._handlers:
            raise UnknownJobKindError(job_kind)

        job = Job(priority=priority, job_kind=job_kind, subscriber_id=subscriber_id)
        self._queue.put((priority.value, next(self._sequence), job))

    @property
    def pending_count(self) -> int:
        """대기 중인 작업 수"""
        return self._queue.qsize()

    def run_pending(self, limit: Optional[int] = None) -> int:
        """
        대기 중인 작업 실행

        Args:
            limit: 최대 실행 작업 수 (None이면 큐가 빌 때까지)

        Returns:
            실행한 작업 수
        """
        processed = 0
        while limit is None or processed < limit:
            try:
                _, _, job = self._queue.get_nowait()
            except queue.Empty:
                break
            self._execute(job)
            processed += 1
        return processed

    def start(self) -> None:
        """작업 스레드 시작"""
        if self._threads:
            return

        self._stop_event.clear()
        for index in range(self.workers):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"pushhub-dispatcher-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(f"디스패처 작업 스레드 {self.workers}개 시작")

    def stop(self, timeout: float = 5.0) -> None:
        """작업 스레드 종료"""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        logger.info("디스패처 종료")

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                _, _, job = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            self._execute(job)

    def _execute(self, job: Job) -> None:
        handler = self._handlers[job.job_kind]
        try:
            handler(job.subscriber_id)
        except Exception as e:
            # 실패한 작업은 다음 재전송 조회에서 다시 선택된다
            logger.exception(f"작업 실행 실패 ({job.job_kind}, 구독자 {job.subscriber_id}): {e}")
        finally:
            self._queue.task_done()
