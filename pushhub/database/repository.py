"""
데이터베이스 저장소 패턴 구현
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, and_, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session

from ..config import settings
from ..subscription.models import (
    IDLE,
    PENDING,
    TERMINATED,
    STATE_NAMES,
    Idle,
    Pending,
    Retrying,
    RetryState,
    Subscriber,
    Terminated,
)
from ..subscription.store import StoreUnavailableError, SubscriptionStore
from .models import Base, NULL_DATE, PushSubscriber

logger = logging.getLogger(__name__)

# 데이터베이스 엔진 및 세션
_engine = None
_SessionLocal = None


def init_db(database_url: str = "sqlite:///./data/pushhub.db") -> None:
    """데이터베이스 초기화"""
    global _engine, _SessionLocal

    # data 디렉토리 생성
    if database_url.startswith("sqlite:///"):
        db_path = database_url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(
        database_url,
        echo=False,
        connect_args={"check_same_thread": False} if "sqlite" in database_url else {}
    )
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    # 테이블 생성
    Base.metadata.create_all(bind=_engine)
    logger.info(f"데이터베이스 초기화 완료: {database_url}")


def is_initialized() -> bool:
    """데이터베이스 초기화 여부"""
    return _SessionLocal is not None


@contextmanager
def get_session():
    """세션 컨텍스트 매니저"""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def encode_state(state: RetryState) -> int:
    """재시도 상태를 retry_state 컬럼 값으로 변환"""
    if isinstance(state, Idle):
        return 0
    if isinstance(state, Pending):
        return 1
    if isinstance(state, Retrying):
        return state.failures + 1
    if isinstance(state, Terminated):
        return -1
    raise TypeError(f"알 수 없는 재시도 상태: {state!r}")


def decode_state(value: int) -> RetryState:
    """retry_state 컬럼 값을 재시도 상태로 변환"""
    if value < 0:
        return TERMINATED
    if value == 0:
        return IDLE
    if value == 1:
        return PENDING
    return Retrying(failures=value - 1)


def _encode_next_try(next_attempt_at: Optional[datetime]) -> datetime:
    return NULL_DATE if next_attempt_at is None else next_attempt_at


def _decode_next_try(next_try: Optional[datetime]) -> Optional[datetime]:
    if next_try is None or next_try <= NULL_DATE:
        return None
    return next_try


def to_subscriber(row: PushSubscriber) -> Subscriber:
    """DB 행을 도메인 객체로 변환"""
    return Subscriber(
        id=row.id,
        owner_id=row.owner_id,
        callback_url=row.callback_url,
        topic=row.topic,
        nickname=row.nickname,
        secret=row.secret,
        state=decode_state(row.retry_state),
        next_attempt_at=_decode_next_try(row.next_try),
        last_update_at=row.last_update,
        renewed_at=row.renewed,
    )


def _apply(row: PushSubscriber, subscriber: Subscriber) -> None:
    row.owner_id = subscriber.owner_id
    row.callback_url = subscriber.callback_url
    row.topic = subscriber.topic
    row.nickname = subscriber.nickname
    row.secret = subscriber.secret
    row.retry_state = encode_state(subscriber.state)
    # 종료된 구독은 다음 시도 시각을 두지 않는다
    if isinstance(subscriber.state, Terminated):
        row.next_try = NULL_DATE
    else:
        row.next_try = _encode_next_try(subscriber.next_attempt_at)
    row.last_update = subscriber.last_update_at
    row.renewed = subscriber.renewed_at


class PushSubscriberRepository:
    """푸시 구독자 저장소"""

    @staticmethod
    def create(session: Session, subscriber: Subscriber) -> PushSubscriber:
        """구독자 생성"""
        row = PushSubscriber(id=subscriber.id)
        _apply(row, subscriber)
        session.add(row)
        session.flush()
        return row

    @staticmethod
    def get_by_id(session: Session, subscriber_id: int) -> Optional[PushSubscriber]:
        """ID로 구독자 조회"""
        return session.query(PushSubscriber).filter(PushSubscriber.id == subscriber_id).first()

    @staticmethod
    def get_by_callback(session: Session, callback_url: str) -> Optional[PushSubscriber]:
        """콜백 URL로 구독자 조회"""
        return (
            session.query(PushSubscriber)
            .filter(PushSubscriber.callback_url == callback_url)
            .first()
        )

    @staticmethod
    def get_due(session: Session, now: datetime) -> list[PushSubscriber]:
        """전송 대상 구독자 조회"""
        return (
            session.query(PushSubscriber)
            .filter(
                and_(
                    PushSubscriber.retry_state > 0,
                    PushSubscriber.next_try <= now
                )
            )
            .order_by(PushSubscriber.id)
            .all()
        )

    @staticmethod
    def get_idle_by_owner(session: Session, owner_id: int) -> list[PushSubscriber]:
        """소유자의 대기 구독자 조회"""
        return (
            session.query(PushSubscriber)
            .filter(
                and_(
                    PushSubscriber.owner_id == owner_id,
                    PushSubscriber.retry_state == 0
                )
            )
            .order_by(PushSubscriber.id)
            .all()
        )

    @staticmethod
    def mark_pending(session: Session, owner_id: int) -> list[PushSubscriber]:
        """소유자의 대기 구독자를 전송 대기로 변경, 변경된 행 반환"""
        idle = (
            session.query(PushSubscriber)
            .filter(
                and_(
                    PushSubscriber.owner_id == owner_id,
                    PushSubscriber.retry_state == 0
                )
            )
            .order_by(PushSubscriber.id)
            .with_for_update()
            .all()
        )

        marked = []
        for row in idle:
            updated = (
                session.query(PushSubscriber)
                .filter(
                    and_(
                        PushSubscriber.id == row.id,
                        PushSubscriber.retry_state == 0
                    )
                )
                .update(
                    {"retry_state": 1, "next_try": NULL_DATE},
                    synchronize_session=False
                )
            )
            if updated:
                marked.append(row)
        return marked

    @staticmethod
    def update_state(
        session: Session,
        subscriber_id: int,
        fields: dict,
        expected_retry_state: Optional[int] = None
    ) -> bool:
        """상태 변경 (expected_retry_state가 있으면 일치할 때만)"""
        query = session.query(PushSubscriber).filter(PushSubscriber.id == subscriber_id)
        if expected_retry_state is not None:
            query = query.filter(PushSubscriber.retry_state == expected_retry_state)
        return query.update(fields, synchronize_session=False) == 1

    @staticmethod
    def delete_by_callback(session: Session, callback_url: str) -> int:
        """콜백 URL로 구독자 삭제"""
        return (
            session.query(PushSubscriber)
            .filter(PushSubscriber.callback_url == callback_url)
            .delete(synchronize_session=False)
        )

    @staticmethod
    def count_by_retry_state(session: Session) -> list[tuple[int, int]]:
        """retry_state 값별 구독자 수"""
        return (
            session.query(PushSubscriber.retry_state, func.count(PushSubscriber.id))
            .group_by(PushSubscriber.retry_state)
            .all()
        )

    @staticmethod
    def delete_terminated(session: Session, renewed_before: Optional[datetime] = None) -> int:
        """종료된 구독자 삭제"""
        query = session.query(PushSubscriber).filter(PushSubscriber.retry_state < 0)
        if renewed_before is not None:
            query = query.filter(PushSubscriber.renewed < renewed_before)
        return query.delete(synchronize_session=False)


class SqlSubscriptionStore(SubscriptionStore):
    """SQLAlchemy 기반 구독 저장소"""

    def __init__(self, database_url: str = None):
        if database_url is not None or not is_initialized():
            init_db(database_url or settings.database_url)

    @contextmanager
    def _session(self):
        """저장소 세션 (연결 오류는 StoreUnavailableError로 변환)"""
        try:
            with get_session() as session:
                yield session
        except OperationalError as e:
            logger.error(f"저장소 접근 실패: {e}")
            raise StoreUnavailableError(str(e)) from e

    def get_by_id(self, subscriber_id: int) -> Optional[Subscriber]:
        with self._session() as session:
            row = PushSubscriberRepository.get_by_id(session, subscriber_id)
            return to_subscriber(row) if row else None

    def get_by_callback(self, callback_url: str) -> Optional[Subscriber]:
        with self._session() as session:
            row = PushSubscriberRepository.get_by_callback(session, callback_url)
            return to_subscriber(row) if row else None

    def list_due(self, now: datetime) -> list[Subscriber]:
        with self._session() as session:
            return [to_subscriber(row) for row in PushSubscriberRepository.get_due(session, now)]

    def list_idle_by_owner(self, owner_id: int) -> list[Subscriber]:
        with self._session() as session:
            rows = PushSubscriberRepository.get_idle_by_owner(session, owner_id)
            return [to_subscriber(row) for row in rows]

    def mark_pending(self, owner_id: int) -> list[Subscriber]:
        with self._session() as session:
            rows = PushSubscriberRepository.mark_pending(session, owner_id)
            session.expire_all()
            return [to_subscriber(row) for row in rows]

    def upsert(self, subscriber: Subscriber) -> Subscriber:
        with self._session() as session:
            row = None
            if subscriber.id is not None:
                row = PushSubscriberRepository.get_by_id(session, subscriber.id)

            if row is None:
                row = PushSubscriberRepository.create(session, subscriber)
            else:
                _apply(row, subscriber)
                session.flush()

            return to_subscriber(row)

    def update_state(
        self,
        subscriber_id: int,
        state: RetryState,
        next_attempt_at: Optional[datetime],
        last_update_at: Optional[datetime] = None,
        expected_state: Optional[RetryState] = None
    ) -> bool:
        fields = {"retry_state": encode_state(state)}
        if isinstance(state, Terminated):
            fields["next_try"] = NULL_DATE
        else:
            fields["next_try"] = _encode_next_try(next_attempt_at)
        if last_update_at is not None:
            fields["last_update"] = last_update_at

        expected = encode_state(expected_state) if expected_state is not None else None

        with self._session() as session:
            return PushSubscriberRepository.update_state(session, subscriber_id, fields, expected)

    def delete(self, callback_url: str) -> int:
        with self._session() as session:
            return PushSubscriberRepository.delete_by_callback(session, callback_url)

    def replace(self, callback_url: str, subscriber: Optional[Subscriber]) -> Optional[Subscriber]:
        with self._session() as session:
            PushSubscriberRepository.delete_by_callback(session, callback_url)
            session.flush()

            if subscriber is None:
                return None

            row = PushSubscriberRepository.create(session, subscriber)
            return to_subscriber(row)

    def count_by_state(self) -> dict[str, int]:
        counts = {name: 0 for name in STATE_NAMES}
        with self._session() as session:
            for retry_state, count in PushSubscriberRepository.count_by_retry_state(session):
                counts[decode_state(retry_state).name] += count
        return counts

    def purge_terminated(self, renewed_before: Optional[datetime] = None) -> int:
        with self._session() as session:
            return PushSubscriberRepository.delete_terminated(session, renewed_before)
