"""
SQLAlchemy 데이터베이스 모델 정의
"""

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Index,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# next_try 미지정 값 (즉시 시도 가능)
NULL_DATE = datetime(1, 1, 1)


class PushSubscriber(Base):
    """푸시 구독자"""
    __tablename__ = "push_subscriber"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # 구독 정보
    owner_id = Column(Integer, nullable=False)
    callback_url = Column(String(255), unique=True, nullable=False)
    topic = Column(String(255), nullable=False, default="")
    nickname = Column(String(255), nullable=False, default="")
    secret = Column(Text, nullable=False, default="")

    # 재시도 상태: 0 대기, 1 전송 대기, 2 이상 재시도 중, -1 종료
    retry_state = Column(Integer, nullable=False, default=0)
    next_try = Column(DateTime, nullable=False, default=NULL_DATE)

    # 타임스탬프
    last_update = Column(DateTime)  # 마지막 전송 항목 시각
    renewed = Column(DateTime)      # 마지막 구독 갱신 시각

    # 인덱스 (SQLite에서도 삭제된 ID를 재사용하지 않음)
    __table_args__ = (
        Index("idx_push_subscriber_owner", "owner_id", "retry_state"),
        Index("idx_push_subscriber_due", "retry_state", "next_try"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<PushSubscriber(id={self.id}, callback_url='{self.callback_url}', retry_state={self.retry_state})>"
