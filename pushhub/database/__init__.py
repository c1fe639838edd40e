"""
데이터베이스 모듈
"""

from .models import Base, NULL_DATE, PushSubscriber
from .repository import (
    init_db,
    get_session,
    encode_state,
    decode_state,
    PushSubscriberRepository,
    SqlSubscriptionStore,
)

__all__ = [
    "Base",
    "NULL_DATE",
    "PushSubscriber",
    "init_db",
    "get_session",
    "encode_state",
    "decode_state",
    "PushSubscriberRepository",
    "SqlSubscriptionStore",
]
