"""
구독 저장소 테스트
"""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import IntegrityError, OperationalError

from pushhub.database import (
    NULL_DATE,
    PushSubscriber,
    PushSubscriberRepository,
    decode_state,
    encode_state,
    get_session,
)
from pushhub.subscription import (
    IDLE,
    PENDING,
    TERMINATED,
    Retrying,
    StoreUnavailableError,
    Subscriber,
)

NOW = datetime(2026, 10, 18, 12, 0, 0)


def make(owner_id=1, callback_url="https://cb.example/cb", **kwargs):
    """구독자 객체 생성"""
    return Subscriber(
        owner_id=owner_id,
        callback_url=callback_url,
        topic="https://example.com/feed",
        nickname="alice",
        renewed_at=kwargs.pop("renewed_at", NOW),
        **kwargs
    )


class TestStateEncoding:
    """retry_state 인코딩 테스트"""

    @pytest.mark.parametrize("state, value", [
        (IDLE, 0),
        (PENDING, 1),
        (Retrying(1), 2),
        (Retrying(14), 15),
        (TERMINATED, -1),
    ])
    def test_encode_decode(self, state, value):
        """상태와 컬럼 값 변환"""
        assert encode_state(state) == value
        assert decode_state(value) == state

    def test_retrying_requires_failure(self):
        """실패 없는 재시도 상태는 허용하지 않음"""
        with pytest.raises(ValueError):
            Retrying(0)


class TestSqlSubscriptionStore:
    """SqlSubscriptionStore 테스트"""

    def test_unconstrained_next_attempt_is_null_date(self, store):
        """즉시 시도 가능 값은 NULL_DATE로 저장"""
        subscriber = store.upsert(make(state=PENDING))

        with get_session() as session:
            row = PushSubscriberRepository.get_by_id(session, subscriber.id)
            assert row.next_try == NULL_DATE

        assert subscriber.next_attempt_at is None

    def test_terminated_clears_next_attempt(self, store):
        """종료 상태는 다음 시도 시각을 두지 않음"""
        subscriber = store.upsert(make(state=TERMINATED, next_attempt_at=NOW))

        assert subscriber.next_attempt_at is None

    def test_due_predicate(self, store):
        """retry_state > 0 이고 next_try <= now 인 구독자만 전송 대상"""
        on_time = store.upsert(make(callback_url="https://1.example", state=Retrying(1), next_attempt_at=NOW))
        pending = store.upsert(make(callback_url="https://2.example", state=PENDING))
        store.upsert(make(callback_url="https://3.example", state=Retrying(1),
                          next_attempt_at=NOW + timedelta(seconds=1)))
        store.upsert(make(callback_url="https://4.example"))
        store.upsert(make(callback_url="https://5.example", state=TERMINATED))

        due = store.list_due(NOW)

        assert [s.id for s in due] == [on_time.id, pending.id]
        assert all(s.is_due(NOW) for s in due)

    def test_mark_pending_only_touches_idle(self, store):
        """소유자의 대기 구독자만 전송 대기로 변경"""
        idle = store.upsert(make(callback_url="https://1.example"))
        retrying = store.upsert(make(callback_url="https://2.example", state=Retrying(3),
                                     next_attempt_at=NOW))
        other = store.upsert(make(owner_id=2, callback_url="https://3.example"))

        assert [s.id for s in store.list_idle_by_owner(1)] == [idle.id]
        marked = store.mark_pending(1)
        assert [s.id for s in marked] == [idle.id]
        assert marked[0].state == PENDING
        assert store.mark_pending(1) == []
        assert store.get_by_id(idle.id).state == PENDING
        assert store.get_by_id(retrying.id).state == Retrying(3)
        assert store.get_by_id(other.id).state == IDLE

    def test_upsert_updates_existing(self, store):
        """ID가 있으면 기존 행 수정"""
        subscriber = store.upsert(make())
        subscriber.nickname = "bob"
        subscriber.state = Retrying(2)

        updated = store.upsert(subscriber)

        assert updated.id == subscriber.id
        assert store.get_by_id(subscriber.id).nickname == "bob"
        assert store.get_by_id(subscriber.id).state == Retrying(2)

    def test_callback_is_unique(self, store):
        """같은 콜백 URL로 두 행을 만들 수 없음"""
        store.upsert(make())

        with pytest.raises(IntegrityError):
            store.upsert(make(owner_id=2))

    def test_update_state_compare_and_set(self, store):
        """예상 상태가 다르면 변경하지 않음"""
        subscriber = store.upsert(make(state=PENDING, last_update_at=NOW))

        assert store.update_state(subscriber.id, Retrying(1), NOW, expected_state=IDLE) is False
        assert store.update_state(subscriber.id, Retrying(1), NOW, expected_state=PENDING) is True

        stored = store.get_by_id(subscriber.id)
        assert stored.state == Retrying(1)
        assert stored.next_attempt_at == NOW
        assert stored.last_update_at == NOW

    def test_update_state_missing_row(self, store):
        """없는 행은 변경하지 않음"""
        assert store.update_state(404, IDLE, None, last_update_at=NOW) is False
        assert store.get_by_id(404) is None

    def test_replace_swaps_row(self, store):
        """기존 행 삭제 후 새 행 삽입"""
        store.upsert(make(state=Retrying(4)))

        new = store.replace("https://cb.example/cb", make(state=PENDING, secret="rotated"))

        assert store.get_by_callback("https://cb.example/cb") == new
        assert new.state == PENDING
        assert new.secret == "rotated"
        assert sum(store.count_by_state().values()) == 1

    def test_replace_rolls_back_when_insert_fails(self, store, monkeypatch):
        """삽입이 실패하면 기존 행 삭제도 취소"""
        original = store.upsert(make(state=Retrying(4), next_attempt_at=NOW))

        def broken(session, subscriber):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(PushSubscriberRepository, "create", staticmethod(broken))

        with pytest.raises(StoreUnavailableError):
            store.replace("https://cb.example/cb", make(state=PENDING))

        monkeypatch.undo()
        stored = store.get_by_callback("https://cb.example/cb")
        assert stored == original
        assert stored.state == Retrying(4)

    def test_deleted_ids_are_not_reused(self, store):
        """삭제된 구독자의 ID는 새 구독자에게 다시 배정되지 않음"""
        old = store.upsert(make(callback_url="https://1.example"))
        store.delete("https://1.example")

        new = store.upsert(make(callback_url="https://2.example"))

        assert new.id > old.id
        assert store.get_by_id(old.id) is None

    def test_replace_with_none_deletes(self, store):
        """새 행이 없으면 삭제만"""
        store.upsert(make())

        assert store.replace("https://cb.example/cb", None) is None
        assert store.get_by_callback("https://cb.example/cb") is None

    def test_delete(self, store):
        """콜백 URL로 삭제"""
        store.upsert(make())

        assert store.delete("https://cb.example/cb") == 1
        assert store.delete("https://cb.example/cb") == 0

    def test_count_by_state(self, store):
        """상태별 집계"""
        store.upsert(make(callback_url="https://1.example"))
        store.upsert(make(callback_url="https://2.example", state=PENDING))
        store.upsert(make(callback_url="https://3.example", state=Retrying(1)))
        store.upsert(make(callback_url="https://4.example", state=Retrying(7)))
        store.upsert(make(callback_url="https://5.example", state=TERMINATED))

        assert store.count_by_state() == {
            "idle": 1,
            "pending": 1,
            "retrying": 2,
            "terminated": 1,
        }

    def test_purge_terminated(self, store):
        """종료된 구독 삭제 (기준 시각 이전 갱신분만)"""
        old = store.upsert(make(callback_url="https://1.example", state=TERMINATED,
                                renewed_at=NOW - timedelta(days=120)))
        recent = store.upsert(make(callback_url="https://2.example", state=TERMINATED,
                                   renewed_at=NOW - timedelta(days=1)))
        alive = store.upsert(make(callback_url="https://3.example"))

        assert store.purge_terminated(renewed_before=NOW - timedelta(days=90)) == 1
        assert store.get_by_id(old.id) is None
        assert store.get_by_id(recent.id) is not None

        assert store.purge_terminated() == 1
        assert store.get_by_id(alive.id) is not None

    def test_operational_error_is_store_unavailable(self, store, monkeypatch):
        """DB 연결 오류는 StoreUnavailableError"""
        def broken(session, subscriber_id):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(PushSubscriberRepository, "get_by_id", staticmethod(broken))

        with pytest.raises(StoreUnavailableError):
            store.get_by_id(1)

    def test_row_repr(self):
        """행 표현"""
        row = PushSubscriber(id=3, callback_url="https://cb.example/cb", retry_state=2)

        assert "retry_state=2" in repr(row)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
