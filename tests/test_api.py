"""
상태 조회 API 테스트
"""

import pytest
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from pushhub.subscription import PENDING, TERMINATED, StoreUnavailableError, Subscriber
from pushhub.web.app import app
from pushhub.web.routes.api import get_store


class TestStatusApi:
    """/api 엔드포인트 테스트"""

    @pytest.fixture
    def client(self, store):
        """임시 저장소를 사용하는 테스트 클라이언트"""
        app.dependency_overrides[get_store] = lambda: store
        yield TestClient(app)
        app.dependency_overrides.clear()

    def _add(self, store, callback_url, state):
        return store.upsert(
            Subscriber(
                owner_id=1,
                callback_url=callback_url,
                topic="https://example.com/feed",
                nickname="alice",
                secret="hidden",
                state=state,
                renewed_at=datetime(2026, 10, 1),
            )
        )

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_stats(self, client, store):
        """상태별 구독자 수와 전송 대상 수"""
        self._add(store, "https://1.example", PENDING)
        self._add(store, "https://2.example", TERMINATED)

        data = client.get("/api/subscribers/stats").json()

        assert data["states"]["pending"] == 1
        assert data["states"]["terminated"] == 1
        assert data["total"] == 2
        assert data["due"] == 1

    def test_get_subscriber(self, client, store):
        """구독자 조회 (secret 제외)"""
        subscriber = self._add(store, "https://1.example", PENDING)

        data = client.get(f"/api/subscribers/{subscriber.id}").json()

        assert data["callback_url"] == "https://1.example"
        assert data["state"] == "pending"
        assert data["attempt"] == 1
        assert "secret" not in data

    def test_get_missing_subscriber(self, client):
        response = client.get("/api/subscribers/999")

        assert response.status_code == 404

    def test_store_unavailable(self, client, store, monkeypatch):
        """저장소 장애는 503"""
        def unavailable():
            raise StoreUnavailableError("database is locked")

        monkeypatch.setattr(store, "count_by_state", unavailable)

        response = client.get("/api/subscribers/stats")

        assert response.status_code == 503


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
