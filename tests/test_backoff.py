"""
백오프 정책 테스트
"""

import random
import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pushhub.subscription.backoff import BackoffPolicy, Retry, Suspend, Terminate


NOW = datetime(2026, 10, 18, 12, 0, 0)


class TestBackoffPolicy:
    """BackoffPolicy 테스트"""

    @pytest.fixture
    def policy(self):
        """기본 임계값 정책"""
        return BackoffPolicy(max_retries=14, termination_days=60, jitter_max=30, rng=random.Random(7))

    @pytest.mark.parametrize("retry_count", range(1, 15))
    def test_retry_delay_bounds(self, policy, retry_count):
        """1~14회차는 지연 후 재시도"""
        decision = policy.decide(retry_count, NOW, NOW)

        assert isinstance(decision, Retry)
        base = (retry_count + 3) ** 4
        assert base + 1 <= decision.delay_seconds <= base + 30 * (retry_count + 1)
        assert decision.new_retry_count == retry_count + 1

    def test_jitter_is_multiple_of_next_count(self, policy):
        """지터는 (회차 + 1)의 배수"""
        decision = policy.decide(3, NOW, NOW)

        jitter = decision.delay_seconds - 6 ** 4
        assert jitter % 4 == 0

    def test_first_retry_is_about_four_minutes(self, policy):
        """첫 실패 후 약 256초 뒤 재시도"""
        decision = policy.decide(1, NOW, NOW)

        assert 257 <= decision.delay_seconds <= 256 + 60

    def test_terminate_after_long_inactivity(self, policy):
        """61일 동안 갱신이 없으면 종료"""
        renewed_at = NOW - timedelta(days=61)

        assert isinstance(policy.decide(15, renewed_at, NOW), Terminate)

    def test_suspend_at_sixty_days(self, policy):
        """60일 경계는 중단"""
        renewed_at = NOW - timedelta(days=60)

        assert isinstance(policy.decide(15, renewed_at, NOW), Suspend)

    def test_partial_day_is_floored(self, policy):
        """60일 23시간은 60일로 계산"""
        renewed_at = NOW - timedelta(days=60, hours=23)

        assert BackoffPolicy.inactive_days(renewed_at, NOW) == 60
        assert isinstance(policy.decide(15, renewed_at, NOW), Suspend)

    def test_recently_renewed_is_suspended(self, policy):
        """최근 갱신된 구독은 중단"""
        assert isinstance(policy.decide(20, NOW - timedelta(days=1), NOW), Suspend)

    def test_missing_renewal_terminates(self, policy):
        """갱신 기록이 없으면 종료"""
        assert isinstance(policy.decide(15, None, NOW), Terminate)

    def test_same_seed_same_decision(self):
        """같은 난수 시드는 같은 결정"""
        first = BackoffPolicy(rng=random.Random(42)).decide(5, NOW, NOW)
        second = BackoffPolicy(rng=random.Random(42)).decide(5, NOW, NOW)

        assert first == second

    def test_custom_thresholds(self):
        """임계값 변경"""
        policy = BackoffPolicy(max_retries=2, termination_days=1, jitter_max=1, rng=random.Random(0))

        assert policy.decide(2, NOW, NOW) == Retry(delay_seconds=5 ** 4 + 3, new_retry_count=3)
        assert isinstance(policy.decide(3, NOW - timedelta(days=2), NOW), Terminate)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
