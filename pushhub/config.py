"""
PushHub 설정 관리 모듈
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 프로젝트 경로
    BASE_DIR: Path = Path(__file__).parent.parent

    # 데이터베이스
    database_url: str = Field(default="sqlite:///./data/pushhub.db")

    # 스케줄러 (재전송 대상 조회 주기)
    requeue_interval_seconds: int = Field(default=60)

    # 디스패처
    default_priority: str = Field(default="HIGH")
    dispatcher_workers: int = Field(default=1)

    # 전송기 (entry point 이름, pushhub.deliverers 그룹)
    deliverer: str = Field(default="")

    # 백오프 정책
    push_max_retries: int = Field(default=14)
    push_termination_days: int = Field(default=60)
    push_jitter_max: int = Field(default=30)

    # 로깅
    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """설정 싱글톤 반환"""
    return Settings()


settings = get_settings()
