"""
PushHub 메인 실행 파일

푸시 구독자 재전송 스케줄러
"""

import logging
from datetime import timedelta

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from pushhub.config import settings
from pushhub.database import SqlSubscriptionStore
from pushhub.dispatcher import Priority, QueueDispatcher
from pushhub.subscription import SubscriptionLifecycle, DeliveryJob
from pushhub.subscription.delivery import load_deliverer
from pushhub.subscription.models import utcnow

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """로깅 설정"""
    log_dir = settings.BASE_DIR / "logs"
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "pushhub.log", encoding="utf-8"),
        ],
    )


def build_lifecycle() -> tuple[SubscriptionLifecycle, QueueDispatcher]:
    """저장소, 디스패처, 전송 작업 처리기 구성"""
    store = SqlSubscriptionStore(settings.database_url)
    dispatcher = QueueDispatcher()
    lifecycle = SubscriptionLifecycle(store, dispatcher)

    if settings.deliverer:
        deliverer = load_deliverer(settings.deliverer)
        dispatcher.register(SubscriptionLifecycle.JOB_KIND, DeliveryJob(lifecycle, deliverer))
        logger.info(f"전송기 사용: {settings.deliverer}")
    else:
        dispatcher.register(SubscriptionLifecycle.JOB_KIND, _skip_delivery)
        logger.warning("전송기가 설정되지 않아 전송 작업을 건너뜁니다. (DELIVERER)")

    return lifecycle, dispatcher


def _skip_delivery(subscriber_id: int) -> None:
    logger.debug(f"전송기 미설정: 구독자 {subscriber_id} 전송 생략")


def run_requeue(lifecycle: SubscriptionLifecycle, dispatcher: QueueDispatcher) -> None:
    """재전송 예약 1회 실행"""
    try:
        count = lifecycle.requeue(Priority.from_name(settings.default_priority))
        if count:
            logger.info(f"전송 작업 {count}건 등록")
        dispatcher.run_pending()
    except Exception as e:
        logger.exception(f"재전송 예약 중 오류 발생: {e}")


def run_scheduler(lifecycle: SubscriptionLifecycle, dispatcher: QueueDispatcher) -> None:
    """스케줄러 실행"""
    logger.info("PushHub 스케줄러 시작")

    dispatcher.start()
    scheduler = BlockingScheduler()

    scheduler.add_job(
        lifecycle.requeue,
        trigger=IntervalTrigger(seconds=settings.requeue_interval_seconds),
        args=[Priority.from_name(settings.default_priority)],
        id="requeue",
        name="Requeue due push subscribers",
        max_instances=1,
        coalesce=True,
    )

    logger.info(f"스케줄 설정: {settings.requeue_interval_seconds}초마다 실행")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("스케줄러 종료")
        dispatcher.stop()


def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="PushHub - 푸시 구독자 전송 스케줄러")
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="재전송 예약을 한 번 실행하고 종료"
    )
    parser.add_argument(
        "--publish",
        type=int,
        metavar="OWNER_ID",
        help="소유자의 구독자에게 새 콘텐츠 발행 알림"
    )
    parser.add_argument(
        "--purge-terminated",
        action="store_true",
        help="종료된 구독 삭제"
    )
    parser.add_argument(
        "--older-than-days",
        type=int,
        default=None,
        help="--purge-terminated 사용 시 N일 이상 갱신되지 않은 구독만 삭제"
    )

    args = parser.parse_args()

    # 환경 변수 로드
    load_dotenv()
    setup_logging()

    logger.info("데이터베이스 초기화...")
    lifecycle, dispatcher = build_lifecycle()

    if args.purge_terminated:
        renewed_before = None
        if args.older_than_days is not None:
            renewed_before = utcnow() - timedelta(days=args.older_than_days)
        removed = lifecycle.store.purge_terminated(renewed_before)
        logger.info(f"종료된 구독 {removed}건 삭제")
    elif args.publish is not None:
        marked = lifecycle.publish(args.publish, Priority.from_name(settings.default_priority))
        logger.info(f"소유자 {args.publish} 발행: 구독자 {marked}명 전송 대기")
        dispatcher.run_pending()
    elif args.run_once:
        logger.info("즉시 실행 모드")
        run_requeue(lifecycle, dispatcher)
    else:
        run_scheduler(lifecycle, dispatcher)


if __name__ == "__main__":
    main()
