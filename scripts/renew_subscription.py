"""
구독 갱신/해지 반영 스크립트

허브 요청 검증이 끝난 구독/해지 결과를 저장소에 반영한다.

사용법:
    python scripts/renew_subscription.py --owner 1 --nick alice \
        --callback https://reader.example.com/push/1 --topic https://example.com/feed/alice
    python scripts/renew_subscription.py --owner 1 --nick alice \
        --callback https://reader.example.com/push/1 --topic https://example.com/feed/alice --unsubscribe
"""

import argparse
import sys
from pathlib import Path

# 프로젝트 루트를 Python path에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

import logging
logging.basicConfig(level=logging.INFO, format="%(message)s")

from pushhub.config import settings
from pushhub.database import SqlSubscriptionStore
from pushhub.dispatcher import QueueDispatcher
from pushhub.subscription import SubscriptionLifecycle


def main():
    parser = argparse.ArgumentParser(description="PushHub 구독 갱신")
    parser.add_argument("--owner", type=int, required=True, help="소유자 ID")
    parser.add_argument("--nick", required=True, help="소유자 닉네임")
    parser.add_argument("--callback", required=True, help="구독자 콜백 URL")
    parser.add_argument("--topic", required=True, help="구독 토픽 URL")
    parser.add_argument("--secret", default="", help="구독 비밀값")
    parser.add_argument("--unsubscribe", action="store_true", help="구독 해지")

    args = parser.parse_args()

    print("\n" + "=" * 50)
    print("PushHub 구독 갱신")
    print("=" * 50)

    store = SqlSubscriptionStore(settings.database_url)
    lifecycle = SubscriptionLifecycle(store, QueueDispatcher())

    subscriber = lifecycle.renew(
        owner_id=args.owner,
        nickname=args.nick,
        subscribe=not args.unsubscribe,
        callback_url=args.callback,
        topic=args.topic,
        secret=args.secret,
    )

    if subscriber is None:
        print(f"\n구독 해지 완료: {args.callback}")
    else:
        print(f"\n구독 완료!")
        print(f"  - 구독자 ID: {subscriber.id}")
        print(f"  - 콜백: {subscriber.callback_url}")
        print(f"  - 토픽: {subscriber.topic}")
        print(f"  - 상태: {subscriber.state.name}")

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()
