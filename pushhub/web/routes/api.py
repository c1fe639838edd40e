"""API Routes - 구독자 상태 조회 REST API"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from pushhub.database import SqlSubscriptionStore
from pushhub.subscription.models import utcnow
from pushhub.subscription.store import StoreUnavailableError, SubscriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_store = None


def get_store() -> SubscriptionStore:
    global _store
    if _store is None:
        _store = SqlSubscriptionStore()
    return _store


@router.get("/subscribers/stats")
async def get_subscriber_stats(store: SubscriptionStore = Depends(get_store)):
    try:
        counts = store.count_by_state()
        due = len(store.list_due(utcnow()))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "states": counts,
        "total": sum(counts.values()),
        "due": due,
    }


@router.get("/subscribers/{subscriber_id}")
async def get_subscriber(subscriber_id: int, store: SubscriptionStore = Depends(get_store)):
    try:
        subscriber = store.get_by_id(subscriber_id)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if subscriber is None:
        raise HTTPException(status_code=404, detail="Subscriber not found")
    return subscriber.to_dict()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
