"""
PushHub Web Application
Subscriber status API
"""

import logging

from fastapi import FastAPI

from .routes import api_router

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="PushHub",
    description="푸시 구독자 전송 상태 조회",
    version="0.1.0"
)

app.include_router(api_router)
