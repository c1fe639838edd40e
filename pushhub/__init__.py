"""
PushHub - 푸시 구독자 전송 스케줄링 및 재시도 관리
"""
