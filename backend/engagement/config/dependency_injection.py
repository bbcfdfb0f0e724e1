import logging
from typing import Optional

import redis
from fastapi import Depends
from sqlalchemy.orm import Session

from engagement.core.config import settings
from engagement.core.locks import KeyedLock, LocalKeyedLock, RedisKeyedLock
from engagement.db.database import get_db
from engagement.services.content_descriptor import ContentDescriptorService, SqlContentDescriptorService
from engagement.services.content_progress_service import ContentProgressService
from engagement.services.course_assignment import CourseAssignmentGateway, SqlCourseAssignmentGateway
from engagement.services.learning_session_service import LearningSessionService
from engagement.services.media_resource import (
    HttpMediaResourceClient,
    MediaResourceClient,
    NullMediaResourceClient,
)

logger = logging.getLogger(__name__)


_redis_client_instance = None

def get_redis_client() -> redis.Redis:
    """
    获取 Redis 客户端单例实例
    """
    global _redis_client_instance
    if _redis_client_instance is None:
        _redis_client_instance = redis.from_url(settings.REDIS_URL)
    return _redis_client_instance


_session_lock_instance: Optional[KeyedLock] = None

def get_session_lock() -> KeyedLock:
    """
    获取按 (user_id, content_id) 串行化的锁（单例）

    SESSION_LOCK_BACKEND=redis 时多个 worker 共享 Redis 锁，否则使用进程内锁。
    """
    global _session_lock_instance
    if _session_lock_instance is None:
        if settings.SESSION_LOCK_BACKEND == "redis":
            _session_lock_instance = RedisKeyedLock(
                get_redis_client(), timeout=settings.SESSION_LOCK_TIMEOUT_SECONDS
            )
        else:
            _session_lock_instance = LocalKeyedLock(timeout=settings.SESSION_LOCK_TIMEOUT_SECONDS)
        logger.info(f"Session lock backend: {type(_session_lock_instance).__name__}")
    return _session_lock_instance


_media_client_instance: Optional[MediaResourceClient] = None

def get_media_client() -> MediaResourceClient:
    """
    获取媒体资源客户端（单例），未配置 MEDIA_SERVICE_URL 时不发起请求
    """
    global _media_client_instance
    if _media_client_instance is None:
        if settings.MEDIA_SERVICE_URL:
            _media_client_instance = HttpMediaResourceClient(
                settings.MEDIA_SERVICE_URL, timeout=settings.MEDIA_SERVICE_TIMEOUT_SECONDS
            )
        else:
            _media_client_instance = NullMediaResourceClient()
    return _media_client_instance


# --- 每个请求构建的服务 ---

def get_content_descriptor(db: Session = Depends(get_db)) -> ContentDescriptorService:
    return SqlContentDescriptorService(db)


def get_assignment_gateway(db: Session = Depends(get_db)) -> CourseAssignmentGateway:
    return SqlCourseAssignmentGateway(db)


def get_learning_session_service(
    db: Session = Depends(get_db),
    content_descriptor: ContentDescriptorService = Depends(get_content_descriptor),
    media_client: MediaResourceClient = Depends(get_media_client),
    lock: KeyedLock = Depends(get_session_lock)
) -> LearningSessionService:
    """
    获取 LearningSessionService 实例
    """
    return LearningSessionService(
        db=db,
        content_descriptor=content_descriptor,
        media_client=media_client,
        lock=lock
    )


def get_content_progress_service(
    db: Session = Depends(get_db),
    content_descriptor: ContentDescriptorService = Depends(get_content_descriptor),
    assignment_gateway: CourseAssignmentGateway = Depends(get_assignment_gateway),
    lock: KeyedLock = Depends(get_session_lock)
) -> ContentProgressService:
    """
    获取 ContentProgressService 实例
    """
    return ContentProgressService(
        db=db,
        content_descriptor=content_descriptor,
        assignment_gateway=assignment_gateway,
        lock=lock
    )
