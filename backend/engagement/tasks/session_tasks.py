import logging
from datetime import timedelta
from typing import Optional

from engagement.celery_app import celery_app
from engagement.config.dependency_injection import get_media_client, get_session_lock
from engagement.core.config import settings
from engagement.db.database import SessionLocal
from engagement.services.content_descriptor import SqlContentDescriptorService
from engagement.services.learning_session_service import LearningSessionService

logger = logging.getLogger(__name__)


@celery_app.task(name='engagement.tasks.session_tasks.sweep_abandoned_sessions_task')
def sweep_abandoned_sessions_task(older_than_hours: Optional[int] = None) -> int:
    """关闭开始时间和最后心跳都早于阈值的会话，释放其媒体句柄"""
    hours = older_than_hours or settings.ABANDONED_SESSION_HOURS
    db = SessionLocal()
    try:
        service = LearningSessionService(
            db=db,
            content_descriptor=SqlContentDescriptorService(db),
            media_client=get_media_client(),
            lock=get_session_lock()
        )
        closed = service.cleanup_abandoned_sessions(timedelta(hours=hours))
        logger.info(f"Sweep Task: 关闭了 {closed} 个超过 {hours} 小时的会话")
        return closed
    except Exception as e:
        logger.error(f"Sweep Task: 清理被遗弃会话失败: {e}")
        raise
    finally:
        db.close()
