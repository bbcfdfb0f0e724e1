import logging
import os
from datetime import timedelta
from celery import Celery, signals
from engagement.core.config import settings
from engagement.config.dependency_injection import get_media_client, get_session_lock

# 配置日志记录器
logger = logging.getLogger(__name__)

# 创建 Celery 应用实例
celery_app = Celery(
    "learning_engagement_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "engagement.tasks.session_tasks",
    ]
)

# Celery 配置
celery_app.conf.update(
    # 任务序列化格式
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # 时区设置
    timezone="UTC",
    enable_utc=True,

    # 队列配置
    task_routes={
        'engagement.tasks.session_tasks.sweep_abandoned_sessions_task': {'queue': 'maintenance_queue'},
    },
    task_default_queue='default',

    # 定时清理被遗弃的会话（celery beat）
    beat_schedule={
        'sweep-abandoned-sessions': {
            'task': 'engagement.tasks.session_tasks.sweep_abandoned_sessions_task',
            'schedule': timedelta(minutes=settings.SWEEP_INTERVAL_MINUTES),
        },
    },
)


@signals.worker_process_init.connect
def init_worker_process(sender=None, **kwargs):
    """
    在 Worker 进程启动时初始化会话锁和媒体客户端单例。
    """
    lock = get_session_lock()
    media_client = get_media_client()
    logger.info(
        f"Worker (PID: {os.getpid()}) initialized with {type(lock).__name__} "
        f"and {type(media_client).__name__}, sweep every {settings.SWEEP_INTERVAL_MINUTES} minutes."
    )
