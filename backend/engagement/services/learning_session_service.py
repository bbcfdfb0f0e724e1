import logging
import math
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from engagement.core.clock import utcnow
from engagement.core.exceptions import (
    ContentNotFoundError,
    ResourceReleaseError,
    SessionEndedError,
    SessionNotFoundError,
    ValidationError,
)
from engagement.core.locks import KeyedLock, LocalKeyedLock
from engagement.crud.crud_session import learning_session as crud_session
from engagement.models.learning_session import LearningSession
from engagement.schemas.session import LearningSessionCreate
from engagement.services.content_descriptor import ContentDescriptorService
from engagement.services.media_resource import MediaResourceClient, NullMediaResourceClient
from engagement.services.scoring import score_session

# 配置日志
logger = logging.getLogger(__name__)


class LearningSessionService:
    """
    学习会话生命周期管理

    状态机：OPEN --heartbeat--> OPEN --end--> ENDED。
    同一 (user_id, content_id) 最多一个 OPEN 会话：start 会先强制关闭已打开的会话，
    整个"关闭旧会话 -> 创建新会话"过程在按 (user_id, content_id) 的锁内完成。
    """
    # 废弃会话阈值
    ABANDONED_AFTER = timedelta(hours=2)

    def __init__(
        self,
        db: Session,
        content_descriptor: ContentDescriptorService,
        media_client: Optional[MediaResourceClient] = None,
        lock: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.content_descriptor = content_descriptor
        self.media_client = media_client or NullMediaResourceClient()
        self.lock = lock or LocalKeyedLock()
        self.clock = clock

    @staticmethod
    def _duration_minutes(session: LearningSession, until: datetime) -> int:
        """墙钟时长，按秒计算后向上取整为分钟"""
        seconds = max(0.0, (until - session.session_start).total_seconds())
        return math.ceil(seconds / 60)

    @staticmethod
    def _validate_increments(**increments: int) -> None:
        for name, value in increments.items():
            if value is None or value < 0:
                raise ValidationError(f"{name} must be a non-negative increment, got {value}")

    def _release_handle(self, session: LearningSession) -> None:
        """释放会话持有的媒体句柄，失败只记录日志"""
        if not session.resource_handle:
            return
        try:
            self.media_client.release(session.resource_handle)
        except ResourceReleaseError as e:
            logger.warning(f"LearningSessionService: 会话 {session.id} {e.message}")
        except Exception:
            logger.exception(
                f"LearningSessionService: 会话 {session.id} 释放句柄 {session.resource_handle} 时发生异常"
            )

    def _get_session(self, session_id: int) -> LearningSession:
        session = crud_session.get(self.db, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def start(
        self,
        user_id: int,
        content_id: int,
        initial_position: float = 0.0,
        resource_handle: Optional[str] = None
    ) -> LearningSession:
        """
        开始新的学习会话

        Args:
            user_id: 用户ID
            content_id: 内容ID
            initial_position: 初始播放位置
            resource_handle: 播放器获取的媒体句柄（可选）

        Returns:
            LearningSession: 新创建的会话
        """
        if initial_position < 0:
            raise ValidationError(f"initial_position must be >= 0, got {initial_position}")

        content = self.content_descriptor.get_content(content_id)

        with self.lock.hold("session", user_id, content_id):
            now = self.clock()
            stale_sessions = crud_session.get_open_sessions(
                self.db, user_id=user_id, content_id=content_id, for_update=True
            )
            for stale in stale_sessions:
                self._release_handle(stale)
                stale.session_end = now
                stale.duration_minutes = self._duration_minutes(stale, now)
                self.db.add(stale)
                logger.info(
                    f"LearningSessionService: 强制关闭用户 {user_id} 内容 {content_id} 的旧会话 {stale.id}，"
                    f"时长 {stale.duration_minutes} 分钟"
                )

            # 旧会话的关闭和新会话的创建在同一次提交中完成
            session = crud_session.create(self.db, obj_in=LearningSessionCreate(
                user_id=user_id,
                content_id=content_id,
                course_id=content.course_id,
                session_start=now,
                last_heartbeat=now,
                start_position=initial_position,
                resource_handle=resource_handle
            ))

        logger.info(f"LearningSessionService: 用户 {user_id} 开始会话 {session.id}（内容 {content_id}）")
        return session

    def heartbeat(
        self,
        session_id: int,
        watch_time: int = 0,
        skip_count: int = 0,
        seek_count: int = 0,
        pause_count: int = 0
    ) -> LearningSession:
        """
        累加自上次心跳以来的增量，并根据墙钟重新计算时长

        Raises:
            SessionNotFoundError: 会话不存在
            SessionEndedError: 会话已结束，心跳不能复活已关闭的会话
        """
        self._validate_increments(
            watch_time=watch_time, skip_count=skip_count, seek_count=seek_count, pause_count=pause_count
        )
        session = self._get_session(session_id)

        with self.lock.hold("session", session.user_id, session.content_id):
            self.db.refresh(session)
            if not session.is_open:
                raise SessionEndedError(session_id)

            now = self.clock()
            session = crud_session.update(self.db, db_obj=session, obj_in={
                "last_heartbeat": now,
                "duration_minutes": self._duration_minutes(session, now),
                "watch_time": (session.watch_time or 0) + watch_time,
                "skip_count": (session.skip_count or 0) + skip_count,
                "seek_count": (session.seek_count or 0) + seek_count,
                "pause_count": (session.pause_count or 0) + pause_count,
            })

        logger.debug(
            f"LearningSessionService: 会话 {session_id} 心跳，时长 {session.duration_minutes} 分钟，"
            f"观看 {session.watch_time}s，跳过 {session.skip_count} 次"
        )
        return session

    def end(
        self,
        session_id: int,
        completion_percentage: float,
        watch_time: int = 0,
        skip_count: int = 0,
        seek_count: int = 0,
        pause_count: int = 0
    ) -> LearningSession:
        """
        结束会话并计算最终评分

        幂等：已结束的会话原样返回，不会重新评分。

        Args:
            session_id: 会话ID
            completion_percentage: 结束时的完成百分比，裁剪到 [0, 100]
            watch_time / skip_count / seek_count / pause_count: 最后一段的增量

        Returns:
            LearningSession: 已结束的会话
        """
        session = self._get_session(session_id)

        with self.lock.hold("session", session.user_id, session.content_id):
            self.db.refresh(session)
            if not session.is_open:
                logger.info(f"LearningSessionService: 会话 {session_id} 已结束，忽略重复的 end 请求")
                return session

            self._validate_increments(
                watch_time=watch_time, skip_count=skip_count, seek_count=seek_count, pause_count=pause_count
            )

            # 先释放句柄，再结束会话
            self._release_handle(session)

            now = self.clock()
            duration = self._duration_minutes(session, now)
            total_skips = (session.skip_count or 0) + skip_count
            completion = min(100.0, max(0.0, completion_percentage))

            try:
                content = self.content_descriptor.get_content(session.content_id)
            except ContentNotFoundError:
                logger.warning(
                    f"LearningSessionService: 会话 {session_id} 的内容 {session.content_id} 不存在，按未知时长评分"
                )
                content = None

            scores = score_session(duration, total_skips, completion, content)

            session = crud_session.update(self.db, db_obj=session, obj_in={
                "session_end": now,
                "last_heartbeat": now,
                "duration_minutes": duration,
                "watch_time": (session.watch_time or 0) + watch_time,
                "skip_count": total_skips,
                "seek_count": (session.seek_count or 0) + seek_count,
                "pause_count": (session.pause_count or 0) + pause_count,
                "completion_percentage_at_end": completion,
                "attention_score": scores.attention_score,
                "cheating_score": scores.cheating_score,
                "is_suspicious": scores.is_suspicious,
            })

        logger.info(
            f"LearningSessionService: 会话 {session_id} 结束，时长 {duration} 分钟，完成度 {completion}%，"
            f"注意力 {scores.attention_score}，作弊嫌疑 {scores.cheating_score}，可疑 {scores.is_suspicious}"
        )
        return session

    def get_session(self, session_id: int, user_id: int = None, content_id: int = None) -> LearningSession:
        """按ID获取会话；指定 user_id/content_id 时，不属于该用户或内容的会话视为不存在"""
        session = self._get_session(session_id)
        if user_id is not None and session.user_id != user_id:
            raise SessionNotFoundError(session_id)
        if content_id is not None and session.content_id != content_id:
            raise SessionNotFoundError(session_id)
        return session

    def get_active_session(self, user_id: int, content_id: int) -> Optional[LearningSession]:
        """获取 (user_id, content_id) 当前打开的会话"""
        return crud_session.get_active(self.db, user_id=user_id, content_id=content_id)

    def cleanup_abandoned_sessions(self, older_than: Optional[timedelta] = None) -> int:
        """
        关闭被遗弃的会话（开始时间和最后心跳都早于阈值）

        会话结束时间记为截止时间，不进行评分。由后台清理任务调用，不在请求路径上执行。

        Args:
            older_than: 阈值，默认2小时

        Returns:
            int: 被关闭的会话数量
        """
        cutoff = self.clock() - (older_than or self.ABANDONED_AFTER)
        abandoned: List[LearningSession] = crud_session.get_abandoned(self.db, cutoff=cutoff)

        closed = 0
        for session in abandoned:
            with self.lock.hold("session", session.user_id, session.content_id):
                self.db.refresh(session)
                if not session.is_open:
                    continue
                self._release_handle(session)
                crud_session.update(self.db, db_obj=session, obj_in={
                    "session_end": cutoff,
                    "duration_minutes": self._duration_minutes(session, cutoff),
                })
                closed += 1

        if closed:
            logger.info(f"LearningSessionService: 清理了 {closed} 个被遗弃的会话（截止 {cutoff.isoformat()}）")
        return closed
