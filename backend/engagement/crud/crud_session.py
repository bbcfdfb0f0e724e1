from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from engagement.crud.base import CRUDBase, SortDirection
from engagement.models.learning_session import LearningSession
from engagement.schemas.session import LearningSessionCreate


class CRUDLearningSession(CRUDBase[LearningSession, LearningSessionCreate, LearningSessionCreate]):
    def get_open_sessions(
        self, db: Session, *, user_id: int, content_id: int, for_update: bool = False
    ) -> List[LearningSession]:
        """
        查询 (user_id, content_id) 下所有未结束的会话，最新的在前。

        Args:
            db: 数据库会话
            user_id: 用户ID
            content_id: 内容ID
            for_update: 是否对查询结果加行锁

        Returns:
            List[LearningSession]: 未结束的会话列表
        """
        return self.get_multi(
            db,
            limit=None,
            filter_conditions={"user_id": user_id, "content_id": content_id, "session_end": None},
            sort_by=[("session_start", SortDirection.DESC), ("id", SortDirection.DESC)],
            for_update=for_update
        )

    def get_active(self, db: Session, *, user_id: int, content_id: int) -> Optional[LearningSession]:
        """获取最近开始的未结束会话"""
        sessions = self.get_open_sessions(db, user_id=user_id, content_id=content_id)
        return sessions[0] if sessions else None

    def get_abandoned(self, db: Session, *, cutoff: datetime) -> List[LearningSession]:
        """
        查询开始时间和最后心跳都早于 cutoff 的未结束会话。

        Args:
            db: 数据库会话
            cutoff: 截止时间

        Returns:
            List[LearningSession]: 被遗弃的会话
        """
        candidates = self.get_multi(
            db,
            limit=None,
            filter_conditions={"session_end": None, "session_start": {"lt": cutoff}},
            sort_by="session_start"
        )
        return [s for s in candidates if s.last_heartbeat is None or s.last_heartbeat < cutoff]

# 实例化并暴露给服务层使用
learning_session = CRUDLearningSession(LearningSession)
