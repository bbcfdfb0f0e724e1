import logging
from typing import Dict, List, Optional
from sqlalchemy import func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from engagement.crud.base import CRUDBase
from engagement.models.content_progress import ContentProgress
from engagement.schemas.progress import ContentProgressCreate

logger = logging.getLogger(__name__)


class CRUDContentProgress(CRUDBase[ContentProgress, ContentProgressCreate, ContentProgressCreate]):
    def get_by_user_content(self, db: Session, *, user_id: int, content_id: int) -> Optional[ContentProgress]:
        results = self.get_multi(db, limit=1, filter_conditions={"user_id": user_id, "content_id": content_id})
        return results[0] if results else None

    def get_or_create(self, db: Session, *, obj_in: ContentProgressCreate) -> ContentProgress:
        """
        获取或创建进度记录。

        (user_id, content_id) 上有唯一约束，并发创建时失败的一方回滚后
        读取胜出方写入的记录。

        Args:
            db: 数据库会话
            obj_in: 新记录的初始数据

        Returns:
            ContentProgress: 已存在或新建的进度记录
        """
        existing = self.get_by_user_content(db, user_id=obj_in.user_id, content_id=obj_in.content_id)
        if existing:
            return existing
        try:
            return self.create(db, obj_in=obj_in)
        except IntegrityError:
            db.rollback()
            logger.info(f"CRUDContentProgress: 并发创建 user={obj_in.user_id} content={obj_in.content_id}，读取已有记录")
            return self.get_by_user_content(db, user_id=obj_in.user_id, content_id=obj_in.content_id)

    def count_completed(self, db: Session, *, user_id: int, course_id: int) -> int:
        """统计用户在课程下已完成的内容数量"""
        return self.get_count(
            db,
            filter_conditions={"user_id": user_id, "course_id": course_id, "is_completed": True}
        )

    def get_stats(self, db: Session, *, user_id: int, course_id: int) -> Dict[str, float]:
        """聚合用户在课程下的进度统计（条目数、完成数、平均完成度、总观看时长）"""
        row = (
            db.query(
                func.count(self.model.id),
                func.sum(case((self.model.is_completed.is_(True), 1), else_=0)),
                func.avg(self.model.completion_percentage),
                func.sum(self.model.watch_time),
            )
            .filter(self.model.user_id == user_id, self.model.course_id == course_id)
            .one()
        )
        total_items, completed_items, avg_completion, total_watch_time = row
        return {
            "total_items": int(total_items or 0),
            "completed_items": int(completed_items or 0),
            "avg_completion": float(avg_completion or 0),
            "total_watch_time": int(total_watch_time or 0),
        }

    def get_bulk(self, db: Session, *, user_id: int, content_ids: List[int]) -> List[ContentProgress]:
        if not content_ids:
            return []
        return self.get_multi(
            db,
            limit=None,
            filter_conditions={"user_id": user_id, "content_id": {"in": content_ids}}
        )

# 实例化并暴露给服务层使用
content_progress = CRUDContentProgress(ContentProgress)
