"""
课程分配协作者

课程整体完成度重新计算后，写回课程分配记录（进度百分比 + 状态）。
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from engagement.core.clock import utcnow
from engagement.crud.crud_assignment import course_assignment as crud_assignment

logger = logging.getLogger(__name__)

STATUS_ASSIGNED = "assigned"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


def status_for_progress(percentage: float) -> str:
    """0% 为 assigned，100% 为 completed，其余为 in_progress"""
    if percentage >= 100:
        return STATUS_COMPLETED
    if percentage > 0:
        return STATUS_IN_PROGRESS
    return STATUS_ASSIGNED


class CourseAssignmentGateway(ABC):

    @abstractmethod
    def set_progress(
        self,
        course_id: int,
        user_id: int,
        percentage: float,
        status: str,
        completed_at: Optional[datetime] = None
    ) -> None:
        """写回课程进度"""


class SqlCourseAssignmentGateway(CourseAssignmentGateway):
    def __init__(self, db: Session):
        self.db = db

    def set_progress(
        self,
        course_id: int,
        user_id: int,
        percentage: float,
        status: str,
        completed_at: Optional[datetime] = None
    ) -> None:
        assignment = crud_assignment.get_by_course_user(self.db, course_id=course_id, user_id=user_id)
        if assignment is None:
            logger.warning(f"SqlCourseAssignmentGateway: 用户 {user_id} 没有课程 {course_id} 的分配记录，跳过写回")
            return

        update_data = {
            "progress_percentage": min(100.0, max(0.0, percentage)),
            "status": status,
            "completed_at": completed_at,
        }
        if assignment.started_at is None and status != STATUS_ASSIGNED:
            update_data["started_at"] = utcnow()

        crud_assignment.update(self.db, db_obj=assignment, obj_in=update_data)
        logger.info(
            f"SqlCourseAssignmentGateway: 课程 {course_id} 用户 {user_id} 进度 {percentage}% 状态 {status}"
        )
