from sqlalchemy import Column, Integer, String, DateTime, Float, UniqueConstraint
from engagement.db.base_class import Base

class CourseAssignment(Base):
    """课程分配记录

    归属于课程分配系统，本服务只通过 CourseAssignmentGateway 回写
    进度百分比和状态。

    Attributes:
        status: 'assigned' | 'in_progress' | 'completed'
        progress_percentage: 课程整体完成百分比
        started_at: 状态第一次离开 'assigned' 的时间
        completed_at: 达到100%的时间
    """
    __tablename__ = "course_assignments"
    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_course_assignment_course_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    status = Column(String, nullable=False, default="assigned")
    progress_percentage = Column(Float, nullable=False, default=0.0)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
