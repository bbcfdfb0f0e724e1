from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, UniqueConstraint
from engagement.db.base_class import Base

class ContentProgress(Base):
    """用户内容进度模型

    每个 (user_id, content_id) 唯一一条记录，记录用户在某个内容上的进度。

    Attributes:
        course_id / module_id / content_type: 从内容描述冗余的字段
        watch_time: 累计有效观看时长（秒），已扣除跳过的部分
        playback_position: 播放位置（视频为秒，文档为页码）
        completion_percentage: 完成百分比 [0, 100]
        is_completed: 是否已完成，一旦为True不会被进度更新清除
        task_completed: 独立的手动完成标记
        last_accessed_at: 最后访问时间
        completed_at: 第一次完成的时间
    """
    __tablename__ = "content_progress"
    __table_args__ = (UniqueConstraint("user_id", "content_id", name="uq_content_progress_user_content"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, index=True, nullable=False)
    content_id = Column(Integer, index=True, nullable=False)
    course_id = Column(Integer, index=True, nullable=False)
    module_id = Column(Integer, nullable=False)
    content_type = Column(String, nullable=False)
    watch_time = Column(Integer, nullable=False, default=0)
    playback_position = Column(Float, nullable=False, default=0.0)
    completion_percentage = Column(Float, nullable=False, default=0.0)
    is_completed = Column(Boolean, nullable=False, default=False)
    task_completed = Column(Boolean, nullable=False, default=False)
    last_accessed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
