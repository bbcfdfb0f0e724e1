from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, Index
from engagement.db.base_class import Base

class LearningSession(Base):
    """学习会话模型

    一次用户观看/阅读某个内容的观察窗口。session_end 为空表示会话仍然打开，
    同一 (user_id, content_id) 最多只有一个打开的会话。会话从不删除，保留用于审计。

    Attributes:
        session_start: 会话开始时间，创建后不可变
        session_end: 会话结束时间，只设置一次
        last_heartbeat: 最后一次心跳时间
        start_position: start 时客户端上报的初始位置
        duration_minutes: 墙钟时长（分钟，向上取整），每次心跳/结束时重新计算
        watch_time / skip_count / seek_count / pause_count: 累计计数器
        completion_percentage_at_end: 结束时的完成百分比
        attention_score / cheating_score / is_suspicious: 结束时的评分结果
        resource_handle: 外部媒体服务的句柄，关闭时释放
    """
    __tablename__ = "learning_sessions"
    __table_args__ = (Index("ix_learning_sessions_open", "user_id", "content_id", "session_end"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, index=True, nullable=False)
    content_id = Column(Integer, index=True, nullable=False)
    course_id = Column(Integer, index=True, nullable=False)

    session_start = Column(DateTime, nullable=False)
    session_end = Column(DateTime, nullable=True)
    last_heartbeat = Column(DateTime, nullable=True)
    start_position = Column(Float, nullable=False, default=0.0)

    duration_minutes = Column(Integer, nullable=False, default=0)
    watch_time = Column(Integer, nullable=False, default=0)
    skip_count = Column(Integer, nullable=False, default=0)
    seek_count = Column(Integer, nullable=False, default=0)
    pause_count = Column(Integer, nullable=False, default=0)

    completion_percentage_at_end = Column(Float, nullable=True)
    attention_score = Column(Integer, nullable=True)
    cheating_score = Column(Integer, nullable=True)
    is_suspicious = Column(Boolean, nullable=False, default=False)

    resource_handle = Column(String, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.session_end is None
