from sqlalchemy import Column, Integer, String
from engagement.db.base_class import Base

class ModuleContent(Base):
    """课程内容描述模型

    由课程管理系统维护，本服务只读。

    Attributes:
        id: 内容ID
        course_id: 所属课程ID
        module_id: 所属模块ID
        title: 内容标题
        content_type: 'video' 或 'document'
        duration_seconds: 视频时长（秒），仅视频有值
        page_count: 文档页数，仅文档有值
    """
    __tablename__ = "module_contents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, index=True, nullable=False)
    module_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=True)
    content_type = Column(String, nullable=False)
    duration_seconds = Column(Integer, nullable=True)
    page_count = Column(Integer, nullable=True)
