"""
内容描述协作者

内容（视频/文档）由课程管理系统维护，本服务只读取内容类型、时长提示以及
所属课程/模块。默认实现直接读取同库的 module_contents 表。
"""
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.orm import Session

from engagement.core.exceptions import ContentNotFoundError
from engagement.crud.crud_content import module_content as crud_content
from engagement.schemas.content import ContentDescriptor


class ContentDescriptorService(ABC):

    @abstractmethod
    def get_content(self, content_id: int) -> ContentDescriptor:
        """获取内容描述，不存在时抛出 ContentNotFoundError"""

    @abstractmethod
    def count_course_contents(self, course_id: int) -> int:
        """课程下所有模块的内容总数"""

    def get_content_type(self, content_id: int) -> str:
        return self.get_content(content_id).content_type

    def get_expected_duration_hint(self, content_id: int) -> Optional[int]:
        return self.get_content(content_id).duration_hint


class SqlContentDescriptorService(ContentDescriptorService):
    def __init__(self, db: Session):
        self.db = db

    def get_content(self, content_id: int) -> ContentDescriptor:
        content = crud_content.get(self.db, content_id)
        if content is None:
            raise ContentNotFoundError(content_id)
        return ContentDescriptor.model_validate(content)

    def count_course_contents(self, course_id: int) -> int:
        return crud_content.count_by_course(self.db, course_id=course_id)
