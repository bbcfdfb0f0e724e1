from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """内容类型枚举"""
    VIDEO = "video"
    DOCUMENT = "document"


class ModuleContentCreate(BaseModel):
    """内容描述创建模型（由课程管理系统或测试数据写入）"""
    course_id: int
    module_id: int
    title: Optional[str] = None
    content_type: str
    duration_seconds: Optional[int] = Field(None, ge=0)
    page_count: Optional[int] = Field(None, ge=0)


class ContentDescriptor(BaseModel):
    """内容描述

    本服务消费的只读视图。content_type 保留原始字符串，
    未知类型不会被拒绝，只是不参与时长相关的评分。

    Attributes:
        content_id: 内容ID
        course_id: 所属课程ID
        module_id: 所属模块ID
        content_type: 'video' | 'document' | 其他
        duration_seconds: 视频时长（秒）
        page_count: 文档页数
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    content_id: int = Field(..., validation_alias=AliasChoices("content_id", "id"))
    course_id: int
    module_id: int
    content_type: str
    duration_seconds: Optional[int] = None
    page_count: Optional[int] = None

    @property
    def duration_hint(self) -> Optional[int]:
        """时长提示：视频为秒数，文档为页数"""
        if self.content_type == ContentType.VIDEO:
            return self.duration_seconds
        if self.content_type == ContentType.DOCUMENT:
            return self.page_count
        return None

    @property
    def final_position(self) -> float:
        """内容的终点位置：视频末尾秒数或文档最后一页"""
        return float(self.duration_hint or 0)

