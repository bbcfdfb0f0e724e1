from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class ContentProgressCreate(BaseModel):
    """内容进度创建模型，数值字段全部为0"""
    user_id: int
    content_id: int
    course_id: int
    module_id: int
    content_type: str


class ProgressUpdateRequest(BaseModel):
    """进度上报请求

    Attributes:
        current_position: 当前播放位置（视频为秒，文档为页码）
        completion_percentage: 客户端计算的完成百分比，服务端会裁剪到[0, 100]
        watch_time: 本次上报的观看时长（秒），检测到跳过时会被扣减
    """
    user_id: int = Field(..., gt=0)
    content_id: int = Field(..., gt=0)
    current_position: float = Field(..., ge=0)
    completion_percentage: float
    watch_time: Optional[int] = Field(None, ge=0)


class ProgressUpdateResponse(BaseModel):
    success: bool = True
    completion_percentage: float
    is_completed: bool
    skip_detected: bool = False


class ContentCompleteRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    content_id: int = Field(..., gt=0)


class ContentCompleteResponse(BaseModel):
    success: bool = True
    completion_percentage: float = 100.0
    is_completed: bool = True
    course_progress: float


class ContentProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    content_id: int
    course_id: int
    module_id: int
    content_type: str
    watch_time: int
    playback_position: float
    completion_percentage: float
    is_completed: bool
    task_completed: bool
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ProgressStats(BaseModel):
    """用户在某课程下的进度统计"""
    total_items: int
    completed_items: int
    avg_completion: float
    total_watch_time: int
    completion_rate: float


class BulkProgressResponse(BaseModel):
    progress: Dict[int, ContentProgressOut]
