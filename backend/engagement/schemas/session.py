from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, RootModel


class LearningSessionCreate(BaseModel):
    """学习会话创建模型，计数器全部从0开始"""
    user_id: int
    content_id: int
    course_id: int
    session_start: datetime
    last_heartbeat: datetime
    start_position: float = 0.0
    resource_handle: Optional[str] = None


class SessionIncrements(BaseModel):
    """自上次心跳以来的增量计数，由客户端计算，服务端只做累加

    Attributes:
        watch_time: 新增观看时长（秒）
        skip_count: 新增跳过次数
        seek_count: 新增拖动次数
        pause_count: 新增暂停次数
    """
    watch_time: int = Field(0, ge=0, description="自上次心跳以来新增的观看时长（秒）")
    skip_count: int = Field(0, ge=0, description="新增跳过次数")
    seek_count: int = Field(0, ge=0, description="新增拖动次数")
    pause_count: int = Field(0, ge=0, description="新增暂停次数")


class _SessionActionBase(BaseModel):
    user_id: int = Field(..., gt=0)
    content_id: int = Field(..., gt=0)


class SessionStartRequest(_SessionActionBase):
    action: Literal["start"]
    current_position: float = Field(0, ge=0, description="初始播放位置（秒或页码）")
    resource_handle: Optional[str] = Field(None, description="播放器获取的媒体句柄")


class SessionHeartbeatRequest(_SessionActionBase, SessionIncrements):
    action: Literal["heartbeat"]
    session_id: Optional[int] = Field(None, description="会话ID，缺省时使用该内容当前打开的会话")


class SessionEndRequest(_SessionActionBase, SessionIncrements):
    action: Literal["end"]
    session_id: Optional[int] = Field(None, description="会话ID，缺省时使用该内容当前打开的会话")
    completion_percentage: float = Field(..., description="播放器上报的完成百分比")


class SessionActionRequest(RootModel):
    """POST /session 的请求体，按 action 字段区分"""
    root: Annotated[
        Union[SessionStartRequest, SessionHeartbeatRequest, SessionEndRequest],
        Field(discriminator="action"),
    ]


class SessionStartResponse(BaseModel):
    success: bool = True
    session_id: int


class SessionHeartbeatResponse(BaseModel):
    success: bool = True
    session_id: int
    duration_minutes: int


class SessionEndResponse(BaseModel):
    success: bool = True
    session_id: int
    attention_score: Optional[int] = None
    cheating_score: Optional[int] = None
    is_suspicious: bool = False
    engagement_level: Optional[str] = None
    cheating_risk: Optional[str] = None
