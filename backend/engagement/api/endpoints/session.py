# backend/engagement/api/endpoints/session.py
"""
学习会话端点：start / heartbeat / end 通过同一个 POST 接口的 action 字段区分。
"""
import logging
from typing import Union
from fastapi import APIRouter, Depends

from engagement.config.dependency_injection import get_learning_session_service
from engagement.core.exceptions import SessionNotFoundError
from engagement.schemas.session import (
    SessionActionRequest,
    SessionEndRequest,
    SessionEndResponse,
    SessionHeartbeatRequest,
    SessionHeartbeatResponse,
    SessionStartRequest,
    SessionStartResponse,
)
from engagement.services.learning_session_service import LearningSessionService
from engagement.services.scoring import cheating_risk, engagement_level

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_session_id(
    action_in: Union[SessionHeartbeatRequest, SessionEndRequest],
    service: LearningSessionService
) -> int:
    """请求中带 session_id 时校验归属，否则使用该内容当前打开的会话"""
    if action_in.session_id is not None:
        session = service.get_session(
            action_in.session_id, user_id=action_in.user_id, content_id=action_in.content_id
        )
        return session.id

    session = service.get_active_session(action_in.user_id, action_in.content_id)
    if session is None:
        raise SessionNotFoundError(message=(
            f"No active session for user {action_in.user_id} and content {action_in.content_id}"
        ))
    return session.id


@router.post("", summary="管理学习会话")
def manage_session(
    session_in: SessionActionRequest,
    service: LearningSessionService = Depends(get_learning_session_service)
):
    """
    管理学习会话

    - **start**: 关闭该内容已打开的会话后创建新会话
    - **heartbeat**: 累加自上次心跳以来的增量
    - **end**: 结束会话并计算评分，重复调用返回已结束的会话
    """
    action_in = session_in.root
    logger.info(
        f"Session endpoint: action={action_in.action} user_id={action_in.user_id} content_id={action_in.content_id}"
    )

    if isinstance(action_in, SessionStartRequest):
        session = service.start(
            action_in.user_id,
            action_in.content_id,
            initial_position=action_in.current_position,
            resource_handle=action_in.resource_handle
        )
        return SessionStartResponse(session_id=session.id)

    session_id = _resolve_session_id(action_in, service)

    if isinstance(action_in, SessionHeartbeatRequest):
        session = service.heartbeat(
            session_id,
            watch_time=action_in.watch_time,
            skip_count=action_in.skip_count,
            seek_count=action_in.seek_count,
            pause_count=action_in.pause_count
        )
        return SessionHeartbeatResponse(session_id=session.id, duration_minutes=session.duration_minutes)

    session = service.end(
        session_id,
        completion_percentage=action_in.completion_percentage,
        watch_time=action_in.watch_time,
        skip_count=action_in.skip_count,
        seek_count=action_in.seek_count,
        pause_count=action_in.pause_count
    )
    return SessionEndResponse(
        session_id=session.id,
        attention_score=session.attention_score,
        cheating_score=session.cheating_score,
        is_suspicious=session.is_suspicious,
        engagement_level=engagement_level(session.attention_score),
        cheating_risk=cheating_risk(session.cheating_score)
    )
