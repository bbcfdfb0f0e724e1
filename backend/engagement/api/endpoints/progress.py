from typing import List
from fastapi import APIRouter, Depends, Query

from engagement.config.dependency_injection import get_content_progress_service
from engagement.schemas.progress import (
    BulkProgressResponse,
    ContentCompleteRequest,
    ContentCompleteResponse,
    ContentProgressOut,
    ProgressStats,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)
from engagement.schemas.response import StandardResponse
from engagement.services.content_progress_service import ContentProgressService

router = APIRouter()


@router.post("/progress", response_model=ProgressUpdateResponse, summary="上报内容进度")
def update_progress(
    progress_in: ProgressUpdateRequest,
    service: ContentProgressService = Depends(get_content_progress_service)
):
    """
    上报播放位置和完成百分比

    位置跳跃超过阈值（视频30秒、文档2页）视为跳过，本次上报的观看时长会扣除被跳过的部分。
    """
    progress = service.get_or_create_progress(progress_in.user_id, progress_in.content_id)
    result = service.update_progress(
        progress.id,
        current_position=progress_in.current_position,
        completion_percentage=progress_in.completion_percentage,
        watch_time=progress_in.watch_time
    )
    return ProgressUpdateResponse(
        completion_percentage=result.progress.completion_percentage,
        is_completed=result.progress.is_completed,
        skip_detected=result.skip_detected
    )


@router.post("/complete", response_model=ContentCompleteResponse, summary="标记内容完成")
def complete_content(
    complete_in: ContentCompleteRequest,
    service: ContentProgressService = Depends(get_content_progress_service)
):
    progress = service.get_or_create_progress(complete_in.user_id, complete_in.content_id)
    progress = service.mark_completed(progress)
    course_progress = service.calculate_course_progress(progress.course_id, progress.user_id)
    return ContentCompleteResponse(course_progress=course_progress)


@router.get(
    "/progress/users/{user_id}/courses/{course_id}/stats",
    response_model=StandardResponse[ProgressStats]
)
def get_progress_stats(
    user_id: int,
    course_id: int,
    service: ContentProgressService = Depends(get_content_progress_service)
):
    return StandardResponse(data=service.get_progress_stats(user_id, course_id))


@router.get(
    "/progress/users/{user_id}/contents",
    response_model=StandardResponse[BulkProgressResponse]
)
def get_bulk_progress(
    user_id: int,
    content_ids: List[int] = Query(default=[]),
    service: ContentProgressService = Depends(get_content_progress_service)
):
    records = service.get_bulk_progress(user_id, content_ids)
    response_data = BulkProgressResponse(progress={
        content_id: ContentProgressOut.model_validate(record) for content_id, record in records.items()
    })
    return StandardResponse(data=response_data)
