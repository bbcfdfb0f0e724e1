import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from engagement.core.clock import utcnow
from engagement.core.exceptions import ValidationError
from engagement.core.locks import KeyedLock, LocalKeyedLock
from engagement.crud.crud_progress import content_progress as crud_progress
from engagement.models.content_progress import ContentProgress
from engagement.schemas.content import ContentType
from engagement.schemas.progress import ContentProgressCreate, ProgressStats
from engagement.services.content_descriptor import ContentDescriptorService
from engagement.services.course_assignment import (
    CourseAssignmentGateway,
    STATUS_COMPLETED,
    status_for_progress,
)

logger = logging.getLogger(__name__)

# 跳过检测阈值：视频位置跳跃超过30秒，文档超过2页
VIDEO_SKIP_THRESHOLD = 30
DOCUMENT_SKIP_THRESHOLD = 2
# 正常拖动的缓冲量，不计入被跳过的部分
SKIP_BUFFER = 5
# 达到该完成百分比即视为完成
COMPLETION_THRESHOLD = 95


@dataclass
class ProgressUpdateResult:
    progress: ContentProgress
    skip_detected: bool
    position_jump: float
    watch_time_added: Optional[int]
    newly_completed: bool


def detect_skip(previous_position: float, current_position: float, content_type: str) -> bool:
    """根据位置跳跃判断是否跳过了内容"""
    position_jump = current_position - previous_position
    if content_type == ContentType.VIDEO and position_jump > VIDEO_SKIP_THRESHOLD:
        return True
    if content_type == ContentType.DOCUMENT and position_jump > DOCUMENT_SKIP_THRESHOLD:
        return True
    return False


def adjust_watch_time(watch_time: int, position_jump: float) -> int:
    """扣除被跳过的部分（保留5个单位的缓冲），结果不小于0"""
    skipped = max(0, position_jump - SKIP_BUFFER)
    return int(max(0, watch_time - skipped))


class ContentProgressService:
    """
    内容进度追踪

    负责单个内容的播放位置、观看时长和完成状态，以及课程整体完成度的汇总与写回。
    完成是单向的：is_completed 和 completed_at 一旦设置，不会被后续进度上报清除。
    """

    def __init__(
        self,
        db: Session,
        content_descriptor: ContentDescriptorService,
        assignment_gateway: CourseAssignmentGateway,
        lock: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.content_descriptor = content_descriptor
        self.assignment_gateway = assignment_gateway
        self.lock = lock or LocalKeyedLock()
        self.clock = clock

    def get_or_create_progress(self, user_id: int, content_id: int) -> ContentProgress:
        """
        获取或创建进度记录，新记录从内容描述冗余课程/模块/类型，数值字段为0

        Args:
            user_id: 用户ID
            content_id: 内容ID

        Returns:
            ContentProgress: 进度记录
        """
        content = self.content_descriptor.get_content(content_id)
        return crud_progress.get_or_create(self.db, obj_in=ContentProgressCreate(
            user_id=user_id,
            content_id=content_id,
            course_id=content.course_id,
            module_id=content.module_id,
            content_type=content.content_type
        ))

    def _get_progress(self, progress_id: int) -> ContentProgress:
        progress = crud_progress.get(self.db, progress_id)
        if progress is None:
            raise ValidationError(f"Progress record {progress_id} not found")
        return progress

    def update_progress(
        self,
        progress_id: int,
        current_position: float,
        completion_percentage: float,
        watch_time: Optional[int] = None
    ) -> ProgressUpdateResult:
        """
        根据客户端上报更新进度，带跳过检测

        Args:
            progress_id: 进度记录ID
            current_position: 当前播放位置
            completion_percentage: 完成百分比，裁剪到 [0, 100]
            watch_time: 本次上报的观看时长，检测到跳过时扣减后再累加

        Returns:
            ProgressUpdateResult: 更新后的记录及跳过检测结果
        """
        if current_position < 0:
            raise ValidationError(f"current_position must be >= 0, got {current_position}")
        if watch_time is not None and watch_time < 0:
            raise ValidationError(f"watch_time must be >= 0, got {watch_time}")

        progress = self._get_progress(progress_id)

        with self.lock.hold("progress", progress.user_id, progress.content_id):
            self.db.refresh(progress)

            previous_position = progress.playback_position or 0
            position_jump = current_position - previous_position
            skip_detected = detect_skip(previous_position, current_position, progress.content_type)

            watch_time_added = watch_time
            if skip_detected and watch_time:
                watch_time_added = adjust_watch_time(watch_time, position_jump)
                logger.info(
                    f"ContentProgressService: 进度 {progress_id} 检测到跳过（{previous_position} -> {current_position}），"
                    f"观看时长 {watch_time} 调整为 {watch_time_added}"
                )

            percentage = min(100.0, max(0.0, completion_percentage))
            if progress.is_completed:
                # 已完成的内容不会因为较低的上报而倒退
                percentage = max(percentage, progress.completion_percentage or 0)

            now = self.clock()
            update_data = {
                "playback_position": current_position,
                "completion_percentage": percentage,
                "last_accessed_at": now,
            }
            if watch_time_added is not None:
                update_data["watch_time"] = (progress.watch_time or 0) + watch_time_added

            newly_completed = not progress.is_completed and percentage >= COMPLETION_THRESHOLD
            if newly_completed:
                update_data["is_completed"] = True
                update_data["completed_at"] = progress.completed_at or now

            progress = crud_progress.update(self.db, db_obj=progress, obj_in=update_data)

        logger.info(
            f"ContentProgressService: 进度 {progress_id} 更新，位置 {current_position}，"
            f"完成度 {progress.completion_percentage}%，跳过 {skip_detected}"
        )

        if newly_completed:
            self._sync_course_progress_safely(progress.course_id, progress.user_id)

        return ProgressUpdateResult(
            progress=progress,
            skip_detected=skip_detected,
            position_jump=position_jump,
            watch_time_added=watch_time_added,
            newly_completed=newly_completed
        )

    def mark_completed(self, progress: ContentProgress) -> ContentProgress:
        """
        直接标记内容为100%完成（跳过检测不参与），幂等

        Args:
            progress: 进度记录

        Returns:
            ContentProgress: 更新后的记录
        """
        content = self.content_descriptor.get_content(progress.content_id)

        with self.lock.hold("progress", progress.user_id, progress.content_id):
            self.db.refresh(progress)
            now = self.clock()
            progress = crud_progress.update(self.db, db_obj=progress, obj_in={
                "playback_position": content.final_position,
                "completion_percentage": 100.0,
                "is_completed": True,
                "completed_at": progress.completed_at or now,
                "last_accessed_at": now,
            })

        logger.info(
            f"ContentProgressService: 内容 {progress.content_id} 被用户 {progress.user_id} 标记为完成，"
            f"最终位置 {content.final_position}"
        )
        self._sync_course_progress_safely(progress.course_id, progress.user_id)
        return progress

    def calculate_course_progress(self, course_id: int, user_id: int) -> float:
        """
        课程整体完成度 = 已完成内容数 / 课程内容总数 × 100，保留两位小数

        Returns:
            float: 完成百分比，课程没有内容时为0
        """
        total_content = self.content_descriptor.count_course_contents(course_id)
        if total_content == 0:
            return 0.0

        completed_content = crud_progress.count_completed(self.db, user_id=user_id, course_id=course_id)
        percentage = round(completed_content / total_content * 100, 2)

        logger.info(
            f"ContentProgressService: 课程 {course_id} 用户 {user_id} 完成 {completed_content}/{total_content}，"
            f"进度 {percentage}%"
        )
        return percentage

    def sync_course_progress(self, course_id: int, user_id: int) -> float:
        """重新计算课程完成度并写回课程分配记录"""
        percentage = self.calculate_course_progress(course_id, user_id)
        status = status_for_progress(percentage)
        completed_at = self.clock() if status == STATUS_COMPLETED else None
        self.assignment_gateway.set_progress(course_id, user_id, percentage, status, completed_at)
        return percentage

    def _sync_course_progress_safely(self, course_id: int, user_id: int) -> None:
        # 写回失败不影响进度本身的更新
        try:
            self.sync_course_progress(course_id, user_id)
        except Exception:
            logger.exception(
                f"ContentProgressService: 课程 {course_id} 用户 {user_id} 的课程进度写回失败"
            )

    def mark_task_completed(self, progress: ContentProgress) -> ContentProgress:
        """设置独立的手动完成标记"""
        return crud_progress.update(self.db, db_obj=progress, obj_in={
            "task_completed": True,
            "last_accessed_at": self.clock(),
        })

    @staticmethod
    def can_access_next(progress: ContentProgress) -> bool:
        return bool(progress.is_completed and progress.task_completed)

    def get_progress_stats(self, user_id: int, course_id: int) -> ProgressStats:
        """用户在课程下的进度统计"""
        stats = crud_progress.get_stats(self.db, user_id=user_id, course_id=course_id)
        total = stats["total_items"]
        return ProgressStats(
            total_items=total,
            completed_items=stats["completed_items"],
            avg_completion=round(stats["avg_completion"], 2),
            total_watch_time=stats["total_watch_time"],
            completion_rate=round(stats["completed_items"] / total * 100, 2) if total > 0 else 0.0
        )

    def get_bulk_progress(self, user_id: int, content_ids: List[int]) -> Dict[int, ContentProgress]:
        """一次获取多个内容的进度，没有记录的内容不出现在结果中"""
        records = crud_progress.get_bulk(self.db, user_id=user_id, content_ids=content_ids)
        return {record.content_id: record for record in records}
