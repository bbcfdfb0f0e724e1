"""
内容进度追踪测试
"""

import pytest

from engagement.core.exceptions import ContentNotFoundError, ValidationError
from engagement.services.content_progress_service import (
    ContentProgressService,
    adjust_watch_time,
    detect_skip,
)
from engagement.services.content_descriptor import SqlContentDescriptorService
from engagement.services.course_assignment import (
    SqlCourseAssignmentGateway,
    status_for_progress,
)


def test_detect_skip_thresholds():
    assert detect_skip(10, 41, "video") is True
    assert detect_skip(10, 40, "video") is False
    assert detect_skip(1, 4, "document") is True
    assert detect_skip(1, 3, "document") is False
    # 向后拖动和未知类型都不算跳过
    assert detect_skip(100, 0, "video") is False
    assert detect_skip(0, 100, "quiz") is False


def test_adjust_watch_time():
    assert adjust_watch_time(40, 40) == 5
    assert adjust_watch_time(3, 10) == 0
    assert adjust_watch_time(100, 3) == 100


@pytest.mark.parametrize("percentage,status", [
    (0, "assigned"), (0.5, "in_progress"), (99.99, "in_progress"), (100, "completed"),
])
def test_status_for_progress(percentage, status):
    assert status_for_progress(percentage) == status


class TestGetOrCreate:

    def test_creates_zeroed_record_from_descriptor(self, progress_service, document):
        progress = progress_service.get_or_create_progress(7, document.id)

        assert progress.user_id == 7
        assert progress.course_id == document.course_id
        assert progress.module_id == document.module_id
        assert progress.content_type == "document"
        assert progress.watch_time == 0
        assert progress.playback_position == 0
        assert progress.completion_percentage == 0
        assert progress.is_completed is False
        assert progress.task_completed is False

    def test_returns_existing_record(self, progress_service, video):
        first = progress_service.get_or_create_progress(1, video.id)
        second = progress_service.get_or_create_progress(1, video.id)
        assert first.id == second.id

    def test_unknown_content(self, progress_service):
        with pytest.raises(ContentNotFoundError):
            progress_service.get_or_create_progress(1, 404)


class TestUpdateProgress:

    def test_skip_adjusts_watch_time(self, progress_service, video):
        progress = progress_service.get_or_create_progress(1, video.id)
        progress_service.update_progress(progress.id, current_position=10, completion_percentage=2, watch_time=10)

        result = progress_service.update_progress(
            progress.id, current_position=50, completion_percentage=8, watch_time=40
        )

        assert result.skip_detected is True
        assert result.position_jump == 40
        assert result.watch_time_added == 5
        assert result.progress.watch_time == 15
        assert result.progress.playback_position == 50

    def test_normal_seek_keeps_watch_time(self, progress_service, video):
        progress = progress_service.get_or_create_progress(1, video.id)
        result = progress_service.update_progress(
            progress.id, current_position=20, completion_percentage=3, watch_time=20
        )
        assert result.skip_detected is False
        assert result.progress.watch_time == 20

    def test_document_page_skip(self, progress_service, document):
        progress = progress_service.get_or_create_progress(1, document.id)
        progress_service.update_progress(progress.id, current_position=1, completion_percentage=20, watch_time=60)

        result = progress_service.update_progress(
            progress.id, current_position=4, completion_percentage=80, watch_time=100
        )
        # 跳3页，扣减 max(0, 3 - 5) = 0
        assert result.skip_detected is True
        assert result.progress.watch_time == 160

    def test_skip_without_watch_time(self, progress_service, video):
        progress = progress_service.get_or_create_progress(1, video.id)
        result = progress_service.update_progress(progress.id, current_position=300, completion_percentage=50)

        assert result.skip_detected is True
        assert result.watch_time_added is None
        assert result.progress.watch_time == 0

    @pytest.mark.parametrize("reported,stored", [(150, 100), (-10, 0), (42.5, 42.5)])
    def test_completion_is_clamped(self, progress_service, video, reported, stored):
        progress = progress_service.get_or_create_progress(1, video.id)
        result = progress_service.update_progress(progress.id, current_position=0, completion_percentage=reported)
        assert result.progress.completion_percentage == stored

    def test_completion_threshold(self, progress_service, video, clock):
        progress = progress_service.get_or_create_progress(1, video.id)

        result = progress_service.update_progress(progress.id, current_position=560, completion_percentage=94.9)
        assert result.progress.is_completed is False

        result = progress_service.update_progress(progress.id, current_position=575, completion_percentage=95)
        assert result.newly_completed is True
        assert result.progress.is_completed is True
        assert result.progress.completed_at == clock.now

    def test_completion_is_one_way(self, progress_service, video, clock):
        progress = progress_service.get_or_create_progress(1, video.id)
        completed = progress_service.update_progress(progress.id, current_position=580, completion_percentage=97)
        completed_at = completed.progress.completed_at

        clock.advance(days=1)
        result = progress_service.update_progress(progress.id, current_position=10, completion_percentage=40)

        assert result.newly_completed is False
        assert result.progress.is_completed is True
        assert result.progress.completion_percentage == 97
        assert result.progress.completed_at == completed_at

    def test_unknown_progress_id(self, progress_service):
        with pytest.raises(ValidationError):
            progress_service.update_progress(999, current_position=0, completion_percentage=0)

    def test_rejects_negative_values(self, progress_service, video):
        progress = progress_service.get_or_create_progress(1, video.id)
        with pytest.raises(ValidationError):
            progress_service.update_progress(progress.id, current_position=-1, completion_percentage=0)
        with pytest.raises(ValidationError):
            progress_service.update_progress(progress.id, current_position=0, completion_percentage=0, watch_time=-5)


class TestCourseProgress:

    def test_completion_writes_back_course_progress(self, progress_service, make_content, video, assignment_gateway):
        for _ in range(3):
            make_content("document", page_count=3)

        progress = progress_service.get_or_create_progress(1, video.id)
        progress_service.update_progress(progress.id, current_position=600, completion_percentage=100)

        assert progress_service.calculate_course_progress(1, 1) == 25.0
        assert assignment_gateway.calls == [(1, 1, 25.0, "in_progress", None)]

    def test_no_write_back_without_transition(self, progress_service, video, assignment_gateway):
        progress = progress_service.get_or_create_progress(1, video.id)
        progress_service.update_progress(progress.id, current_position=100, completion_percentage=50)
        assert assignment_gateway.calls == []

    def test_all_completed_sets_completed_status(self, progress_service, video, document, assignment_gateway, clock):
        for content in (video, document):
            progress = progress_service.get_or_create_progress(1, content.id)
            progress_service.mark_completed(progress)

        assert assignment_gateway.calls[-1] == (1, 1, 100.0, "completed", clock.now)

    def test_rounding(self, progress_service, make_content, video):
        make_content("video", duration_seconds=60)
        make_content("video", duration_seconds=60)
        progress_service.mark_completed(progress_service.get_or_create_progress(1, video.id))
        assert progress_service.calculate_course_progress(1, 1) == 33.33

    def test_course_without_content(self, progress_service):
        assert progress_service.calculate_course_progress(42, 1) == 0

    def test_write_back_failure_does_not_fail_update(self, db, clock, lock, video):
        class BrokenGateway(SqlCourseAssignmentGateway):
            def set_progress(self, *args, **kwargs):
                raise RuntimeError("assignment store unavailable")

        service = ContentProgressService(
            db=db,
            content_descriptor=SqlContentDescriptorService(db),
            assignment_gateway=BrokenGateway(db),
            lock=lock,
            clock=clock
        )
        progress = service.get_or_create_progress(1, video.id)
        result = service.update_progress(progress.id, current_position=600, completion_percentage=100)
        assert result.progress.is_completed is True


class TestSqlCourseAssignmentGateway:

    def test_updates_assignment(self, db, assignment):
        gateway = SqlCourseAssignmentGateway(db)
        gateway.set_progress(1, 1, 50.0, "in_progress")

        db.refresh(assignment)
        assert assignment.progress_percentage == 50.0
        assert assignment.status == "in_progress"
        assert assignment.started_at is not None
        assert assignment.completed_at is None

    def test_missing_assignment_is_ignored(self, db):
        SqlCourseAssignmentGateway(db).set_progress(1, 99, 50.0, "in_progress")


class TestCompletionFlags:

    def test_mark_completed(self, progress_service, video, clock):
        progress = progress_service.get_or_create_progress(1, video.id)
        progress = progress_service.mark_completed(progress)

        assert progress.completion_percentage == 100
        assert progress.is_completed is True
        assert progress.playback_position == 600
        assert progress.completed_at == clock.now

    def test_mark_completed_is_idempotent(self, progress_service, document, clock):
        progress = progress_service.get_or_create_progress(1, document.id)
        first_completed_at = progress_service.mark_completed(progress).completed_at

        clock.advance(hours=1)
        progress = progress_service.mark_completed(progress)

        assert progress.completed_at == first_completed_at
        assert progress.playback_position == 5

    def test_task_completion_gates_next_content(self, progress_service, video):
        progress = progress_service.get_or_create_progress(1, video.id)
        assert ContentProgressService.can_access_next(progress) is False

        progress = progress_service.mark_completed(progress)
        assert ContentProgressService.can_access_next(progress) is False

        progress = progress_service.mark_task_completed(progress)
        assert progress.task_completed is True
        assert ContentProgressService.can_access_next(progress) is True


class TestQueries:

    def test_progress_stats(self, progress_service, video, document):
        p1 = progress_service.get_or_create_progress(1, video.id)
        progress_service.update_progress(p1.id, current_position=20, completion_percentage=100, watch_time=20)
        p2 = progress_service.get_or_create_progress(1, document.id)
        progress_service.update_progress(p2.id, current_position=1, completion_percentage=50, watch_time=30)

        stats = progress_service.get_progress_stats(1, 1)
        assert stats.total_items == 2
        assert stats.completed_items == 1
        assert stats.avg_completion == 75.0
        assert stats.total_watch_time == 50
        assert stats.completion_rate == 50.0

    def test_progress_stats_empty(self, progress_service):
        stats = progress_service.get_progress_stats(1, 1)
        assert stats.total_items == 0
        assert stats.completion_rate == 0.0

    def test_bulk_progress(self, progress_service, video, document, make_content):
        other = make_content("video", duration_seconds=60)
        progress_service.get_or_create_progress(1, video.id)
        progress_service.get_or_create_progress(1, document.id)
        progress_service.get_or_create_progress(2, other.id)

        records = progress_service.get_bulk_progress(1, [video.id, other.id])
        assert list(records) == [video.id]
        assert progress_service.get_bulk_progress(1, []) == {}
