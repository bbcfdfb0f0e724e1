"""
废弃会话清理任务测试
"""

from datetime import timedelta

from engagement.celery_app import celery_app
from engagement.core.clock import utcnow
from engagement.crud.crud_session import learning_session as crud_session
from engagement.schemas.session import LearningSessionCreate
from engagement.tasks import session_tasks


def _create_session(db, user_id, content_id, started_ago, heartbeat_ago, handle=None):
    now = utcnow()
    return crud_session.create(db, obj_in=LearningSessionCreate(
        user_id=user_id,
        content_id=content_id,
        course_id=1,
        session_start=now - started_ago,
        last_heartbeat=now - heartbeat_ago,
        resource_handle=handle
    ))


def test_sweep_task_closes_abandoned_sessions(monkeypatch, db, session_factory, media_client, lock, video):
    monkeypatch.setattr(session_tasks, "SessionLocal", session_factory)
    monkeypatch.setattr(session_tasks, "get_media_client", lambda: media_client)
    monkeypatch.setattr(session_tasks, "get_session_lock", lambda: lock)

    abandoned = _create_session(db, 1, video.id, timedelta(hours=3), timedelta(hours=3), handle="h-1")
    heartbeating = _create_session(db, 2, video.id, timedelta(hours=3), timedelta(minutes=5))
    recent = _create_session(db, 3, video.id, timedelta(minutes=10), timedelta(minutes=1))

    closed = session_tasks.sweep_abandoned_sessions_task(2)
    assert closed == 1

    db.refresh(abandoned)
    db.refresh(heartbeating)
    db.refresh(recent)
    assert abandoned.session_end is not None
    assert abandoned.attention_score is None
    assert heartbeating.session_end is None
    assert recent.session_end is None
    assert media_client.released == ["h-1"]


def test_sweep_task_is_routed_and_scheduled():
    task_name = "engagement.tasks.session_tasks.sweep_abandoned_sessions_task"
    assert session_tasks.sweep_abandoned_sessions_task.name == task_name
    assert celery_app.conf.task_routes[task_name] == {"queue": "maintenance_queue"}

    schedule = celery_app.conf.beat_schedule["sweep-abandoned-sessions"]
    assert schedule["task"] == task_name
