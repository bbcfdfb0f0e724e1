"""
测试公共夹具

- 内存 SQLite（StaticPool 保证所有连接共享同一个库）
- 可控时钟，会话时长和废弃判断不依赖真实时间
- 记录释放调用的媒体客户端和课程分配网关替身
- 覆盖依赖注入后的 TestClient
"""

from datetime import datetime, timedelta
from typing import Generator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from engagement.config import dependency_injection as di
from engagement.core.exceptions import ResourceReleaseError
from engagement.core.locks import LocalKeyedLock
from engagement.crud.crud_assignment import CourseAssignmentCreate, course_assignment as crud_assignment
from engagement.crud.crud_content import module_content as crud_content
from engagement.db.base_class import Base
from engagement.db.database import get_db
from engagement.main import app
from engagement.models.module_content import ModuleContent
from engagement.schemas.content import ModuleContentCreate
from engagement.services.content_descriptor import SqlContentDescriptorService
from engagement.services.content_progress_service import ContentProgressService
from engagement.services.course_assignment import CourseAssignmentGateway, SqlCourseAssignmentGateway
from engagement.services.learning_session_service import LearningSessionService
from engagement.services.media_resource import MediaResourceClient

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """可以手动推进的时钟"""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingMediaClient(MediaResourceClient):
    """记录每一次释放请求，可配置为失败"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.released: List[str] = []

    def release(self, handle: str) -> None:
        self.released.append(handle)
        if self.fail:
            raise ResourceReleaseError(handle, "media service unavailable")


class RecordingAssignmentGateway(CourseAssignmentGateway):
    """记录写回的课程进度"""

    def __init__(self):
        self.calls: List[Tuple[int, int, float, str, Optional[datetime]]] = []

    def set_progress(self, course_id, user_id, percentage, status, completed_at=None) -> None:
        self.calls.append((course_id, user_id, percentage, status, completed_at))


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    # 创建内存数据库表结构
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # 清理数据库表
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def media_client() -> RecordingMediaClient:
    return RecordingMediaClient()


@pytest.fixture
def assignment_gateway() -> RecordingAssignmentGateway:
    return RecordingAssignmentGateway()


@pytest.fixture
def lock() -> LocalKeyedLock:
    return LocalKeyedLock(timeout=1.0)


@pytest.fixture
def make_content(db: Session):
    """创建内容描述记录"""
    def _make(
        content_type: str = "video",
        course_id: int = 1,
        module_id: int = 1,
        duration_seconds: Optional[int] = None,
        page_count: Optional[int] = None
    ) -> ModuleContent:
        return crud_content.create(db, obj_in=ModuleContentCreate(
            course_id=course_id,
            module_id=module_id,
            title=f"{content_type} content",
            content_type=content_type,
            duration_seconds=duration_seconds,
            page_count=page_count
        ))
    return _make


@pytest.fixture
def video(make_content) -> ModuleContent:
    """10分钟的视频"""
    return make_content("video", duration_seconds=600)


@pytest.fixture
def document(make_content) -> ModuleContent:
    """5页的文档，预期10分钟"""
    return make_content("document", page_count=5)


@pytest.fixture
def assignment(db: Session):
    return crud_assignment.create(db, obj_in=CourseAssignmentCreate(course_id=1, user_id=1))


@pytest.fixture
def session_service(db, clock, media_client, lock) -> LearningSessionService:
    return LearningSessionService(
        db=db,
        content_descriptor=SqlContentDescriptorService(db),
        media_client=media_client,
        lock=lock,
        clock=clock
    )


@pytest.fixture
def progress_service(db, clock, assignment_gateway, lock) -> ContentProgressService:
    return ContentProgressService(
        db=db,
        content_descriptor=SqlContentDescriptorService(db),
        assignment_gateway=assignment_gateway,
        lock=lock,
        clock=clock
    )


@pytest.fixture
def client(db, clock, media_client, lock) -> Generator[TestClient, None, None]:
    """覆盖依赖注入的测试客户端，课程分配写回使用真实的数据库网关"""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[di.get_media_client] = lambda: media_client
    app.dependency_overrides[di.get_session_lock] = lambda: lock
    app.dependency_overrides[di.get_learning_session_service] = lambda: LearningSessionService(
        db=db,
        content_descriptor=SqlContentDescriptorService(db),
        media_client=media_client,
        lock=lock,
        clock=clock
    )
    app.dependency_overrides[di.get_content_progress_service] = lambda: ContentProgressService(
        db=db,
        content_descriptor=SqlContentDescriptorService(db),
        assignment_gateway=SqlCourseAssignmentGateway(db),
        lock=lock,
        clock=clock
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    """后台任务自行创建数据库会话时使用的工厂"""
    return TestingSessionLocal
