"""
学习参与度引擎的领域异常

- InvalidStateError: 对不存在或已结束的会话执行心跳/结束，直接返回给调用方
- ValidationError: 字段缺失或超出范围，作为客户端错误返回
- ContentNotFoundError: 内容描述不存在
- ResourceReleaseError: 外部媒体句柄释放失败，只记录日志，不影响会话操作
"""


class EngagementError(Exception):
    """所有领域异常的基类"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidStateError(EngagementError):
    status_code = 409


class SessionNotFoundError(InvalidStateError):
    status_code = 404

    def __init__(self, session_id=None, message: str = None):
        self.session_id = session_id
        super().__init__(message or f"Learning session {session_id} not found")


class SessionEndedError(InvalidStateError):
    status_code = 409

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Learning session {session_id} has already ended")


class ValidationError(EngagementError):
    status_code = 422


class ContentNotFoundError(EngagementError):
    status_code = 404

    def __init__(self, content_id):
        self.content_id = content_id
        super().__init__(f"Content {content_id} not found")


class ResourceReleaseError(EngagementError):

    def __init__(self, handle: str, reason: str):
        self.handle = handle
        super().__init__(f"Failed to release resource handle {handle}: {reason}")


class LockTimeoutError(EngagementError):
    status_code = 503

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Timed out waiting for lock {name}")
