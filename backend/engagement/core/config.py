from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional

class Settings(BaseSettings):
    """
    应用程序配置设置类，从环境变量或.env文件加载所有配置项。
    使用Pydantic进行数据验证和类型检查。

    包含服务器配置、数据库连接、Redis、会话锁、媒体资源服务以及
    废弃会话清理任务的配置项。
    """
    # Server
    BACKEND_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Model configuration tells Pydantic where to find the .env file.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    PROJECT_NAME: str = "Learning Engagement Engine"
    API_V1_STR: str = "/api/v1"

    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    DATABASE_URL: str = "sqlite:///./engagement.db"

    # Redis：Celery broker/backend，以及跨进程的会话锁
    REDIS_URL: str = "redis://localhost:6379/0"

    # 会话锁：local 为进程内锁，redis 为多 worker 共享锁
    SESSION_LOCK_BACKEND: Literal["local", "redis"] = "local"
    SESSION_LOCK_TIMEOUT_SECONDS: float = 10.0

    # 外部媒体资源服务（释放播放句柄），未配置时不发起请求
    MEDIA_SERVICE_URL: Optional[str] = None
    MEDIA_SERVICE_TIMEOUT_SECONDS: float = 5.0

    # 废弃会话清理
    ABANDONED_SESSION_HOURS: int = 2
    SWEEP_INTERVAL_MINUTES: int = 15

# Create a single, globally accessible instance of the settings.
settings = Settings()
