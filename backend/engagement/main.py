import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from engagement.api.api import api_router
from engagement.config.dependency_injection import get_media_client
from engagement.core.config import settings
from engagement.core.exceptions import EngagementError
from engagement.services.media_resource import HttpMediaResourceClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期：关闭时释放媒体服务的 HTTP 连接池。
    """
    logger.info(f"{settings.PROJECT_NAME} 启动")
    try:
        yield
    finally:
        media_client = get_media_client()
        if isinstance(media_client, HttpMediaResourceClient):
            media_client.close()
        logger.info(f"{settings.PROJECT_NAME} 关闭")

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(EngagementError)
async def engagement_error_handler(request: Request, exc: EngagementError):
    """领域异常统一转换为 {success: false, message} 响应"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message}
    )


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == '__main__':
    uvicorn.run(
        'engagement.main:app',
        host='0.0.0.0',
        port=settings.BACKEND_PORT,
        reload=True
    )
