"""
媒体资源协作者

播放器在会话开始前从外部媒体服务获取句柄（本服务不参与），会话关闭时
由 LearningSessionService 负责释放。释放可能从多个路径被尝试（start 强制关闭、
end、废弃会话清理），因此对资源方而言必须是幂等的。
"""
import logging
from abc import ABC, abstractmethod

import httpx

from engagement.core.exceptions import ResourceReleaseError

logger = logging.getLogger(__name__)


class MediaResourceClient(ABC):

    @abstractmethod
    def release(self, handle: str) -> None:
        """释放句柄，失败时抛出 ResourceReleaseError"""


class NullMediaResourceClient(MediaResourceClient):
    """未配置媒体服务时使用，不发起任何请求"""

    def release(self, handle: str) -> None:
        logger.debug(f"NullMediaResourceClient: 跳过释放句柄 {handle}")


class HttpMediaResourceClient(MediaResourceClient):
    """
    通过 HTTP 释放句柄：POST {base_url}/handles/{handle}/release

    404 视为句柄已被释放。
    """

    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.BaseTransport = None):
        self.client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def release(self, handle: str) -> None:
        try:
            response = self.client.post(f"/handles/{handle}/release")
        except httpx.HTTPError as e:
            raise ResourceReleaseError(handle, str(e)) from e

        if response.status_code == 404:
            logger.info(f"HttpMediaResourceClient: 句柄 {handle} 已不存在，视为已释放")
            return
        if response.is_error:
            raise ResourceReleaseError(handle, f"HTTP {response.status_code}")

        logger.info(f"HttpMediaResourceClient: 已释放句柄 {handle}")

    def close(self) -> None:
        self.client.close()
