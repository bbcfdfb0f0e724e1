"""
按 (user_id, content_id) 串行化的互斥锁

start 操作中"关闭已打开会话 -> 创建新会话"必须是一个临界区，否则两个并发的
start 请求会各自创建一个打开的会话。单进程部署使用进程内锁；多 worker 部署
通过 Redis 锁共享互斥。
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

import redis
from redis.exceptions import LockError

from engagement.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class KeyedLock:
    """键控锁的公共接口"""

    prefix = "engagement:lock"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def _name(self, key) -> str:
        return ":".join([self.prefix, *(str(part) for part in key)])

    def hold(self, *key):
        """返回持有 key 对应锁的上下文管理器"""
        raise NotImplementedError


class LocalKeyedLock(KeyedLock):
    """进程内锁，每个键一把 threading.Lock，无人等待时回收"""

    def __init__(self, timeout: float = 10.0):
        super().__init__(timeout)
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}  # name -> [lock, 引用计数]

    @contextmanager
    def hold(self, *key) -> Iterator[None]:
        name = self._name(key)
        with self._guard:
            entry = self._locks.setdefault(name, [threading.Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=self.timeout)
        try:
            if not acquired:
                raise LockTimeoutError(name)
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(name, None)


class RedisKeyedLock(KeyedLock):
    """基于 redis-py Lock 的分布式锁"""

    def __init__(self, redis_client: redis.Redis, timeout: float = 10.0):
        super().__init__(timeout)
        self.redis_client = redis_client

    @contextmanager
    def hold(self, *key) -> Iterator[None]:
        name = self._name(key)
        lock = self.redis_client.lock(name, timeout=self.timeout, blocking_timeout=self.timeout)
        if not lock.acquire():
            raise LockTimeoutError(name)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError as e:
                # 锁已过期被他人持有，临界区内的写入已经提交
                logger.warning(f"RedisKeyedLock: 释放锁 {name} 失败: {e}")
