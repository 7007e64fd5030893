import logging

import redis.asyncio as redis
from redis.asyncio import Redis

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_redis_client(address: str, password: str = "", db: int = 0) -> Redis:
    """
    创建异步 Redis 客户端（自带连接池）

    :param address: host:port，例如 'localhost:6379'
    :param password: 没有密码传空字符串
    :param db: 逻辑库编号，默认 0
    """
    client = redis.from_url(
        f"redis://{address}/{db}",
        password=password or None,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.STORE_TIMEOUT,
        socket_connect_timeout=settings.STORE_TIMEOUT,
        health_check_interval=30,  # 空闲连接取出前先检查
    )
    logger.info(f"[Redis] 客户端已创建 {address} db={db}")
    return client


async def close_redis_client(client: Redis) -> None:
    """关闭客户端，应用关闭时调用"""
    if client is not None:
        await client.aclose()
        logger.info("[Redis] 连接已关闭")
