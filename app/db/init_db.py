# 创建聊天记录的 RediSearch 索引，只需要执行一次
import asyncio
import logging

from redis.asyncio import Redis
from redis.exceptions import ConnectionError, ResponseError, TimeoutError

from app.core.config import settings
from app.db.redis_client import create_redis_client, close_redis_client
from app.services.keys import CHAT_KEY_PREFIX, chat_index

logger = logging.getLogger(__name__)

# FT.CREATE idx#chats ON JSON PREFIX 1 chat#
#   SCHEMA $.from AS from TAG $.to AS to TAG $.timestamp AS timestamp NUMERIC SORTABLE
CHAT_INDEX_SCHEMA = (
    "SCHEMA",
    "$.from", "AS", "from", "TAG",
    "$.to", "AS", "to", "TAG",
    "$.timestamp", "AS", "timestamp", "NUMERIC", "SORTABLE",
)


async def create_chat_index(client: Redis, max_retries: int = 5, retry_delay: float = 2) -> bool:
    """
    创建 idx#chats 索引
    索引已存在视为成功；Redis 暂时连不上时按递增间隔重试

    :return: True 表示本次新建，False 表示已存在
    """
    for attempt in range(max_retries):
        try:
            res = await client.execute_command(
                "FT.CREATE", chat_index(),
                "ON", "JSON",
                "PREFIX", "1", CHAT_KEY_PREFIX,
                *CHAT_INDEX_SCHEMA,
            )
            logger.info(f"✅ 聊天索引已创建: {res}")
            return True
        except ResponseError as e:
            if "already exists" in str(e).lower():
                logger.info("聊天索引已存在，跳过")
                return False
            logger.error(f"❌ 创建聊天索引失败: {e}")
            raise
        except (ConnectionError, TimeoutError) as e:
            if attempt < max_retries - 1:
                wait_time = retry_delay * (attempt + 1)
                logger.warning(f"⚠️ Redis 暂不可用，{wait_time}秒后重试... (尝试 {attempt + 1}/{max_retries})")
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"❌ 创建聊天索引失败，已达到最大重试次数: {e}")
                raise
    return False


async def init():
    client = create_redis_client(settings.REDIS_ADDRESS, settings.REDIS_PASSWORD, settings.REDIS_DB)
    try:
        await create_chat_index(client)
    finally:
        await close_redis_client(client)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    asyncio.run(init())
