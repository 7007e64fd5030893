# services/redis_cache.py
import asyncio
import logging
import time
from typing import Any, Awaitable, List, Optional, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from app.core.config import settings
from app.core.exceptions import ChatKeyCollisionError, StoreError, StoreTimeoutError
from app.schemas.chat import Chat, ContactList
from app.services.cache import Cache
from app.services.deserialise import deserialise, deserialise_chat, deserialise_contact_list
from app.services.keys import (
    MonotonicMillis,
    chat_between_query,
    chat_index,
    chat_key,
    contact_list_key,
    session_key,
    user_set_key,
)

logger = logging.getLogger(__name__)


class RedisCache(Cache):
    """
    基于 Redis 的 Cache 实现

    - 聊天消息：RedisJSON 文档，key 为 chat#<毫秒>，通过 idx#chats 索引查询
    - 联系人列表：ZSET contacts:<username>，member 是联系人，score 是最近活跃时间（秒）
    - 用户注册表：SET users
    - 客户端会话：STRING session#<client>

    client 由调用方创建并负责关闭（见 app/db/redis_client.py）。
    """

    def __init__(
        self,
        client: Redis,
        timeout: float = settings.STORE_TIMEOUT,
        page_size: int = settings.CHAT_PAGE_SIZE,
        key_attempts: int = settings.CHAT_KEY_ATTEMPTS,
        clock=time.time,
    ):
        self.client = client
        self._timeout = timeout
        self._page_size = page_size
        self._key_attempts = key_attempts
        self._clock = clock
        self._ids = MonotonicMillis(clock)

    async def _run(self, command: Awaitable[Any], name: str) -> Any:
        """执行一条 Redis 命令，超时 / 失败统一转换成 StoreError"""
        try:
            return await asyncio.wait_for(command, timeout=self._timeout)
        except (asyncio.TimeoutError, RedisTimeoutError) as e:
            raise StoreTimeoutError(f"{name} 超时 ({self._timeout}s)") from e
        except RedisError as e:
            raise StoreError(f"{name} 失败: {e}") from e

    def _now(self) -> int:
        return int(self._clock())

    # --------------------------------------------------
    # 联系人列表
    # --------------------------------------------------
    async def update_contact_list(
        self, username: str, contact: str, timestamp: Optional[int] = None
    ) -> None:
        score = self._now() if timestamp is None else timestamp
        await self._run(
            self.client.zadd(contact_list_key(username), {contact: score}),
            "ZADD",
        )

    async def fetch_contact_list(self, username: str) -> List[ContactList]:
        res = await self._run(
            self.client.zrange(contact_list_key(username), 0, -1, desc=True, withscores=True),
            "ZRANGE",
        )
        contacts = deserialise_contact_list(res)
        contacts.sort(key=lambda c: (-c.last_activity, c.username))
        return contacts

    # --------------------------------------------------
    # 聊天消息
    # --------------------------------------------------
    async def create_chat(self, chat: Chat) -> str:
        timestamp = chat.timestamp or self._now()
        body = chat.model_copy(update={"timestamp": timestamp}).to_json()

        # NX：key 已存在时不写入，返回 nil；换一个后缀再试
        millis = self._ids.next()
        for attempt in range(self._key_attempts):
            key = chat_key(millis, attempt)
            res = await self._run(
                self.client.execute_command("JSON.SET", key, "$", body, "NX"),
                "JSON.SET",
            )
            if res:
                break
            logger.warning(f"chat key {key} 已被占用，重试 ({attempt + 1}/{self._key_attempts})")
        else:
            raise ChatKeyCollisionError(key, self._key_attempts)

        # 联系人列表是附带更新，失败只记日志
        for owner, contact in ((chat.from_, chat.to), (chat.to, chat.from_)):
            try:
                await self.update_contact_list(owner, contact, timestamp)
            except StoreError as e:
                logger.warning(f"更新 {owner} 的联系人列表失败 (chat {key}): {e}")

        return key

    async def fetch_chat_between(
        self,
        username1: str,
        username2: str,
        from_ts: Union[int, str],
        to_ts: Union[int, str],
    ) -> List[Chat]:
        query = chat_between_query(username1, username2, from_ts, to_ts)

        docs = []
        seen = set()
        offset = 0
        while True:
            res = await self._run(
                self.client.execute_command(
                    "FT.SEARCH", chat_index(), query,
                    "SORTBY", "timestamp", "DESC",
                    "LIMIT", offset, self._page_size,
                ),
                "FT.SEARCH",
            )
            page = deserialise(res)
            # 翻页期间有新消息写入时，后面的行会整体后移，同一条可能出现两次
            docs.extend(doc for doc in page if doc.id not in seen)
            seen.update(doc.id for doc in page)
            offset += len(page)
            if len(page) < self._page_size or offset >= page[0].total:
                break

        # @from:{a|b} @to:{a|b} 也会命中 a->a，这里只保留两人之间的消息
        participants = {username1, username2}
        return [c for c in deserialise_chat(docs) if {c.from_, c.to} == participants]

    # --------------------------------------------------
    # 用户注册表 / 会话
    # --------------------------------------------------
    async def register_user(self, username: str) -> bool:
        added = await self._run(self.client.sadd(user_set_key(), username), "SADD")
        return bool(added)

    async def user_exists(self, username: str) -> bool:
        res = await self._run(self.client.sismember(user_set_key(), username), "SISMEMBER")
        return bool(res)

    async def create_session(
        self, client: str, username: str, ttl: Optional[int] = None
    ) -> None:
        await self._run(self.client.set(session_key(client), username, ex=ttl), "SET")

    async def fetch_session(self, client: str) -> Optional[str]:
        res = await self._run(self.client.get(session_key(client)), "GET")
        if isinstance(res, bytes):
            return res.decode("utf-8")
        return res

    async def ping(self) -> bool:
        try:
            return bool(await self._run(self.client.ping(), "PING"))
        except StoreError as e:
            logger.warning(f"Redis ping 失败: {e}")
            return False
