# services/cache.py
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from app.schemas.chat import Chat, ContactList


class Cache(ABC):
    """
    聊天存储的抽象接口，业务代码只依赖这里，不关心底层是 Redis 还是别的。

    - 联系人列表：update_contact_list / fetch_contact_list
    - 聊天消息：create_chat / fetch_chat_between
    - 用户注册表、客户端会话：register_user / user_exists / create_session / fetch_session

    存储失败统一抛 StoreError，不做重试。
    """

    @abstractmethod
    async def update_contact_list(
        self, username: str, contact: str, timestamp: Optional[int] = None
    ) -> None:
        """把 contact 加进 username 的联系人列表；已存在则只更新最近活跃时间"""

    @abstractmethod
    async def create_chat(self, chat: Chat) -> str:
        """
        保存一条消息并返回它的 key。
        同时双向更新两个人的联系人列表，这一步失败只记日志，不影响返回值，
        所以调用方不能假设联系人列表一定和消息一致。
        """

    @abstractmethod
    async def fetch_chat_between(
        self,
        username1: str,
        username2: str,
        from_ts: Union[int, str],
        to_ts: Union[int, str],
    ) -> List[Chat]:
        """两人之间 [from_ts, to_ts] 内的全部消息（双向），按时间倒序"""

    @abstractmethod
    async def fetch_contact_list(self, username: str) -> List[ContactList]:
        """联系人列表，最近活跃在前；时间相同按用户名升序"""

    @abstractmethod
    async def register_user(self, username: str) -> bool:
        """新用户返回 True，已存在返回 False"""

    @abstractmethod
    async def user_exists(self, username: str) -> bool:
        ...

    @abstractmethod
    async def create_session(
        self, client: str, username: str, ttl: Optional[int] = None
    ) -> None:
        ...

    @abstractmethod
    async def fetch_session(self, client: str) -> Optional[str]:
        ...
