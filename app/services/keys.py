# services/keys.py
"""Redis key 命名 + RediSearch 查询拼接"""
import re
import time
from typing import Union

from app.core.exceptions import InvalidQueryError

CHAT_KEY_PREFIX = "chat#"
CHAT_INDEX = "idx#chats"

# RediSearch TAG 查询里需要转义的字符
_TAG_SPECIAL = re.compile(r"([,.<>{}?\[\]\"':;!@#$%^&*()\-+=~|/\\ ])")


def chat_key(millis: int, attempt: int = 0) -> str:
    """chat#<毫秒>，冲突重试时追加 -<n>"""
    if attempt:
        return f"{CHAT_KEY_PREFIX}{millis}-{attempt}"
    return f"{CHAT_KEY_PREFIX}{millis}"


def chat_index() -> str:
    return CHAT_INDEX


def contact_list_key(username: str) -> str:
    return "contacts:" + username


def user_set_key() -> str:
    return "users"


def session_key(client: str) -> str:
    return "session#" + client


class MonotonicMillis:
    """
    毫秒时间戳生成器，同一进程内严格递增。
    同一毫秒内的第二次调用会拿到 上一次 + 1。
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0

    def next(self) -> int:
        now = int(self._clock() * 1000)
        if now <= self._last:
            now = self._last + 1
        self._last = now
        return now


def escape_tag(value: str) -> str:
    return _TAG_SPECIAL.sub(r"\\\1", value)


def _as_timestamp(value: Union[int, str], name: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidQueryError(f"{name} 必须是整数时间戳: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} 必须是整数时间戳: {value!r}")


def chat_between_query(
    username1: str,
    username2: str,
    from_ts: Union[int, str],
    to_ts: Union[int, str],
) -> str:
    """@from:{a|b} @to:{a|b} @timestamp:[from to]"""
    if not username1 or not username2:
        raise InvalidQueryError("用户名不能为空")
    start = _as_timestamp(from_ts, "from_ts")
    end = _as_timestamp(to_ts, "to_ts")
    if start > end:
        raise InvalidQueryError(f"时间范围非法: [{start} {end}]")

    users = f"{escape_tag(username1)}|{escape_tag(username2)}"
    return f"@from:{{{users}}} @to:{{{users}}} @timestamp:[{start} {end}]"
