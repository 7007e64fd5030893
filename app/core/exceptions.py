"""
存储层异常

StoreError          -> Redis 不可达 / 命令失败（对调用方不透明）
StoreTimeoutError   -> 命令超过 STORE_TIMEOUT
ChatKeyCollisionError -> 多次尝试仍然拿不到未占用的 chat key
DecodeError         -> Redis 返回的结构不符合预期
InvalidQueryError   -> 查询参数非法（例如时间戳不是整数）
"""


class StoreError(Exception):
    """Redis 命令执行失败"""

    def __init__(self, message: str = "store command failed"):
        super().__init__(message)


class StoreTimeoutError(StoreError):
    """Redis 命令超时"""


class ChatKeyCollisionError(StoreError):
    """chat key 冲突且重试次数用尽"""

    def __init__(self, key: str, attempts: int):
        super().__init__(f"chat key {key} still taken after {attempts} attempts")
        self.key = key
        self.attempts = attempts


class DecodeError(Exception):
    """Redis 返回值无法解析"""

    def __init__(self, message: str = "unexpected store response"):
        super().__init__(message)


class InvalidQueryError(ValueError):
    """查询参数非法"""
