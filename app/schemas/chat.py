from pydantic import BaseModel, ConfigDict, Field


class Chat(BaseModel):
    """一条聊天消息；id 是存储后的 Redis key，不写进文档本身"""
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, exclude=True)
    from_: str = Field(alias="from")
    to: str
    body: str = ""
    timestamp: int = 0  # unix 秒

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ContactList(BaseModel):
    username: str
    last_activity: int  # unix 秒


class Document(BaseModel):
    """FT.SEARCH 的一行结果 + 总数，只在反序列化过程中使用"""
    id: str
    payload: bytes
    total: int
