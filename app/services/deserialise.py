# services/deserialise.py
"""
把 Redis 的原始返回值转换成 Chat / ContactList

FT.SEARCH 支持两种协议版本：
    RESP2: [total, id1, [field, value, ...], id2, [...], ...]
    RESP3: {"total_results": n, "results": [{"id": ..., "extra_attributes": {"$": body}}]}
JSON 文档的字段数组最后一个元素就是整个文档的 JSON。
"""
import logging
from typing import Any, Iterable, List

from pydantic import ValidationError

from app.core.exceptions import DecodeError
from app.schemas.chat import Chat, ContactList, Document

logger = logging.getLogger(__name__)


def _to_str(value: Any, what: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError(f"{what} 不是合法的 UTF-8")
    raise DecodeError(f"{what} 类型错误: {type(value).__name__}")


def _to_payload(value: Any, what: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    raise DecodeError(f"{what} 类型错误: {type(value).__name__}")


def _to_total(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"total 不是整数: {value!r}")
    return value


def _deserialise_resp2(res: list) -> List[Document]:
    total = _to_total(res[0])
    rows = res[1:]
    if len(rows) % 2 != 0:
        raise DecodeError(f"搜索结果长度不成对: {len(rows)}")

    docs = []
    for i in range(0, len(rows), 2):
        doc_id = _to_str(rows[i], "document id")
        fields = rows[i + 1]
        if not isinstance(fields, (list, tuple)) or not fields:
            raise DecodeError(f"文档 {doc_id} 的字段数组为空或类型错误")
        docs.append(Document(
            id=doc_id,
            payload=_to_payload(fields[-1], f"文档 {doc_id} 的内容"),
            total=total,
        ))
    return docs


def _deserialise_resp3(res: dict) -> List[Document]:
    total = _to_total(res.get("total_results"))
    results = res.get("results")
    if not isinstance(results, list):
        raise DecodeError("results 不是列表")

    docs = []
    for row in results:
        if not isinstance(row, dict):
            raise DecodeError(f"搜索结果行类型错误: {type(row).__name__}")
        doc_id = _to_str(row.get("id"), "document id")
        attributes = row.get("extra_attributes")
        if not isinstance(attributes, dict) or not attributes:
            raise DecodeError(f"文档 {doc_id} 缺少 extra_attributes")
        body = attributes.get("$", list(attributes.values())[-1])
        docs.append(Document(
            id=doc_id,
            payload=_to_payload(body, f"文档 {doc_id} 的内容"),
            total=total,
        ))
    return docs


def deserialise(res: Any) -> List[Document]:
    """FT.SEARCH 结果 -> Document 列表；空结果返回 []，结构不对抛 DecodeError"""
    if res is None:
        return []
    if isinstance(res, dict):
        return _deserialise_resp3(res)
    if isinstance(res, (list, tuple)):
        if len(res) <= 1:
            if res:
                _to_total(res[0])
            return []
        return _deserialise_resp2(list(res))

    logger.error(f"FT.SEARCH 返回了未知类型: {type(res).__name__}")
    raise DecodeError(f"unexpected search response type: {type(res).__name__}")


def deserialise_chat(docs: Iterable[Document]) -> List[Chat]:
    """
    逐条解析文档内容。
    某条 JSON 解析失败只跳过这一条并记 warning，不影响整批结果。
    """
    chats = []
    for doc in docs:
        try:
            chat = Chat.model_validate_json(doc.payload)
        except ValidationError as e:
            logger.warning(f"跳过无法解析的聊天文档 {doc.id}: {e.error_count()} 个错误")
            continue
        chat.id = doc.id
        chats.append(chat)
    return chats


def deserialise_contact_list(contacts: Any) -> List[ContactList]:
    """ZRANGE ... WITHSCORES 的 [(member, score), ...] -> ContactList 列表"""
    if contacts is None:
        return []
    if not isinstance(contacts, (list, tuple)):
        raise DecodeError(f"联系人列表类型错误: {type(contacts).__name__}")

    contact_list = []
    for item in contacts:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise DecodeError(f"联系人条目不是 (member, score): {item!r}")
        member, score = item
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise DecodeError(f"联系人 {member!r} 的 score 类型错误: {type(score).__name__}")
        contact_list.append(ContactList(
            username=_to_str(member, "联系人用户名"),
            last_activity=int(score),
        ))
    return contact_list
