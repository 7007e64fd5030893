from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def check_origin(websocket: WebSocket) -> bool:
    """只允许配置的 Origin，或者 Host 是本机服务地址"""
    origin = websocket.headers.get("origin")
    host = websocket.headers.get("host")
    return origin == settings.ALLOWED_ORIGIN or host == settings.ALLOWED_HOST


@router.websocket("/echo")
async def echo(websocket: WebSocket):
    """
    回显端点：收到什么就原样发回去
    文本帧回文本帧，二进制帧回二进制帧；读写出错直接结束连接
    """
    if not check_origin(websocket):
        logger.warning(f"拒绝来源 origin={websocket.headers.get('origin')} host={websocket.headers.get('host')}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"客户端断开连接: {message.get('code')}")
                break

            if message.get("bytes") is not None:
                logger.info(f"Received: {message['bytes']!r}")
                await websocket.send_bytes(message["bytes"])
            elif message.get("text") is not None:
                logger.info(f"Received: {message['text']}")
                await websocket.send_text(message["text"])
    except WebSocketDisconnect:
        logger.info("客户端主动断开连接")
    except Exception as e:
        logger.error(f"回显时出错: {e}")
        try:
            await websocket.close()
        except RuntimeError:
            pass
