# start.py
import uvicorn
from app.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        workers=1,
        loop="asyncio",
        timeout_keep_alive=75,  # 避免WebSocket频繁断开
        log_level=settings.LOG_LEVEL.lower(),
    )
