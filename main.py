from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from app.websocket import router as websocket_router
from app.core.config import settings
from app.db.init_db import create_chat_index
from app.db.redis_client import create_redis_client, close_redis_client
from app.services.redis_cache import RedisCache
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ===== 启动阶段 =====
    client = create_redis_client(settings.REDIS_ADDRESS, settings.REDIS_PASSWORD, settings.REDIS_DB)
    app.state.cache = RedisCache(client)

    try:
        # 只试一次；重试留给 python -m app.db.init_db
        await create_chat_index(client, max_retries=1)
    except Exception as e:
        # Redis 不可用时照常启动，/echo 不依赖存储
        logger.error(f"聊天索引初始化失败: {e}")

    logger.info(f"Server Starting on Port :{settings.SERVER_PORT}")
    yield
    # ===== 关闭阶段 =====
    await close_redis_client(client)


app = FastAPI(
    title="Chat Demo",
    lifespan=lifespan
)

# 注册路由
app.include_router(websocket_router.router, tags=["WebSocket"])


@app.get("/health")
async def health_check(request: Request):
    """健康检查端点，用于监控服务状态"""
    cache: RedisCache = request.app.state.cache
    if await cache.ping():
        return {"status": "healthy", "redis": "connected"}
    return {"status": "unhealthy", "redis": "disconnected"}
