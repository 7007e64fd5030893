from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # ---------- Redis ----------
    REDIS_ADDRESS: str = "localhost:6379"
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0

    # 每条 Redis 命令的超时（秒）
    STORE_TIMEOUT: float = 5.0
    # FT.SEARCH 分页大小
    CHAT_PAGE_SIZE: int = 100
    # chat key 冲突时最多尝试次数
    CHAT_KEY_ATTEMPTS: int = 5

    # ---------- WebSocket ----------
    ALLOWED_ORIGIN: str = "http://localhost:8080"
    ALLOWED_HOST: str = "localhost:8080"

    # ---------- Server ----------
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
