"""
应用配置文件
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """应用配置"""
    
    # 应用基本配置
    APP_NAME: str = "Blog Comments"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # 数据库配置（浏览量、点赞数计数器）
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "blog"
    
    # JWT配置（管理员身份）
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    
    # CORS配置
    CORS_ORIGINS: list = ["*"]
    
    # 评论存储：memory（本地开发）或 kv（Cloudflare Worker KV 代理）
    COMMENT_STORE_BACKEND: str = "memory"
    
    # Cloudflare Worker KV 代理配置
    CLOUDFLARE_WORKER_URL: Optional[str] = None
    CLOUDFLARE_API_TOKEN: Optional[str] = None
    KV_TIMEOUT_SECONDS: float = 10.0
    
    # 管理员资料（管理员发表评论时使用）
    ADMIN_NICKNAME: str = "Admin"
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_WEBSITE: Optional[str] = None
    ADMIN_AVATAR: Optional[str] = None
    
    # 每日浏览量按此时区（小时偏移）切分日期，默认东八区
    STATS_UTC_OFFSET_HOURS: int = 8
    
    @property
    def DATABASE_URL(self) -> str:
        """获取数据库连接URL"""
        return f"postgresql+asyncpg://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
    
    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
