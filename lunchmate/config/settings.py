from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./lunchmate/data/lunchmate.duckdb"

    # JWT配置
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # 截单配置：当天本地时间 cutoff_hour 点之后顾客不能再修改订单
    cutoff_hour: int = Field(8, ge=0, le=23)
    default_time_zone: str = "UTC"

    # API配置
    api_title: str = "LunchMate API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 服务监听
    host: str = "127.0.0.1"
    port: int = 8000

    # 开发模式
    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LUNCHMATE_",
        case_sensitive=False,
        extra="ignore",
    )


# 全局设置实例
settings = Settings()
