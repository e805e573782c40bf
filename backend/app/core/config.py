"""
应用配置模块
"""

from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

class Settings(BaseSettings):
    """应用设置"""

    # 基础设置
    APP_NAME: str = "谁是卧底"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 服务器设置
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # 数据库设置
    DATABASE_URL: str = "sqlite:///./who_is_spy.db"
    WORD_PAIRS_FILE: str = str(_DATA_DIR / "word_pairs.json")

    # 游戏设置
    DEFAULT_SPY_COUNT: int = 1
    MIN_PLAYERS: int = 3
    MAX_PLAYERS: int = 20
    MIN_DESCRIPTION_LENGTH: int = 5
    MAX_DESCRIPTION_LENGTH: int = 50

    # 输入校验
    MIN_NAME_LENGTH: int = 2
    MAX_NAME_LENGTH: int = 10
    MIN_PASSWORD_LENGTH: int = 4
    MAX_PASSWORD_LENGTH: int = 8
    ROOM_CODE_MAX_RETRIES: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

# 全局设置实例
settings = Settings()
