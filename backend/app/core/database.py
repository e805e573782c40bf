"""
数据库配置
"""
import functools
import json
import logging
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from app.core.config import settings
from app.core.errors import ErrorCode, GameError

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    echo=False  # 设置为True可以看到SQL查询日志
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

async def init_db():
    """初始化数据库"""
    # 导入所有模型
    from app.models.room import Room
    from app.models.player import Player
    from app.models.description import Description
    from app.models.vote import Vote
    from app.models.word_pair import WordPair

    # 创建所有表
    Base.metadata.create_all(bind=engine)

    # 执行数据库迁移
    _migrate_database()

    # 同步词库
    db = SessionLocal()
    try:
        count = sync_word_pairs(db, settings.WORD_PAIRS_FILE)
        logger.info("📚 词库同步完成，共 %d 组词语", count)
    finally:
        db.close()

    logger.info("✅ 数据库初始化完成")

# 旧版本players表缺失的列
_PLAYER_COLUMNS = {
    "word_confirmed": "ALTER TABLE players ADD COLUMN word_confirmed BOOLEAN DEFAULT 0",
    "is_bot": "ALTER TABLE players ADD COLUMN is_bot BOOLEAN DEFAULT 0",
    "bot_config": "ALTER TABLE players ADD COLUMN bot_config TEXT",
}

def _migrate_database():
    """执行数据库迁移：为旧库补齐players表的新增列"""
    columns = {column["name"] for column in inspect(engine).get_columns("players")}
    missing = [name for name in _PLAYER_COLUMNS if name not in columns]
    if not missing:
        logger.debug("players表结构已是最新，跳过迁移")
        return

    with engine.begin() as conn:
        for name in missing:
            logger.info("📦 执行数据库迁移：添加players.%s字段...", name)
            conn.execute(text(_PLAYER_COLUMNS[name]))

def sync_word_pairs(db: Session, path: str) -> int:
    """从JSON文件同步词库：新词对插入，已有词对更新分类"""
    from app.models.word_pair import WordPair

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    existing = {
        (pair.civilian_word, pair.spy_word): pair
        for pair in db.query(WordPair).all()
    }
    for item in data.get("pairs", []):
        key = (item["civilian"], item["spy"])
        category = item.get("category", "general")
        if key in existing:
            existing[key].category = category
        else:
            pair = WordPair(civilian_word=key[0], spy_word=key[1], category=category)
            db.add(pair)
            existing[key] = pair

    db.commit()
    return len(existing)

def db_operation(failure_message: str):
    """
    服务方法装饰器：一次操作对应一次事务

    业务校验失败或数据库出错时回滚，数据库错误统一转换为DATABASE_ERROR。
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except GameError:
                self.db.rollback()
                raise
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("❌ %s", failure_message)
                raise GameError(ErrorCode.DATABASE_ERROR, failure_message)
        return wrapper
    return decorator
