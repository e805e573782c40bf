"""
测试夹具：内存SQLite数据库、已播种的词库、带依赖覆盖的TestClient
"""

import random

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db, sync_word_pairs
from app.models.room import Room  # noqa: F401  注册所有表
from app.models.player import Player  # noqa: F401
from app.models.description import Description  # noqa: F401
from app.models.vote import Vote  # noqa: F401
from app.models.word_pair import WordPair  # noqa: F401
from app.services.game_service import GameService
from app.services.room_service import RoomService

PASSWORD = "abcd"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    sync_word_pairs(db, settings.WORD_PAIRS_FILE)
    db.close()
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def rng():
    return random.Random(20240501)


@pytest.fixture
def game(db, rng):
    return GameService(db, rng=rng)


@pytest.fixture
def make_room(db):
    """
    创建一个房间并加入若干玩家

    返回 (room_id, tokens)，tokens[0] 为房主。
    """
    def _make_room(player_count=3, spy_count=None):
        service = RoomService(db)
        created = service.create_room("房主", PASSWORD)
        tokens = [created.player_token]
        for i in range(1, player_count):
            joined = service.join_room(created.room_code, PASSWORD, f"玩家{i}")
            tokens.append(joined.player_token)
        if spy_count is not None:
            GameService(db).update_settings(created.room_id, tokens[0], spy_count)
        return created.room_id, tokens

    return _make_room


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
