"""
房间JSON字段的读写

settings和game_state以文本形式保存在rooms表中，读取时一律经过pydantic校验，
损坏的数据按数据库错误处理而不是当作合法状态继续使用。
"""

import logging
from typing import Optional
from pydantic import ValidationError

from app.core.errors import ErrorCode, GameError
from app.schemas.game_schemas import GameSettings, GameStateData

logger = logging.getLogger(__name__)


def load_settings(room) -> GameSettings:
    try:
        return GameSettings.model_validate_json(room.settings)
    except (ValidationError, TypeError) as e:
        logger.error("房间 %s 的settings字段无法解析: %s", room.id, e)
        raise GameError(ErrorCode.DATABASE_ERROR, "房间设置数据损坏")


def dump_settings(settings: GameSettings) -> str:
    return settings.model_dump_json()


def load_game_state(room) -> Optional[GameStateData]:
    if room.game_state is None:
        return None
    try:
        return GameStateData.model_validate_json(room.game_state)
    except ValidationError as e:
        logger.error("房间 %s 的game_state字段无法解析: %s", room.id, e)
        raise GameError(ErrorCode.DATABASE_ERROR, "对局状态数据损坏")


def dump_game_state(state: GameStateData) -> str:
    return state.model_dump_json()
