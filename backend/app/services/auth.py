"""
操作鉴权：定位房间和玩家，检查房主权限和当前阶段
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from sqlalchemy.orm import Session

from app.core.errors import ErrorCode, GameError
from app.models.player import Player
from app.models.room import Room
from app.schemas.game_schemas import GamePhase

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    room: Room
    player: Player

    @property
    def is_host(self) -> bool:
        return self.player.id == self.room.host_id


def find_room(db: Session, room_id: str) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise GameError(ErrorCode.ROOM_NOT_FOUND, "房间不存在")
    return room


def find_player_by_token(db: Session, room: Room, token: str) -> Player:
    player = db.query(Player).filter(Player.token == token, Player.room_id == room.id).first()
    if not player:
        raise GameError(ErrorCode.PLAYER_NOT_FOUND, "玩家不存在或token无效")
    return player


def authenticate_action(
    db: Session,
    room_id: str,
    token: str,
    require_host: bool = False,
    allowed_phases: Optional[Iterable[GamePhase]] = None,
    host_message: str = "只有房主可以执行此操作",
    phase_message: str = "当前游戏阶段不允许此操作",
) -> ActionContext:
    """
    依次检查：房间存在 → token有效 → 房主权限 → 当前阶段

    房主权限先于阶段检查，非房主调用房主操作时总是得到NOT_AUTHORIZED。
    """
    room = find_room(db, room_id)
    player = find_player_by_token(db, room, token)
    context = ActionContext(room=room, player=player)

    if require_host and not context.is_host:
        logger.debug("玩家 %s 尝试执行房主操作被拒绝", player.id)
        raise GameError(ErrorCode.NOT_AUTHORIZED, host_message)

    if allowed_phases is not None:
        allowed = {GamePhase(p).value for p in allowed_phases}
        if room.phase not in allowed:
            logger.debug("房间 %s 处于 %s 阶段，拒绝操作", room.id, room.phase)
            raise GameError(ErrorCode.INVALID_PHASE, phase_message)

    return context
