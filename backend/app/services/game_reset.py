"""
重新开始：保留玩家名单，清空对局数据
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.schemas.game_schemas import GamePhase


@dataclass
class RoomReset:
    phase: str = GamePhase.WAITING.value
    civilian_word: Optional[str] = None
    spy_word: Optional[str] = None
    game_state: Optional[str] = None
    current_turn: int = 0
    round: int = 1


@dataclass
class PlayerReset:
    id: str
    name: str
    join_order: int
    role: Optional[str] = None
    is_alive: bool = True
    word_confirmed: bool = False


@dataclass
class GameReset:
    room: RoomReset
    players: List[PlayerReset] = field(default_factory=list)
    descriptions_cleared: bool = True
    votes_cleared: bool = True


def compute_game_reset(room, players: Sequence) -> GameReset:
    """
    计算重置后的房间与玩家状态（纯函数，不读写数据库）

    任何阶段都可以调用；所有玩家身份清空并全部复活，对自身输出再次调用结果不变。
    """
    return GameReset(
        room=RoomReset(),
        players=[
            PlayerReset(id=p.id, name=p.name, join_order=p.join_order)
            for p in sorted(players, key=lambda p: p.join_order)
        ],
    )


def apply_game_reset(room, players: Sequence, reset: GameReset) -> None:
    """把重置结果写回房间和玩家对象"""
    for key, value in vars(reset.room).items():
        setattr(room, key, value)

    by_id = {p.id: p for p in players}
    for projected in reset.players:
        player = by_id[projected.id]
        player.role = projected.role
        player.is_alive = projected.is_alive
        player.word_confirmed = projected.word_confirmed
