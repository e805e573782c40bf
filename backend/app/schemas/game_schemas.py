"""
游戏相关的数据模式
"""

import enum
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional, List
from datetime import datetime
from app.core.utils import format_timestamp_with_timezone

class GamePhase(str, enum.Enum):
    """房间阶段"""
    WAITING = "waiting"
    WORD_REVEAL = "word-reveal"
    DESCRIPTION = "description"
    VOTING = "voting"
    RESULT = "result"
    GAME_OVER = "game-over"

class PlayerRole(str, enum.Enum):
    """玩家身份"""
    CIVILIAN = "civilian"
    SPY = "spy"

class GameSettings(BaseModel):
    """房间设置（存储在rooms.settings）"""
    spy_count: int = Field(default=1, ge=0)
    min_players: int = Field(default=3, ge=1)
    max_players: int = Field(default=20, ge=1)

class GameStateData(BaseModel):
    """对局状态（存储在rooms.game_state），每次读取都重新校验"""
    eliminated_players: List[str] = Field(default_factory=list)
    spy_ids: List[str] = Field(default_factory=list)
    winner: Optional[PlayerRole] = None
    last_round_eliminated: List[str] = Field(default_factory=list)

class PlayerInfo(BaseModel):
    """玩家公开信息"""
    id: str
    name: str
    is_host: bool
    is_alive: bool
    is_online: bool
    is_bot: bool = False
    has_voted: bool = False
    has_described: bool = False
    has_confirmed_word: bool = False
    role: Optional[PlayerRole] = None  # 仅在游戏结束后公开

class DescriptionInfo(BaseModel):
    """描述记录"""
    player_id: str
    player_name: str
    text: str
    round: int
    created_at: Optional[datetime] = None

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

class VoteInfo(BaseModel):
    """投票记录（仅在结算后公开）"""
    voter_id: str
    target_id: str
    round: int

class RoundResult(BaseModel):
    """结算信息"""
    eliminated_player_ids: List[str] = Field(default_factory=list)
    winner: Optional[PlayerRole] = None

class RoomStateResponse(BaseModel):
    """某位玩家视角下的房间状态"""
    room_id: str
    room_code: str
    phase: GamePhase
    players: List[PlayerInfo]
    current_turn: int
    round: int
    descriptions: List[DescriptionInfo]
    votes: List[VoteInfo]
    result: Optional[RoundResult] = None
    settings: GameSettings
    my_player_id: str
    my_role: Optional[PlayerRole] = None
    my_word: Optional[str] = None
    is_host: bool
    # 游戏结束后公开双方词语
    civilian_word: Optional[str] = None
    spy_word: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)
