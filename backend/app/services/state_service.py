"""
房间状态服务

按请求者身份裁剪房间状态：每位玩家只能看到自己的身份和词语，
其余玩家的身份、投票去向和双方词语要到相应阶段才公开。
"""

import logging
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session

from app.core.database import db_operation
from app.core.utils import utcnow
from app.models.description import Description
from app.models.player import Player
from app.models.room import Room
from app.models.vote import Vote
from app.schemas.game_schemas import (
    DescriptionInfo, GamePhase, GameSettings, GameStateData, PlayerInfo,
    PlayerRole, RoomStateResponse, RoundResult, VoteInfo,
)
from app.services.auth import find_player_by_token, find_room
from app.services.serialization import load_game_state, load_settings

logger = logging.getLogger(__name__)

# 公开投票明细的阶段
_VOTES_VISIBLE = {GamePhase.RESULT.value, GamePhase.GAME_OVER.value}


def build_room_state(
    room: Room,
    players: Sequence[Player],
    descriptions: Sequence[Description],
    votes: Sequence[Vote],
    requester: Player,
    settings: GameSettings,
    game_state: Optional[GameStateData],
) -> RoomStateResponse:
    """
    组装请求者视角下的房间状态，不做任何数据库读写

    descriptions为整局的全部描述，votes为当前轮次的投票。
    """
    phase = room.phase
    game_over = phase == GamePhase.GAME_OVER.value
    current_round = room.round

    voted = {v.voter_id for v in votes if v.round == current_round}
    described = {d.player_id for d in descriptions if d.round == current_round}

    player_infos: List[PlayerInfo] = [
        PlayerInfo(
            id=p.id,
            name=p.name,
            is_host=p.id == room.host_id,
            is_alive=bool(p.is_alive),
            is_online=bool(p.is_online),
            is_bot=bool(p.is_bot),
            has_voted=p.id in voted,
            has_described=p.id in described,
            has_confirmed_word=bool(p.word_confirmed),
            role=p.role if game_over else None,
        )
        for p in sorted(players, key=lambda p: p.join_order)
    ]

    names = {p.id: p.name for p in players}
    description_infos = [
        DescriptionInfo(
            player_id=d.player_id,
            player_name=names.get(d.player_id, ""),
            text=d.text,
            round=d.round,
            created_at=d.created_at,
        )
        for d in descriptions
    ]

    vote_infos: List[VoteInfo] = []
    if phase in _VOTES_VISIBLE:
        vote_infos = [
            VoteInfo(voter_id=v.voter_id, target_id=v.target_id, round=v.round)
            for v in votes
            if v.round == current_round
        ]

    result = None
    if phase in _VOTES_VISIBLE and game_state is not None:
        result = RoundResult(
            eliminated_player_ids=list(game_state.last_round_eliminated),
            winner=game_state.winner if game_over else None,
        )

    my_role = None
    my_word = None
    if phase != GamePhase.WAITING.value and requester.role:
        my_role = requester.role
        my_word = room.spy_word if requester.role == PlayerRole.SPY.value else room.civilian_word

    return RoomStateResponse(
        room_id=room.id,
        room_code=room.code,
        phase=phase,
        players=player_infos,
        current_turn=room.current_turn,
        round=current_round,
        descriptions=description_infos,
        votes=vote_infos,
        result=result,
        settings=settings,
        my_player_id=requester.id,
        my_role=my_role,
        my_word=my_word,
        is_host=requester.id == room.host_id,
        civilian_word=room.civilian_word if game_over else None,
        spy_word=room.spy_word if game_over else None,
    )


class StateService:
    """房间状态查询"""

    def __init__(self, db: Session):
        self.db = db

    @db_operation("获取房间状态失败")
    def get_room_state(self, room_id: str, token: str) -> RoomStateResponse:
        room = find_room(self.db, room_id)
        requester = find_player_by_token(self.db, room, token)

        # 轮询即心跳
        requester.is_online = True
        requester.last_seen = utcnow()
        self.db.commit()

        descriptions = (
            self.db.query(Description)
            .filter(Description.room_id == room.id)
            .order_by(Description.id)
            .all()
        )
        votes = (
            self.db.query(Vote)
            .filter(Vote.room_id == room.id, Vote.round == room.round)
            .order_by(Vote.id)
            .all()
        )

        return build_room_state(
            room,
            list(room.players),
            descriptions,
            votes,
            requester,
            load_settings(room),
            load_game_state(room),
        )
