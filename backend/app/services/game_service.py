"""
游戏流程服务

房间阶段的状态机。每个玩家操作都在这里完成鉴权、阶段检查、规则计算，
并在一次事务中写回数据库。
"""

import logging
import random
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from app.core.database import db_operation
from app.core.errors import ErrorCode, GameError
from app.core.utils import utcnow
from app.core.validation import validate_description
from app.models.description import Description
from app.models.player import Player
from app.models.room import Room
from app.models.vote import Vote
from app.schemas.game_schemas import GamePhase, GameStateData, PlayerRole
from app.schemas.room_schemas import GameAction
from app.services.auth import authenticate_action
from app.services.game_reset import apply_game_reset, compute_game_reset
from app.services.role_assigner import assign_roles, validate_game_start
from app.services.serialization import dump_game_state, dump_settings, load_game_state, load_settings
from app.services.turn_sequencer import get_next_turn, is_player_turn
from app.services.victory import check_victory_condition
from app.services.vote_engine import tally_votes, validate_vote

logger = logging.getLogger(__name__)

# 合法的阶段转换（重新开始游戏不受此表限制）
PHASE_TRANSITIONS: Dict[GamePhase, set] = {
    GamePhase.WAITING: {GamePhase.WORD_REVEAL},
    GamePhase.WORD_REVEAL: {GamePhase.DESCRIPTION},
    GamePhase.DESCRIPTION: {GamePhase.VOTING},
    GamePhase.VOTING: {GamePhase.RESULT, GamePhase.GAME_OVER},
    GamePhase.RESULT: {GamePhase.DESCRIPTION, GamePhase.GAME_OVER},
    GamePhase.GAME_OVER: {GamePhase.WAITING},
}


def can_transition(current, target) -> bool:
    return GamePhase(target) in PHASE_TRANSITIONS.get(GamePhase(current), set())


class GameService:
    """游戏流程服务"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def _transition(self, room: Room, target: GamePhase) -> None:
        if not can_transition(room.phase, target):
            raise GameError(ErrorCode.INVALID_PHASE, "当前游戏阶段不允许此操作")
        logger.info("🔄 房间 %s 阶段切换: %s → %s", room.code, room.phase, target.value)
        room.phase = target.value
        room.updated_at = utcnow()

    def _require_game_state(self, room: Room) -> GameStateData:
        state = load_game_state(room)
        if state is None:
            raise GameError(ErrorCode.DATABASE_ERROR, "对局状态缺失")
        return state

    # ── 开局 ──────────────────────────────────────────────────────────────

    @db_operation("开始游戏失败，请重试")
    def start_game(self, room_id: str, token: str) -> dict:
        """开始游戏：校验人数，分配身份和词语，随机首位发言者"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.WAITING],
            host_message="只有房主可以开始游戏",
            phase_message="游戏已经开始",
        )
        room = ctx.room
        players: List[Player] = list(room.players)
        settings = load_settings(room)

        check = validate_game_start(len(players), settings.spy_count)
        if not check.valid:
            raise GameError(ErrorCode.INVALID_ACTION, check.error)

        assignment = assign_roles(self.db, [p.id for p in players], settings.spy_count, self.rng)
        spy_ids = set(assignment.spy_ids)
        for player in players:
            player.role = PlayerRole.SPY.value if player.id in spy_ids else PlayerRole.CIVILIAN.value
            player.is_alive = True
            player.word_confirmed = False

        room.civilian_word = assignment.civilian_word
        room.spy_word = assignment.spy_word
        room.current_turn = assignment.first_turn
        room.round = 1
        room.game_state = dump_game_state(GameStateData(spy_ids=assignment.spy_ids))
        self._transition(room, GamePhase.WORD_REVEAL)
        self.db.commit()

        logger.info("🎮 房间 %s 开始游戏：%d 名玩家，%d 名卧底", room.code, len(players), len(spy_ids))
        return {"success": True}

    @db_operation("确认词语失败，请重试")
    def confirm_word(self, room_id: str, token: str) -> dict:
        """房主确认所有人已看过词语，进入描述阶段（不等待玩家各自确认）"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.WORD_REVEAL],
            host_message="只有房主可以进入描述阶段",
            phase_message="当前不是查看词语阶段",
        )
        self._transition(ctx.room, GamePhase.DESCRIPTION)
        self.db.commit()
        return {"success": True}

    @db_operation("确认词语失败，请重试")
    def confirm_word_player(self, room_id: str, token: str) -> dict:
        """玩家标记自己已看过词语"""
        ctx = authenticate_action(
            self.db, room_id, token,
            allowed_phases=[GamePhase.WORD_REVEAL],
            phase_message="当前不是查看词语阶段",
        )
        ctx.player.word_confirmed = True
        ctx.room.updated_at = utcnow()
        self.db.commit()
        return {"success": True}

    # ── 描述阶段 ──────────────────────────────────────────────────────────

    @db_operation("提交描述失败，请重试")
    def submit_description(self, room_id: str, token: str, text: str) -> dict:
        """当前发言者提交描述，然后轮到下一位存活玩家"""
        ctx = authenticate_action(
            self.db, room_id, token,
            allowed_phases=[GamePhase.DESCRIPTION],
            phase_message="当前不是描述阶段",
        )
        room, player = ctx.room, ctx.player

        if not player.is_alive:
            raise GameError(ErrorCode.INVALID_ACTION, "已淘汰的玩家不能描述")

        players = list(room.players)
        if not is_player_turn(players, room.current_turn, player.id):
            raise GameError(ErrorCode.INVALID_ACTION, "还没轮到你描述")

        already_described = self.db.query(Description).filter(
            Description.room_id == room.id,
            Description.player_id == player.id,
            Description.round == room.round,
        ).first()
        if already_described:
            raise GameError(ErrorCode.INVALID_ACTION, "本轮已经描述过了")

        own_word = room.spy_word if player.role == PlayerRole.SPY.value else room.civilian_word
        error = validate_description(text, own_word)
        if error:
            raise GameError(ErrorCode.INVALID_INPUT, error)

        self.db.add(Description(room_id=room.id, player_id=player.id, round=room.round, text=text))
        room.current_turn = get_next_turn(players, room.current_turn)
        room.updated_at = utcnow()
        self.db.commit()
        return {"success": True}

    @db_operation("跳过玩家失败，请重试")
    def skip_player(self, room_id: str, token: str) -> dict:
        """房主跳过当前发言者"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.DESCRIPTION],
            host_message="只有房主可以跳过玩家",
            phase_message="当前不是描述阶段",
        )
        room = ctx.room
        room.current_turn = get_next_turn(list(room.players), room.current_turn)
        room.updated_at = utcnow()
        self.db.commit()
        return {"success": True}

    @db_operation("开始投票失败，请重试")
    def start_voting(self, room_id: str, token: str) -> dict:
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.DESCRIPTION],
            host_message="只有房主可以开始投票",
            phase_message="当前不是描述阶段",
        )
        self._transition(ctx.room, GamePhase.VOTING)
        self.db.commit()
        return {"success": True}

    # ── 投票阶段 ──────────────────────────────────────────────────────────

    @db_operation("投票失败，请重试")
    def submit_vote(self, room_id: str, token: str, target_id: str) -> dict:
        ctx = authenticate_action(
            self.db, room_id, token,
            allowed_phases=[GamePhase.VOTING],
            phase_message="当前不是投票阶段",
        )
        room, voter = ctx.room, ctx.player

        target = self.db.query(Player).filter(Player.id == target_id, Player.room_id == room.id).first()
        if not target:
            raise GameError(ErrorCode.PLAYER_NOT_FOUND, "目标玩家不存在")

        existing_vote = self.db.query(Vote).filter(
            Vote.room_id == room.id,
            Vote.voter_id == voter.id,
            Vote.round == room.round,
        ).first()

        check = validate_vote(voter.id, target.id, voter.is_alive, target.is_alive, existing_vote is not None)
        if not check.valid:
            raise GameError(ErrorCode.INVALID_ACTION, check.error)

        self.db.add(Vote(room_id=room.id, voter_id=voter.id, target_id=target.id, round=room.round))
        room.updated_at = utcnow()
        self.db.commit()
        return {"success": True}

    @db_operation("结束投票失败，请重试")
    def finalize_voting(self, room_id: str, token: str) -> dict:
        """计票、淘汰得票最多的玩家（平票全部淘汰），随后判定胜负"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.VOTING],
            host_message="只有房主可以结束投票",
            phase_message="当前不是投票阶段",
        )
        room = ctx.room
        state = self._require_game_state(room)

        votes = self.db.query(Vote).filter(Vote.room_id == room.id, Vote.round == room.round).all()
        tally = tally_votes(v.target_id for v in votes)

        players = list(room.players)
        eliminated_ids = set(tally.eliminated_player_ids)
        eliminated = []
        for player in players:
            if player.id in eliminated_ids and player.is_alive:
                player.is_alive = False
                eliminated.append(player.id)
                if player.id not in state.eliminated_players:
                    state.eliminated_players.append(player.id)
        state.last_round_eliminated = eliminated

        alive_players = [p for p in players if p.is_alive]
        victory = check_victory_condition(alive_players, state.spy_ids)
        if victory.game_over:
            state.winner = victory.winner
            self._transition(room, GamePhase.GAME_OVER)
        else:
            self._transition(room, GamePhase.RESULT)
        room.game_state = dump_game_state(state)
        self.db.commit()

        logger.info(
            "🗳️ 房间 %s 第%d轮投票结束：%d 票，淘汰 %d 人",
            room.code, room.round, tally.total_votes, len(eliminated),
        )
        if victory.game_over:
            logger.info("🏆 房间 %s 游戏结束，%s 获胜", room.code, victory.winner.value)

        return {
            "success": True,
            "eliminated_player_ids": eliminated,
            "game_over": victory.game_over,
        }

    @db_operation("继续游戏失败，请重试")
    def continue_game(self, room_id: str, token: str) -> dict:
        """结算后进入下一轮描述"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.RESULT],
            host_message="只有房主可以继续游戏",
            phase_message="当前不是结算阶段",
        )
        room = ctx.room
        room.round += 1
        room.current_turn = 0
        self._transition(room, GamePhase.DESCRIPTION)
        self.db.commit()
        return {"success": True}

    # ── 重新开始与房间管理 ────────────────────────────────────────────────

    @db_operation("重新开始游戏失败，请重试")
    def restart_game(self, room_id: str, token: str) -> dict:
        """任意阶段回到等待阶段：保留玩家，清空身份、词语、描述和投票"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            host_message="只有房主可以重新开始游戏",
        )
        room = ctx.room
        players = list(room.players)

        reset = compute_game_reset(room, players)
        apply_game_reset(room, players, reset)
        if reset.descriptions_cleared:
            self.db.query(Description).filter(Description.room_id == room.id).delete(synchronize_session=False)
        if reset.votes_cleared:
            self.db.query(Vote).filter(Vote.room_id == room.id).delete(synchronize_session=False)
        room.updated_at = utcnow()
        self.db.commit()

        logger.info("🔁 房间 %s 重新开始，保留 %d 名玩家", room.code, len(players))
        return {"success": True}

    @db_operation("更新设置失败，请重试")
    def update_settings(self, room_id: str, token: str, spy_count) -> dict:
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.WAITING],
            host_message="只有房主可以修改设置",
            phase_message="游戏进行中不能修改设置",
        )
        room = ctx.room
        settings = load_settings(room)

        max_spies = settings.max_players - 2
        if not isinstance(spy_count, int) or isinstance(spy_count, bool) or not 1 <= spy_count <= max_spies:
            raise GameError(ErrorCode.INVALID_INPUT, f"卧底数量必须在1到{max_spies}之间")

        settings.spy_count = spy_count
        room.settings = dump_settings(settings)
        room.updated_at = utcnow()
        self.db.commit()
        return {"success": True, "settings": settings.model_dump()}

    @db_operation("踢出玩家失败，请重试")
    def kick_player(self, room_id: str, token: str, target_id: str) -> dict:
        """房主在等待阶段移出一名玩家，其余玩家的座位顺序保持从0连续"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.WAITING],
            host_message="只有房主可以踢出玩家",
            phase_message="游戏进行中不能踢出玩家",
        )
        room = ctx.room
        if target_id == room.host_id:
            raise GameError(ErrorCode.INVALID_ACTION, "不能踢出自己")

        target = next((p for p in room.players if p.id == target_id), None)
        if target is None:
            raise GameError(ErrorCode.PLAYER_NOT_FOUND, "目标玩家不存在")

        room.players.remove(target)
        for order, player in enumerate(sorted(room.players, key=lambda p: p.join_order)):
            player.join_order = order
        room.updated_at = utcnow()
        self.db.commit()

        logger.info("👢 房间 %s 移出了一名玩家，剩余 %d 人", room.code, len(room.players))
        return {"success": True}

    # ── 操作分发 ──────────────────────────────────────────────────────────

    def perform_action(self, room_id: str, token: str, action: GameAction) -> dict:
        """按操作类型分发到对应的处理函数"""
        action_type = action.type

        if action_type == "start-game":
            return self.start_game(room_id, token)
        if action_type == "confirm-word":
            return self.confirm_word(room_id, token)
        if action_type == "confirm-word-player":
            return self.confirm_word_player(room_id, token)
        if action_type == "submit-description":
            if not action.text:
                raise GameError(ErrorCode.INVALID_INPUT, "缺少描述文本")
            return self.submit_description(room_id, token, action.text)
        if action_type in ("next-player", "skip-player"):
            return self.skip_player(room_id, token)
        if action_type == "start-voting":
            return self.start_voting(room_id, token)
        if action_type == "vote":
            if not action.target_id:
                raise GameError(ErrorCode.INVALID_INPUT, "缺少目标玩家ID")
            return self.submit_vote(room_id, token, action.target_id)
        if action_type == "finalize-voting":
            return self.finalize_voting(room_id, token)
        if action_type == "continue-game":
            return self.continue_game(room_id, token)
        if action_type == "restart-game":
            return self.restart_game(room_id, token)
        if action_type == "update-settings":
            if action.settings is None or action.settings.spy_count is None:
                raise GameError(ErrorCode.INVALID_INPUT, "缺少设置参数")
            return self.update_settings(room_id, token, action.settings.spy_count)
        if action_type == "kick-player":
            if not action.player_id:
                raise GameError(ErrorCode.INVALID_INPUT, "缺少目标玩家ID")
            return self.kick_player(room_id, token, action.player_id)

        raise GameError(ErrorCode.INVALID_ACTION, "未知操作类型")
