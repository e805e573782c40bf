"""
房间管理服务：创建房间、加入/重连、添加机器人
"""

import json
import logging
import random
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from app.core.config import settings as app_settings
from app.core.database import db_operation
from app.core.errors import ErrorCode, GameError
from app.core.security import (
    generate_player_token, generate_room_code, generate_room_password,
    hash_password, verify_password,
)
from app.core.utils import new_id, utcnow
from app.core.validation import validate_password, validate_player_name, validate_room_code
from app.models.player import Player
from app.models.room import Room
from app.schemas.game_schemas import GamePhase, GameSettings
from app.schemas.room_schemas import CreateRoomResponse, JoinRoomResponse
from app.services.auth import authenticate_action
from app.services.serialization import dump_settings, load_settings

logger = logging.getLogger(__name__)

NAME_ERROR = "昵称必须是2-10个非空白字符"
PASSWORD_ERROR = "密码必须是4-8个字符"


class RoomService:
    """房间管理服务"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def _generate_unique_code(self) -> str:
        """生成未被占用的房间号，冲突时重试"""
        for _ in range(app_settings.ROOM_CODE_MAX_RETRIES):
            code = generate_room_code()
            if not self.db.query(Room.id).filter(Room.code == code).first():
                return code
        logger.error("❌ 连续 %d 次生成的房间号都已被占用", app_settings.ROOM_CODE_MAX_RETRIES)
        raise GameError(ErrorCode.DATABASE_ERROR, "创建房间失败，请重试")

    def _name_taken(self, room_id: str, name: str) -> bool:
        return self.db.query(Player.id).filter(Player.room_id == room_id, Player.name == name).first() is not None

    def _ensure_not_full(self, room: Room) -> int:
        """返回当前人数；房间已满时拒绝"""
        count = self.db.query(Player).filter(Player.room_id == room.id).count()
        if count >= load_settings(room).max_players:
            raise GameError(ErrorCode.INVALID_ACTION, "房间已满")
        return count

    @db_operation("创建房间失败，请重试")
    def create_room(self, player_name: str, password: Optional[str] = None) -> CreateRoomResponse:
        """创建房间，创建者成为房主；未提供密码时自动生成4位密码"""
        if not validate_player_name(player_name):
            raise GameError(ErrorCode.INVALID_INPUT, NAME_ERROR)
        if password is None:
            password = generate_room_password()
        elif not validate_password(password):
            raise GameError(ErrorCode.INVALID_INPUT, PASSWORD_ERROR)

        room_id = new_id()
        player_id = new_id()
        token = generate_player_token()
        now = utcnow()

        room = Room(
            id=room_id,
            code=self._generate_unique_code(),
            password_hash=hash_password(password),
            phase=GamePhase.WAITING.value,
            host_id=player_id,
            settings=dump_settings(GameSettings(
                spy_count=app_settings.DEFAULT_SPY_COUNT,
                min_players=app_settings.MIN_PLAYERS,
                max_players=app_settings.MAX_PLAYERS,
            )),
            created_at=now,
            updated_at=now,
        )
        room.players.append(Player(
            id=player_id,
            token=token,
            name=player_name,
            join_order=0,
            last_seen=now,
        ))
        self.db.add(room)
        self.db.commit()

        logger.info("🏠 创建房间 %s", room.code)
        return CreateRoomResponse(
            room_id=room_id,
            room_code=room.code,
            room_password=password,
            player_id=player_id,
            player_token=token,
        )

    @db_operation("加入房间失败，请重试")
    def join_room(
        self,
        room_code: str,
        password: str,
        player_name: str,
        player_token: Optional[str] = None,
    ) -> JoinRoomResponse:
        """
        加入房间

        携带本房间有效token时视为断线重连，任何阶段都恢复原身份；
        否则只能在等待阶段以新昵称加入。
        """
        if not validate_room_code(room_code):
            raise GameError(ErrorCode.INVALID_INPUT, "房间号必须是6位数字")
        if not validate_password(password):
            raise GameError(ErrorCode.INVALID_INPUT, PASSWORD_ERROR)
        if not validate_player_name(player_name):
            raise GameError(ErrorCode.INVALID_INPUT, NAME_ERROR)

        room = self.db.query(Room).filter(Room.code == room_code).first()
        if not room:
            raise GameError(ErrorCode.ROOM_NOT_FOUND, "房间不存在")
        if not verify_password(password, room.password_hash):
            raise GameError(ErrorCode.WRONG_PASSWORD, "密码错误")

        if player_token:
            existing = self.db.query(Player).filter(
                Player.token == player_token,
                Player.room_id == room.id,
            ).first()
            if existing:
                existing.is_online = True
                existing.last_seen = utcnow()
                self.db.commit()
                logger.info("🔌 玩家重新连接房间 %s", room.code)
                return JoinRoomResponse(
                    room_id=room.id,
                    player_id=existing.id,
                    player_token=existing.token,
                    is_reconnect=True,
                )

        if room.phase != GamePhase.WAITING.value:
            raise GameError(ErrorCode.GAME_IN_PROGRESS, "游戏已开始，无法加入")
        if self._name_taken(room.id, player_name):
            raise GameError(ErrorCode.DUPLICATE_NAME, "该昵称已被使用，请换一个")

        join_order = self._ensure_not_full(room)
        now = utcnow()
        player = Player(
            id=new_id(),
            room_id=room.id,
            token=generate_player_token(),
            name=player_name,
            join_order=join_order,
            last_seen=now,
        )
        self.db.add(player)
        room.updated_at = now
        self.db.commit()

        logger.info("👋 新玩家加入房间 %s，当前 %d 人", room.code, join_order + 1)
        return JoinRoomResponse(
            room_id=room.id,
            player_id=player.id,
            player_token=player.token,
            is_reconnect=False,
        )

    @db_operation("添加机器人失败，请重试")
    def add_bot(self, room_id: str, token: str, config: Optional[Dict[str, Any]] = None) -> dict:
        """房主在等待阶段添加一个机器人玩家，机器人与真人使用相同的操作接口"""
        ctx = authenticate_action(
            self.db, room_id, token,
            require_host=True,
            allowed_phases=[GamePhase.WAITING],
            host_message="只有房主可以添加机器人",
            phase_message="游戏进行中不能添加机器人",
        )
        room = ctx.room
        config = dict(config or {})

        name = config.get("name")
        if name is not None:
            if not validate_player_name(name):
                raise GameError(ErrorCode.INVALID_INPUT, NAME_ERROR)
            if self._name_taken(room.id, name):
                raise GameError(ErrorCode.DUPLICATE_NAME, "该昵称已被使用，请换一个")
        else:
            name = self._generate_bot_name(room.id)

        join_order = self._ensure_not_full(room)
        bot_config = {
            **config,
            "provider": config.get("provider") or "openai",
            "persona": config.get("persona") or "",
        }
        now = utcnow()
        bot = Player(
            id=new_id(),
            room_id=room.id,
            token=generate_player_token("bot_"),
            name=name,
            join_order=join_order,
            last_seen=now,
            is_bot=True,
            bot_config=json.dumps(bot_config, ensure_ascii=False),
        )
        self.db.add(bot)
        room.updated_at = now
        self.db.commit()

        logger.info("🤖 房间 %s 添加机器人 %s（%s）", room.code, name, bot_config["provider"])
        return {"success": True, "bot_id": bot.id}

    def _generate_bot_name(self, room_id: str) -> str:
        for _ in range(20):
            name = f"AI-Bot-{self.rng.randrange(1000):03d}"
            if not self._name_taken(room_id, name):
                return name
        raise GameError(ErrorCode.INVALID_ACTION, "无法生成机器人昵称，请手动指定")
