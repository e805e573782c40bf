"""
房间与游戏操作API路由
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import ErrorCode, GameError
from app.schemas.room_schemas import (
    ActionRequest, AddBotRequest, CreateRoomRequest, CreateRoomResponse,
    JoinRoomRequest, JoinRoomResponse,
)
from app.schemas.game_schemas import RoomStateResponse
from app.services.game_service import GameService
from app.services.room_service import RoomService
from app.services.state_service import StateService

logger = logging.getLogger(__name__)

router = APIRouter()


def error_response(e: GameError) -> JSONResponse:
    return JSONResponse(content=e.to_dict(), status_code=e.status_code)


def _require_token(token: Optional[str]) -> str:
    if not token:
        raise GameError(ErrorCode.INVALID_INPUT, "缺少token参数")
    return token


@router.post("/create", response_model=CreateRoomResponse)
def create_room(request: CreateRoomRequest, db: Session = Depends(get_db)):
    """创建房间"""
    try:
        return RoomService(db).create_room(request.player_name, request.password)
    except GameError as e:
        return error_response(e)


@router.post("/join", response_model=JoinRoomResponse)
def join_room(request: JoinRoomRequest, db: Session = Depends(get_db)):
    """加入房间（携带token时为断线重连）"""
    try:
        return RoomService(db).join_room(
            request.room_code,
            request.password,
            request.player_name,
            request.player_token,
        )
    except GameError as e:
        return error_response(e)


@router.get("/{room_id}/state", response_model=RoomStateResponse)
def get_room_state(room_id: str, token: Optional[str] = None, db: Session = Depends(get_db)):
    """获取当前玩家视角的房间状态"""
    try:
        return StateService(db).get_room_state(room_id, _require_token(token))
    except GameError as e:
        return error_response(e)


@router.post("/{room_id}/action")
def perform_action(room_id: str, request: ActionRequest, db: Session = Depends(get_db)):
    """执行游戏操作"""
    try:
        token = _require_token(request.token)
        if request.action is None:
            raise GameError(ErrorCode.INVALID_INPUT, "缺少action参数")
        return GameService(db).perform_action(room_id, token, request.action)
    except GameError as e:
        logger.debug("房间 %s 操作被拒绝: %s", room_id, e.code.value)
        return error_response(e)


@router.post("/{room_id}/bot")
def add_bot(room_id: str, request: AddBotRequest, db: Session = Depends(get_db)):
    """房主添加机器人玩家"""
    try:
        return RoomService(db).add_bot(room_id, _require_token(request.token), request.config)
    except GameError as e:
        return error_response(e)
