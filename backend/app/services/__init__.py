# 业务逻辑服务包
from .game_service import GameService
from .room_service import RoomService
from .state_service import StateService

__all__ = ["GameService", "RoomService", "StateService"]
