"""
错误码与业务异常
"""

import enum

class ErrorCode(str, enum.Enum):
    """返回给调用方的错误类型"""
    INVALID_INPUT = "INVALID_INPUT"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    INVALID_ACTION = "INVALID_ACTION"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    INVALID_PHASE = "INVALID_PHASE"
    DATABASE_ERROR = "DATABASE_ERROR"

# 错误码对应的HTTP状态码
HTTP_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_AUTHORIZED: 401,
    ErrorCode.WRONG_PASSWORD: 401,
    ErrorCode.ROOM_NOT_FOUND: 404,
    ErrorCode.PLAYER_NOT_FOUND: 404,
    ErrorCode.GAME_IN_PROGRESS: 409,
    ErrorCode.DUPLICATE_NAME: 409,
    ErrorCode.INVALID_PHASE: 409,
    ErrorCode.INVALID_ACTION: 409,
    ErrorCode.DATABASE_ERROR: 500,
}

class GameError(Exception):
    """业务操作失败，携带错误码和面向玩家的提示信息"""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code.value}
