"""
房间与操作请求的数据模式
"""

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from typing import Optional, Dict, Any

class CreateRoomRequest(BaseModel):
    """创建房间的请求模式"""
    player_name: str = Field(description="房主昵称")
    password: Optional[str] = Field(default=None, description="房间密码，留空则自动生成")

class CreateRoomResponse(BaseModel):
    success: bool = True
    room_id: str
    room_code: str
    room_password: str
    player_id: str
    player_token: str

class JoinRoomRequest(BaseModel):
    """加入房间的请求模式"""
    room_code: str
    password: str
    player_name: str
    player_token: Optional[str] = Field(default=None, description="断线重连时携带的token")

class JoinRoomResponse(BaseModel):
    success: bool = True
    room_id: str
    player_id: str
    player_token: str
    is_reconnect: bool

class SettingsUpdate(BaseModel):
    spy_count: Optional[StrictInt] = None

class GameAction(BaseModel):
    """玩家操作"""
    type: str
    text: Optional[str] = None
    target_id: Optional[str] = None
    player_id: Optional[str] = None
    settings: Optional[SettingsUpdate] = None

    model_config = ConfigDict(extra="ignore")

class ActionRequest(BaseModel):
    token: Optional[str] = None
    action: Optional[GameAction] = None

class AddBotRequest(BaseModel):
    token: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict, description="机器人配置：name、provider、persona")
