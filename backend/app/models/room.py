"""
房间数据模型
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base

class Room(Base):
    """房间表，一局游戏的权威状态"""
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, index=True)
    code = Column(String(6), unique=True, nullable=False, index=True)  # 6位房间号
    password_hash = Column(String(128), nullable=False)                # salt:hash
    phase = Column(String(20), nullable=False, default="waiting")      # waiting, word-reveal, description, voting, result, game-over
    host_id = Column(String(36), nullable=False)                       # 房主玩家ID
    settings = Column(Text, nullable=False)                            # JSON格式的房间设置
    game_state = Column(Text, nullable=True)                           # JSON格式的对局状态（淘汰列表、卧底列表、胜方）
    civilian_word = Column(String(50), nullable=True)
    spy_word = Column(String(50), nullable=True)
    current_turn = Column(Integer, nullable=False, default=0)          # 存活玩家中的发言序号
    round = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # 关系
    players = relationship(
        "Player",
        back_populates="room",
        order_by="Player.join_order",
        cascade="all, delete-orphan",
    )
