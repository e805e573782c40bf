"""
玩家数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, Text, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.utils import utcnow

class Player(Base):
    """玩家表"""
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)  # 重连凭证，只返回给本人
    name = Column(String(20), nullable=False)
    role = Column(String(20), nullable=True)            # civilian, spy；开局前为空
    is_alive = Column(Boolean, nullable=False, default=True)
    is_online = Column(Boolean, nullable=False, default=True)
    word_confirmed = Column(Boolean, nullable=False, default=False)  # 是否已确认看过词语
    join_order = Column(Integer, nullable=False)        # 座位顺序，从0开始连续
    last_seen = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_bot = Column(Boolean, nullable=False, default=False)
    bot_config = Column(Text, nullable=True)            # JSON格式的机器人配置（provider、persona）

    # 关系
    room = relationship("Room", back_populates="players")
