"""
描述记录数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.utils import utcnow

class Description(Base):
    """描述记录表"""
    __tablename__ = "descriptions"
    __table_args__ = (
        UniqueConstraint("room_id", "player_id", "round"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    round = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # 关系
    player = relationship("Player")
