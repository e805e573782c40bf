"""
投票数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from app.core.database import Base
from app.core.utils import utcnow

class Vote(Base):
    """投票表"""
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    voter_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False)   # 投票者
    target_id = Column(String(36), nullable=False)                                               # 被投票者
    round = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
