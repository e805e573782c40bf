"""
词语对数据模型
"""

from sqlalchemy import Column, Integer, String, UniqueConstraint
from app.core.database import Base

class WordPair(Base):
    """词库表"""
    __tablename__ = "word_pairs"
    __table_args__ = (
        UniqueConstraint("civilian_word", "spy_word"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    civilian_word = Column(String(50), nullable=False)  # 平民词
    spy_word = Column(String(50), nullable=False)       # 卧底词
    category = Column(String(30), default="general")
