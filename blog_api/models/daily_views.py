"""
全站每日浏览量模型
"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, func
from blog_api.db.database import Base


class DailyViews(Base):
    __tablename__ = "daily_views"
    
    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    views = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
