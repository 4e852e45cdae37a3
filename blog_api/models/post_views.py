"""
文章浏览量模型
"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, func
from blog_api.db.database import Base


class PostViews(Base):
    __tablename__ = "post_views"
    
    slug = Column(String(255), primary_key=True)
    views = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
