"""
文章点赞统计模型
"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, func
from blog_api.db.database import Base


class PostLikes(Base):
    __tablename__ = "post_likes"
    
    post_id = Column(String(255), primary_key=True)
    likes = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
