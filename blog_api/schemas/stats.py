"""
点赞、浏览量Schema模型
"""
from pydantic import BaseModel
from typing import Optional


class PostLikeRequest(BaseModel):
    """调整文章点赞数请求模型"""
    postId: Optional[str] = None
    delta: Optional[float] = None


class ViewRecordRequest(BaseModel):
    """记录浏览请求模型"""
    slug: Optional[str] = None
