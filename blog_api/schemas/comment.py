"""
评论Schema模型
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

CommentType = Literal["blog", "telegram"]


class UserInfo(BaseModel):
    """访客信息"""
    nickname: Optional[str] = Field(None, max_length=64, description="昵称")
    email: Optional[str] = Field(None, max_length=255, description="邮箱")
    website: Optional[str] = Field(None, max_length=255, description="个人网站")
    avatar: Optional[str] = Field(None, description="头像URL，由前端生成")


class CommentCreate(BaseModel):
    """发表评论请求模型"""
    identifier: Optional[str] = Field(None, description="页面标识：博客slug或动态postId")
    commentType: CommentType = "blog"
    content: Optional[str] = Field(None, description="Markdown格式的评论内容")
    parentId: Optional[str] = Field(None, description="父评论ID，为null表示顶层评论")
    userInfo: Optional[UserInfo] = None


class CommentDeleteRequest(BaseModel):
    """删除评论请求模型"""
    commentId: Optional[str] = None
    commentType: Optional[CommentType] = None


class CommentLikeRequest(BaseModel):
    """评论点赞请求模型"""
    commentId: Optional[str] = None
    commentType: Optional[CommentType] = None
    deviceId: Optional[str] = None


class CommentRecord(BaseModel):
    """存储中的评论记录"""
    id: str
    parentId: Optional[str] = None
    content: str
    createdAt: datetime
    updatedAt: Optional[datetime] = None
    likes: int = Field(0, ge=0)
    isLiked: bool = False
    identifier: str
    commentType: CommentType = "blog"
    nickname: str
    email: str
    website: Optional[str] = None
    avatar: Optional[str] = None
    isAdmin: bool = False
    # 原站点按类型额外保存 slug（博客）或 postId（动态）
    slug: Optional[str] = None
    postId: Optional[str] = None
