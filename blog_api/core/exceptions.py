"""
客户端异常定义
"""
from typing import Optional


class CommentsAPIError(Exception):
    """评论接口请求失败（网络错误或非成功状态码）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CommentNotFoundError(Exception):
    """评论不存在"""
