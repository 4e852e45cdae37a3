"""
评论API
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from blog_api.core.exceptions import CommentNotFoundError
from blog_api.schemas.comment import (
    CommentCreate, CommentDeleteRequest, CommentLikeRequest, CommentRecord
)
from blog_api.services.comment_store import CommentStore, generate_comment_id, get_comment_store
from blog_api.utils.auth import AdminUser, get_admin_user
from blog_api.utils.html_sanitizer import render_comment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["评论"])


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@router.get("/comments")
async def get_comments(
    identifier: Optional[str] = Query(None, description="页面标识"),
    comment_type: str = Query("blog", alias="commentType"),
    device_id: Optional[str] = Query(None, alias="deviceId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: CommentStore = Depends(get_comment_store),
    admin: Optional[AdminUser] = Depends(get_admin_user)
):
    """
    获取评论

    - 指定 identifier：返回该页面的扁平评论列表
    - 不指定 identifier：管理员分页获取全部评论
    """
    if not identifier:
        if not admin:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"error": "Unauthorized: Admin access required."}
            )
        try:
            comments, total = await store.list_all(page=page, limit=limit)
        except Exception:
            logger.exception("Error fetching all comments for admin")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to fetch all comments"}
            )
        return {"comments": comments, "total": total, "page": page, "limit": limit}

    try:
        return await store.list_comments(identifier, comment_type, device_id)
    except Exception:
        logger.exception("Error fetching comments for %s:%s", identifier, comment_type)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch comments"}
        )


@router.post("/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    store: CommentStore = Depends(get_comment_store),
    admin: Optional[AdminUser] = Depends(get_admin_user)
):
    """
    发表评论

    管理员身份来自JWT token；普通访客必须提供昵称和邮箱。
    内容按 Markdown 渲染后做 HTML 白名单清理。
    """
    if not comment_data.identifier or not comment_data.content:
        return _fail(status.HTTP_400_BAD_REQUEST, "缺少必要参数")

    if admin:
        nickname, email = admin.nickname, admin.email
        website, avatar = admin.website, admin.avatar
    else:
        user_info = comment_data.userInfo
        if not user_info or not user_info.nickname or not user_info.email:
            return _fail(status.HTTP_400_BAD_REQUEST, "普通用户需要提供用户信息")
        nickname, email = user_info.nickname, user_info.email
        website, avatar = user_info.website or None, user_info.avatar

    now = datetime.now(timezone.utc)
    identifier = comment_data.identifier
    is_telegram = comment_data.commentType == "telegram"
    comment = CommentRecord(
        id=generate_comment_id(),
        parentId=comment_data.parentId or None,
        content=render_comment(comment_data.content),
        createdAt=now,
        updatedAt=now,
        identifier=identifier,
        commentType=comment_data.commentType,
        nickname=nickname,
        email=email,
        website=website,
        avatar=avatar,
        isAdmin=admin is not None,
        slug=None if is_telegram else identifier,
        postId=identifier if is_telegram else None,
    )

    try:
        await store.add_comment(comment)
    except Exception:
        logger.exception("Error submitting comment for %s", identifier)
        return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "服务器内部错误")

    return {"success": True, "comment": comment.model_dump(mode="json")}


@router.delete("/comments")
async def delete_comment(
    delete_data: CommentDeleteRequest,
    store: CommentStore = Depends(get_comment_store),
    admin: Optional[AdminUser] = Depends(get_admin_user)
):
    """
    删除评论（管理员）

    子评论不会级联删除，展示时会被提升为顶层评论。
    """
    if not admin:
        return _fail(status.HTTP_403_FORBIDDEN, "Unauthorized")

    if not delete_data.commentId or not delete_data.commentType:
        return _fail(status.HTTP_400_BAD_REQUEST, "Missing commentId or commentType")

    try:
        deleted = await store.delete_comment(delete_data.commentId, delete_data.commentType)
    except Exception as e:
        logger.exception("Error deleting comment %s", delete_data.commentId)
        return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Server internal error")

    return {"success": True, "message": f"Deleted {deleted} comment(s)."}


@router.post("/comments/like")
async def like_comment(
    like_data: CommentLikeRequest,
    store: CommentStore = Depends(get_comment_store)
):
    """
    切换评论点赞

    以 (commentId, deviceId) 区分设备是否已点赞
    """
    if not like_data.commentId or not like_data.deviceId or not like_data.commentType:
        return _fail(status.HTTP_400_BAD_REQUEST, "缺少必要参数")

    try:
        likes, is_liked = await store.toggle_like(like_data.commentId, like_data.deviceId)
    except CommentNotFoundError:
        return _fail(status.HTTP_404_NOT_FOUND, "评论不存在")
    except Exception:
        logger.exception("Error processing like for comment %s", like_data.commentId)
        return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "服务器内部错误")

    return {"success": True, "likes": likes, "isLiked": is_liked}
