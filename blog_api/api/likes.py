"""
文章点赞API
"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.db.database import get_db
from blog_api.schemas.stats import PostLikeRequest
from blog_api.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["文章点赞"])


@router.get("/like")
async def get_post_likes(
    post_id: Optional[str] = Query(None, alias="postId"),
    db: AsyncSession = Depends(get_db)
):
    """
    获取文章点赞总数
    """
    if not post_id:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "缺少 postId"})

    try:
        like_count = await StatsService.get_post_likes(db, post_id)
    except Exception:
        logger.exception("Error fetching like status for %s", post_id)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "服务器内部错误"})

    return {"likeCount": like_count}


@router.post("/like")
async def adjust_post_likes(
    like_data: PostLikeRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    按 delta 调整文章点赞数（点赞 +1，取消 -1），结果不低于0
    """
    if not like_data.postId or like_data.delta is None or not math.isfinite(like_data.delta):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "缺少 postId 或非法的 delta"}
        )

    try:
        like_count = await StatsService.adjust_post_likes(db, like_data.postId, int(round(like_data.delta)))
    except Exception:
        logger.exception("Error adjusting likes for %s", like_data.postId)
        await db.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "服务器内部错误"}
        )

    return {"success": True, "likeCount": like_count}
