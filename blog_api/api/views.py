"""
浏览量API
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.db.database import get_db
from blog_api.schemas.stats import ViewRecordRequest
from blog_api.services.stats_service import StatsService, local_date_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["浏览量"])


@router.get("/views")
async def get_post_views(
    slug: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    获取文章当前总浏览量
    """
    if not slug:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "缺少 slug 参数"})

    try:
        total_views = await StatsService.get_post_views(db, slug)
    except Exception:
        logger.exception("Error fetching post views for %s", slug)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "服务器内部错误"})

    return {"slug": slug, "totalViews": total_views}


@router.post("/views")
async def record_view(
    view_data: ViewRecordRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    记录一次浏览：文章总浏览量 +1，当天全站浏览量 +1
    """
    if not view_data.slug:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "缺少 slug 参数"}
        )

    now = datetime.now(timezone.utc)
    date_key = local_date_string(now)

    try:
        total_views, daily_views = await StatsService.record_view(db, view_data.slug, date_key)
    except Exception:
        logger.exception("Error recording post view for %s", view_data.slug)
        await db.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "服务器内部错误"}
        )

    return {
        "success": True,
        "slug": view_data.slug,
        "totalViews": total_views,
        "dailyViews": daily_views,
        "date": date_key,
        "timestamp": now.isoformat()
    }
