"""
文章点赞、浏览量计数服务
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from blog_api.core.config import settings
from blog_api.models.post_likes import PostLikes
from blog_api.models.post_views import PostViews
from blog_api.models.daily_views import DailyViews


def local_date_string(now: Optional[datetime] = None) -> str:
    """按配置的时区偏移（默认东八区）返回 YYYY-MM-DD"""
    now = now or datetime.now(timezone.utc)
    local = now.astimezone(timezone(timedelta(hours=settings.STATS_UTC_OFFSET_HOURS)))
    return local.strftime("%Y-%m-%d")


class StatsService:
    """计数服务类"""

    @staticmethod
    async def get_post_likes(db: AsyncSession, post_id: str) -> int:
        """获取文章点赞总数"""
        result = await db.execute(select(PostLikes).where(PostLikes.post_id == post_id))
        stats = result.scalar_one_or_none()
        return max(0, stats.likes or 0) if stats else 0

    @staticmethod
    async def adjust_post_likes(db: AsyncSession, post_id: str, delta: int) -> int:
        """
        按 delta 调整文章点赞数

        Args:
            db: 数据库会话
            post_id: 文章ID
            delta: 增量（取消点赞为负数）

        Returns:
            int: 调整后的点赞数（不低于0）
        """
        result = await db.execute(select(PostLikes).where(PostLikes.post_id == post_id))
        stats = result.scalar_one_or_none()

        # 统计记录不存在则创建
        if not stats:
            stats = PostLikes(post_id=post_id, likes=0)
            db.add(stats)

        stats.likes = max(0, (stats.likes or 0) + delta)
        await db.commit()
        await db.refresh(stats)

        return stats.likes

    @staticmethod
    async def get_post_views(db: AsyncSession, slug: str) -> int:
        """获取文章总浏览量"""
        result = await db.execute(select(PostViews).where(PostViews.slug == slug))
        stats = result.scalar_one_or_none()
        return (stats.views or 0) if stats else 0

    @staticmethod
    async def record_view(db: AsyncSession, slug: str, date_key: str) -> Tuple[int, int]:
        """
        记录一次浏览

        - 文章总浏览量 +1（前端保证同一设备同一篇只记一次）
        - 当天全站浏览量 +1

        Returns:
            (文章总浏览量, 当天全站浏览量)
        """
        post_result = await db.execute(select(PostViews).where(PostViews.slug == slug))
        post_views = post_result.scalar_one_or_none()
        if not post_views:
            post_views = PostViews(slug=slug, views=0)
            db.add(post_views)

        daily_result = await db.execute(select(DailyViews).where(DailyViews.date == date_key))
        daily_views = daily_result.scalar_one_or_none()
        if not daily_views:
            daily_views = DailyViews(date=date_key, views=0)
            db.add(daily_views)

        post_views.views = (post_views.views or 0) + 1
        daily_views.views = (daily_views.views or 0) + 1

        await db.commit()
        await db.refresh(post_views)
        await db.refresh(daily_views)

        return post_views.views, daily_views.views
