from .post_likes import PostLikes
from .post_views import PostViews
from .daily_views import DailyViews

__all__ = [
    "PostLikes",
    "PostViews",
    "DailyViews"
]
