"""
评论存储

- MemoryCommentStore：本地开发使用的内存存储
- KVCommentStore：生产环境通过 Cloudflare Worker KV 代理存储

KV 键结构：
    comments:{identifier}:{commentType}   评论ID列表（JSON）
    comment:{commentId}                   评论详情（JSON）
    comment_likes:{commentId}             点赞数
    user_like:{deviceId}:{commentId}      设备点赞标记
    comments:index                        全部评论ID（管理员列表）
"""
import asyncio
import itertools
import json
import logging
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional, Set, Tuple

from blog_api.core.config import settings
from blog_api.core.exceptions import CommentNotFoundError
from blog_api.schemas.comment import CommentRecord
from blog_api.services.kv_proxy import KVProxy

logger = logging.getLogger(__name__)

COMMENT_INDEX_KEY = "comments:index"

_comment_id_counter = itertools.count()


def generate_comment_id() -> str:
    """生成唯一评论ID"""
    return f"comment_{int(time.time() * 1000)}_{next(_comment_id_counter)}"


def comment_list_key(identifier: str, comment_type: str) -> str:
    return f"comments:{identifier}:{comment_type}"


def comment_key(comment_id: str) -> str:
    return f"comment:{comment_id}"


def comment_likes_key(comment_id: str) -> str:
    return f"comment_likes:{comment_id}"


def user_like_key(device_id: str, comment_id: str) -> str:
    return f"user_like:{device_id}:{comment_id}"


def record_identifier(comment: Dict[str, Any]) -> Optional[str]:
    """评论所属页面标识（兼容只存了 slug / postId 的旧记录）"""
    return comment.get("identifier") or comment.get("slug") or comment.get("postId")


class CommentStore:
    """评论存储接口"""

    async def list_comments(
        self,
        identifier: str,
        comment_type: str,
        device_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """获取页面的评论，附带点赞数和当前设备的点赞状态"""
        raise NotImplementedError

    async def list_all(self, page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        """分页获取全部评论（按创建时间倒序），返回 (评论列表, 总数)"""
        raise NotImplementedError

    async def add_comment(self, comment: CommentRecord) -> None:
        raise NotImplementedError

    async def delete_comment(self, comment_id: str, comment_type: str) -> int:
        """删除评论，返回删除数量；子评论保留，展示时会提升为顶层评论"""
        raise NotImplementedError

    async def toggle_like(self, comment_id: str, device_id: str) -> Tuple[int, bool]:
        """
        切换设备对评论的点赞

        Returns:
            (点赞数, 是否已点赞)

        Raises:
            CommentNotFoundError: 评论不存在
        """
        raise NotImplementedError


def _paginate(comments: List[Dict[str, Any]], page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
    ordered = sorted(comments, key=lambda c: c.get("createdAt") or "", reverse=True)
    start = (max(page, 1) - 1) * limit
    return ordered[start:start + limit], len(ordered)


class MemoryCommentStore(CommentStore):
    """内存存储，进程重启后数据丢失"""

    def __init__(self):
        self._comment_lists: Dict[str, List[str]] = {}
        self._comments: Dict[str, Dict[str, Any]] = {}
        self._likes: Dict[str, int] = {}
        self._user_likes: Set[str] = set()

    def _with_likes(self, comment: Dict[str, Any], device_id: Optional[str]) -> Dict[str, Any]:
        comment_id = comment["id"]
        return {
            **comment,
            "likes": self._likes.get(comment_id, 0),
            "isLiked": bool(device_id) and user_like_key(device_id, comment_id) in self._user_likes
        }

    async def list_comments(self, identifier, comment_type, device_id=None):
        comment_ids = self._comment_lists.get(comment_list_key(identifier, comment_type), [])
        return [
            self._with_likes(self._comments[comment_id], device_id)
            for comment_id in comment_ids
            if comment_id in self._comments
        ]

    async def list_all(self, page=1, limit=20):
        comments = [self._with_likes(c, None) for c in self._comments.values()]
        return _paginate(comments, page, limit)

    async def add_comment(self, comment):
        data = comment.model_dump(mode="json")
        list_key = comment_list_key(comment.identifier, comment.commentType)
        self._comment_lists.setdefault(list_key, []).append(comment.id)
        self._comments[comment.id] = data
        self._likes[comment.id] = 0

    async def delete_comment(self, comment_id, comment_type):
        comment = self._comments.pop(comment_id, None)
        if comment is None:
            return 0

        list_key = comment_list_key(record_identifier(comment), comment_type)
        if list_key in self._comment_lists:
            self._comment_lists[list_key] = [
                cid for cid in self._comment_lists[list_key] if cid != comment_id
            ]
        self._likes.pop(comment_id, None)
        suffix = f":{comment_id}"
        self._user_likes = {key for key in self._user_likes if not key.endswith(suffix)}
        return 1

    async def toggle_like(self, comment_id, device_id):
        if comment_id not in self._comments:
            raise CommentNotFoundError(comment_id)

        key = user_like_key(device_id, comment_id)
        if key in self._user_likes:
            self._user_likes.discard(key)
            is_liked = False
        else:
            self._user_likes.add(key)
            is_liked = True

        likes = max(0, self._likes.get(comment_id, 0) + (1 if is_liked else -1))
        self._likes[comment_id] = likes
        return likes, is_liked


class KVCommentStore(CommentStore):
    """
    基于 KV 代理的存储

    列表类键采用“读-改-写”，并发写入同一页面时可能丢失更新。
    """

    def __init__(self, kv: Optional[KVProxy] = None):
        self.kv = kv or KVProxy()

    async def _get_json(self, key: str, default: Any) -> Any:
        raw = await self.kv.get(key)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("KV 键 %s 的值不是合法JSON，已忽略", key)
            return default

    async def _get_int(self, key: str) -> int:
        raw = await self.kv.get(key)
        try:
            return max(0, int(raw)) if raw else 0
        except ValueError:
            return 0

    async def _load_comment(self, comment_id: str, device_id: Optional[str]) -> Optional[Dict[str, Any]]:
        comment = await self._get_json(comment_key(comment_id), None)
        if not isinstance(comment, dict):
            return None

        likes = await self._get_int(comment_likes_key(comment_id))
        is_liked = False
        if device_id:
            is_liked = bool(await self.kv.get(user_like_key(device_id, comment_id)))

        return {**comment, "likes": likes, "isLiked": is_liked}

    async def _load_many(self, comment_ids: List[str], device_id: Optional[str]) -> List[Dict[str, Any]]:
        comments = await asyncio.gather(
            *(self._load_comment(comment_id, device_id) for comment_id in comment_ids)
        )
        return [c for c in comments if c]

    async def list_comments(self, identifier, comment_type, device_id=None):
        comment_ids = await self._get_json(comment_list_key(identifier, comment_type), [])
        return await self._load_many(comment_ids, device_id)

    async def list_all(self, page=1, limit=20):
        comment_ids = await self._get_json(COMMENT_INDEX_KEY, [])
        comments = await self._load_many(comment_ids, None)
        return _paginate(comments, page, limit)

    async def _append_id(self, key: str, comment_id: str):
        comment_ids = await self._get_json(key, [])
        comment_ids.append(comment_id)
        await self.kv.put(key, json.dumps(comment_ids))

    async def _remove_id(self, key: str, comment_id: str):
        comment_ids = await self._get_json(key, None)
        if comment_ids is None:
            return
        await self.kv.put(key, json.dumps([cid for cid in comment_ids if cid != comment_id]))

    async def add_comment(self, comment):
        # 1. 存储评论详情
        await self.kv.put(comment_key(comment.id), comment.model_dump_json())
        # 2. 添加到页面评论列表和全局索引
        await self._append_id(comment_list_key(comment.identifier, comment.commentType), comment.id)
        await self._append_id(COMMENT_INDEX_KEY, comment.id)
        # 3. 初始化点赞数
        await self.kv.put(comment_likes_key(comment.id), "0")

    async def delete_comment(self, comment_id, comment_type):
        comment = await self._get_json(comment_key(comment_id), None)
        if not isinstance(comment, dict):
            return 0

        await self._remove_id(comment_list_key(record_identifier(comment), comment_type), comment_id)
        await self._remove_id(COMMENT_INDEX_KEY, comment_id)
        await self.kv.put(comment_key(comment_id), "")
        await self.kv.put(comment_likes_key(comment_id), "")
        # 设备点赞标记无法按评论枚举，保留在 KV 中
        return 1

    async def toggle_like(self, comment_id, device_id):
        comment = await self._get_json(comment_key(comment_id), None)
        if not isinstance(comment, dict):
            raise CommentNotFoundError(comment_id)

        flag_key = user_like_key(device_id, comment_id)
        is_liked = not await self.kv.get(flag_key)
        await self.kv.put(flag_key, "1" if is_liked else "")

        likes = await self.kv.increment(comment_likes_key(comment_id), 1 if is_liked else -1)
        if likes is None:
            likes = await self._get_int(comment_likes_key(comment_id))
        return max(0, likes), is_liked


@lru_cache()
def get_comment_store() -> CommentStore:
    """获取评论存储依赖（按配置选择后端，进程内单例）"""
    if settings.COMMENT_STORE_BACKEND == "kv":
        return KVCommentStore()
    return MemoryCommentStore()
