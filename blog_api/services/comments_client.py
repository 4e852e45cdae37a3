"""
评论接口客户端与评论区状态

CommentsClient 封装三个评论接口；CommentFeed 对应一个评论区视图，
负责拉取、构建、展示评论，并保证只有最新一次拉取的结果会生效。
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from blog_api.core.exceptions import CommentsAPIError
from blog_api.services.comment_tree import (
    CommentNode,
    DisplayMode,
    build_comment_tree,
    build_presentation_comments,
    normalize_records
)
from blog_api.services.like_reconciler import LikeReconciler

logger = logging.getLogger(__name__)


class CommentsClient:
    """评论接口客户端"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise CommentsAPIError(f"{method} {path} 请求失败: {e}") from e

        if not response.is_success:
            raise CommentsAPIError(
                f"{method} {path} 返回状态码 {response.status_code}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise CommentsAPIError(f"{method} {path} 返回了无效的JSON") from e

    async def fetch_comments(
        self,
        identifier: str,
        comment_type: str,
        device_id: str
    ) -> List[Dict[str, Any]]:
        """获取某个页面的扁平评论列表"""
        data = await self._request(
            "GET",
            "/api/comments",
            params={
                "identifier": identifier,
                "commentType": comment_type,
                "deviceId": device_id
            }
        )
        if not isinstance(data, list):
            raise CommentsAPIError("评论列表格式错误")
        return data

    async def submit_comment(
        self,
        identifier: str,
        comment_type: str,
        content: str,
        parent_id: Optional[str] = None,
        user_info: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None
    ) -> Dict[str, Any]:
        """发表评论，管理员可传入JWT token"""
        payload: Dict[str, Any] = {
            "identifier": identifier,
            "commentType": comment_type,
            "content": content,
        }
        if parent_id:
            payload["parentId"] = parent_id
        if user_info:
            payload["userInfo"] = user_info

        headers = {"Authorization": f"Bearer {token}"} if token else None
        data = await self._request("POST", "/api/comments", json=payload, headers=headers)
        if not data.get("success"):
            raise CommentsAPIError(data.get("message") or "发表评论失败")
        return data["comment"]

    async def toggle_like(self, comment_id: str, comment_type: str, device_id: str) -> Dict[str, Any]:
        """切换评论点赞，返回 {success, likes, isLiked}"""
        data = await self._request(
            "POST",
            "/api/comments/like",
            json={
                "commentId": comment_id,
                "commentType": comment_type,
                "deviceId": device_id
            }
        )
        if not data.get("success"):
            raise CommentsAPIError(data.get("message") or "点赞失败")
        return data


class CommentFeed:
    """
    单个评论区的状态

    每次 refresh 都会生成新的请求序号并取消仍在进行的旧请求；
    结果返回时若序号已不是最新、或评论区已关闭，则直接丢弃。
    """

    def __init__(
        self,
        client: CommentsClient,
        identifier: str,
        comment_type: str,
        device_id: Optional[str],
        display_mode: Union[DisplayMode, str] = DisplayMode.FULL
    ):
        self.client = client
        self.identifier = identifier
        self.comment_type = comment_type
        self.device_id = device_id
        self.display_mode = DisplayMode(display_mode)
        self.comments: List[CommentNode] = []
        self.loading = False
        self.likes = LikeReconciler(self)
        self._latest_request = 0
        self._inflight: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _cancel_inflight(self):
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None

    async def refresh(self, silent: bool = False) -> None:
        """
        拉取并重建评论列表

        Args:
            silent: 静默刷新时不会把 loading 置为 True（发表评论、点赞失败后的重新同步）
        """
        if self._closed or not self.device_id:
            return

        self._latest_request += 1
        request_id = self._latest_request

        if not silent:
            self.loading = True

        self._cancel_inflight()
        task = asyncio.ensure_future(
            self.client.fetch_comments(self.identifier, self.comment_type, self.device_id)
        )
        self._inflight = task

        try:
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                task.cancel()
                raise

            if task.cancelled():
                # 被更新的请求或 close() 取消，不算错误
                logger.debug("评论请求 #%s 已取消", request_id)
                return

            error = task.exception()
            if isinstance(error, CommentsAPIError):
                logger.error("获取评论失败: %s", error)
                return
            if error is not None:
                logger.error("获取评论时出现异常: %r", error, exc_info=error)
                return

            try:
                nodes = normalize_records(task.result(), self.identifier, self.comment_type)
                processed = build_presentation_comments(build_comment_tree(nodes), self.display_mode)
            except Exception as e:
                logger.exception("构建评论列表失败: %s", e)
                return

            if self._is_current(request_id):
                self.comments = processed
            else:
                logger.debug("丢弃过期的评论结果 #%s", request_id)
        finally:
            if self._is_current(request_id):
                if self._inflight is task:
                    self._inflight = None
                # 静默请求可能顶替了尚未完成的普通请求，由最新请求负责结束加载状态
                self.loading = False

    def _is_current(self, request_id: int) -> bool:
        return request_id == self._latest_request and not self._closed

    async def submit_comment(
        self,
        content: str,
        parent_id: Optional[str] = None,
        user_info: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None
    ) -> Dict[str, Any]:
        """发表评论后静默刷新列表"""
        comment = await self.client.submit_comment(
            self.identifier,
            self.comment_type,
            content,
            parent_id=parent_id,
            user_info=user_info,
            token=token
        )
        await self.refresh(silent=True)
        return comment

    async def toggle_like(self, comment_id: str) -> bool:
        """切换评论点赞（乐观更新）"""
        return await self.likes.toggle(comment_id)

    def close(self):
        """关闭评论区：取消进行中的请求，之后返回的结果全部丢弃"""
        self._closed = True
        self._cancel_inflight()
