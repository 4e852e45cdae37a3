"""
评论点赞的乐观更新

点击点赞后立即更新本地快照，再请求服务端；
请求失败时不逐字段回滚，而是静默重新拉取整个评论列表，以服务端数据为准。
"""
import logging
from dataclasses import replace
from typing import List, TYPE_CHECKING

from blog_api.core.exceptions import CommentsAPIError
from blog_api.services.comment_tree import CommentNode

if TYPE_CHECKING:
    from blog_api.services.comments_client import CommentFeed

logger = logging.getLogger(__name__)


def toggle_like_locally(nodes: List[CommentNode], comment_id: str) -> List[CommentNode]:
    """
    在快照中切换某条评论的点赞状态（递归查找子评论）

    只复制从根到目标节点路径上的节点，其余节点原样复用。
    找不到目标评论时返回内容相同的新列表。

    Args:
        nodes: 当前展示的评论列表（树形或拍平后的列表）
        comment_id: 要切换点赞的评论ID

    Returns:
        新的评论列表
    """
    updated = []
    for node in nodes:
        if node.id == comment_id:
            is_liked = not node.is_liked
            likes = max(0, node.likes + (1 if is_liked else -1))
            updated.append(replace(node, is_liked=is_liked, likes=likes))
        elif node.children:
            children = toggle_like_locally(node.children, comment_id)
            if any(new is not old for new, old in zip(children, node.children)):
                updated.append(replace(node, children=children))
            else:
                updated.append(node)
        else:
            updated.append(node)
    return updated


class LikeReconciler:
    """
    点赞协调器

    同一条评论的连续点击不做串行化，本地以最后一次为准，
    最终状态由下一次完整拉取校准。
    """

    def __init__(self, feed: "CommentFeed"):
        self.feed = feed

    async def toggle(self, comment_id: str) -> bool:
        """
        切换点赞

        Returns:
            bool: 服务端确认成功返回 True；失败时已触发重新同步，返回 False
        """
        feed = self.feed
        if not feed.device_id:
            return False

        # 乐观更新
        feed.comments = toggle_like_locally(feed.comments, comment_id)

        try:
            await feed.client.toggle_like(comment_id, feed.comment_type, feed.device_id)
        except CommentsAPIError as e:
            logger.error("评论 %s 点赞失败，重新同步评论列表: %s", comment_id, e)
            await feed.refresh(silent=True)
            return False

        return True
