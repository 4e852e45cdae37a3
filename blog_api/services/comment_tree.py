"""
评论树构建与展示转换

接口返回的是扁平的评论列表，这里负责：
1. 规范化记录（兼容旧版 objectId / parent.objectId 字段）
2. 按 parentId 构建父子树
3. 按展示模式排序：full/compact 拍平成带层级的列表，guestbook 保留树形、顶层倒序
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class DisplayMode(str, Enum):
    """评论区展示模式"""
    FULL = "full"
    COMPACT = "compact"
    GUESTBOOK = "guestbook"


@dataclass
class CommentNode:
    """评论树节点（仅存在于内存，每次获取评论时重建）"""
    id: str
    content: str
    created_at: datetime
    identifier: str
    comment_type: str
    parent_id: Optional[str] = None
    likes: int = 0
    is_liked: bool = False
    nickname: str = ""
    email: str = ""
    website: Optional[str] = None
    avatar: Optional[str] = None
    is_admin: bool = False
    children: List["CommentNode"] = field(default_factory=list)
    level: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "likes": self.likes,
            "isLiked": self.is_liked,
            "identifier": self.identifier,
            "commentType": self.comment_type,
            "nickname": self.nickname,
            "email": self.email,
            "website": self.website,
            "avatar": self.avatar,
            "isAdmin": self.is_admin,
            "level": self.level,
            "children": [child.to_dict() for child in self.children]
        }


def _parse_created_at(value: Any) -> Optional[datetime]:
    """解析 createdAt：ISO字符串、时间戳（秒或毫秒）或 datetime，无时区按UTC处理"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # 大于 1e11 视为毫秒时间戳
        seconds = value / 1000 if value > 1e11 else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            # NaN、无穷大或超出平台范围的时间戳
            return None
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_record(
    raw: Dict[str, Any],
    identifier: str,
    comment_type: str
) -> Optional[CommentNode]:
    """
    将接口返回的一条评论规范化为 CommentNode

    Args:
        raw: 接口返回的原始评论字典
        identifier: 当前页面标识
        comment_type: 当前评论类型（blog / telegram）

    Returns:
        CommentNode，缺少ID或时间无法解析时返回 None
    """
    comment_id = raw.get("id") or raw.get("objectId") or ""
    if not comment_id:
        logger.debug("丢弃缺少ID的评论记录: %r", raw)
        return None

    created_at = _parse_created_at(raw.get("createdAt"))
    if created_at is None:
        logger.warning("评论 %s 的 createdAt 无法解析，已丢弃: %r", comment_id, raw.get("createdAt"))
        return None

    parent = raw.get("parent")
    legacy_parent_id = parent.get("objectId") if isinstance(parent, dict) else None
    parent_id = legacy_parent_id or raw.get("parentId")
    if parent_id is not None and parent_id != "":
        parent_id = str(parent_id)
    else:
        parent_id = None

    try:
        likes = max(0, int(raw.get("likes") or 0))
    except (TypeError, ValueError, OverflowError):
        likes = 0

    return CommentNode(
        id=str(comment_id),
        content=raw.get("content") or "",
        created_at=created_at,
        identifier=identifier,
        comment_type=comment_type,
        parent_id=parent_id,
        likes=likes,
        is_liked=bool(raw.get("isLiked") or False),
        nickname=raw.get("nickname") or "",
        email=raw.get("email") or "",
        website=raw.get("website"),
        avatar=raw.get("avatar"),
        is_admin=bool(raw.get("isAdmin") or False),
    )


def normalize_records(
    raws: Iterable[Dict[str, Any]],
    identifier: str,
    comment_type: str
) -> List[CommentNode]:
    """批量规范化，丢弃无效记录"""
    nodes = []
    for raw in raws:
        if not isinstance(raw, dict):
            continue
        node = normalize_record(raw, identifier, comment_type)
        if node is not None:
            nodes.append(node)
    return nodes


def _creates_cycle(comment_id: str, parent_id: str, parents: Dict[str, Optional[str]]) -> bool:
    """沿父链向上查找，判断挂到 parent_id 下是否会形成环"""
    seen = set()
    current = parent_id
    while current is not None and current in parents:
        if current == comment_id:
            return True
        if current in seen:
            # 上游自身有环，这里不处理，由环上的节点自己断开
            return False
        seen.add(current)
        current = parents[current]
    return False


def build_comment_tree(comments: Iterable[CommentNode]) -> List[CommentNode]:
    """
    构建评论树

    父评论不存在（被删除或属于其他页面）的评论会被提升为顶层评论，
    自引用或成环的评论同样提升为顶层，保证每条评论恰好出现一次。

    Args:
        comments: 扁平评论列表（顺序任意）

    Returns:
        顶层评论列表，子评论挂在各自父节点的 children 中
    """
    # 重复ID以最后一条为准，位置保持第一次出现的位置
    comment_map: Dict[str, CommentNode] = {}
    for comment in comments:
        comment_map[comment.id] = replace(comment, children=[], level=0)

    parents = {comment_id: node.parent_id for comment_id, node in comment_map.items()}

    roots: List[CommentNode] = []
    for node in comment_map.values():
        parent_id = node.parent_id
        if not parent_id:
            roots.append(node)
        elif parent_id not in comment_map:
            logger.warning("评论 %s 的父评论 %s 不存在，提升为顶层评论", node.id, parent_id)
            roots.append(node)
        elif parent_id == node.id or _creates_cycle(node.id, parent_id, parents):
            logger.warning("评论 %s 的父评论引用成环，提升为顶层评论", node.id)
            # 断开环，后续环检测不再经过该节点
            parents[node.id] = None
            roots.append(node)
        else:
            comment_map[parent_id].children.append(node)

    return roots


def sort_comment_tree(nodes: List[CommentNode], level: int = 0) -> List[CommentNode]:
    """递归按创建时间升序排序每一层（稳定排序），返回新的节点副本"""
    ordered = sorted(nodes, key=lambda node: node.created_at)
    return [
        replace(node, level=level, children=sort_comment_tree(node.children, level + 1))
        for node in ordered
    ]


def flatten_comment_tree(nodes: List[CommentNode], level: int = 0) -> List[CommentNode]:
    """先序遍历拍平评论树，子评论紧跟在父评论之后"""
    flattened: List[CommentNode] = []
    for node in nodes:
        flattened.append(replace(node, level=level, children=[]))
        flattened.extend(flatten_comment_tree(node.children, level + 1))
    return flattened


def build_presentation_comments(
    root_comments: List[CommentNode],
    display_mode: Union[DisplayMode, str] = DisplayMode.FULL
) -> List[CommentNode]:
    """
    按展示模式生成评论列表

    - guestbook：保留树形，顶层评论按时间倒序，子评论仍为正序
    - full / compact：拍平为按层级排列的列表

    不会修改传入的节点。
    """
    display_mode = DisplayMode(display_mode)
    normalized_roots = sort_comment_tree(root_comments)

    if display_mode == DisplayMode.GUESTBOOK:
        return sorted(normalized_roots, key=lambda node: node.created_at, reverse=True)

    return flatten_comment_tree(normalized_roots)
