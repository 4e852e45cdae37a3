"""
测试评论客户端与评论区状态
"""
import asyncio
import json

import httpx
import pytest

from blog_api.core.exceptions import CommentsAPIError
from blog_api.services.comments_client import CommentFeed, CommentsClient


def _client(handler):
    return CommentsClient("http://blog.test", transport=httpx.MockTransport(handler))


async def test_fetch_comments_sends_scope_params():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[{"id": "a", "createdAt": "2024-01-01T00:00:00Z"}])

    records = await _client(handler).fetch_comments("hello-world", "telegram", "device-1")

    assert records == [{"id": "a", "createdAt": "2024-01-01T00:00:00Z"}]
    assert seen["params"] == {"identifier": "hello-world", "commentType": "telegram", "deviceId": "device-1"}


async def test_non_success_status_raises():
    client = _client(lambda request: httpx.Response(500, json={"error": "Failed to fetch comments"}))

    with pytest.raises(CommentsAPIError) as exc_info:
        await client.fetch_comments("hello-world", "blog", "device-1")

    assert exc_info.value.status_code == 500


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(CommentsAPIError):
        await _client(handler).toggle_like("a", "blog", "device-1")


async def test_toggle_like_posts_key():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "likes": 1, "isLiked": True})

    result = await _client(handler).toggle_like("a", "blog", "device-1")

    assert result["likes"] == 1
    assert seen["path"] == "/api/comments/like"
    assert seen["body"] == {"commentId": "a", "commentType": "blog", "deviceId": "device-1"}


async def test_feed_refresh_flattens_thread():
    def handler(request):
        return httpx.Response(200, json=[
            {"objectId": "reply", "parent": {"objectId": "root"}, "createdAt": "2024-01-01T00:02:00Z"},
            {"id": "root", "createdAt": "2024-01-01T00:01:00Z", "likes": 2},
            {"content": "missing id", "createdAt": "2024-01-01T00:03:00Z"},
        ])

    feed = CommentFeed(_client(handler), "hello-world", "blog", "device-1", display_mode="compact")
    await feed.refresh()

    assert [(c.id, c.level) for c in feed.comments] == [("root", 0), ("reply", 1)]
    assert feed.loading is False


async def test_feed_keeps_previous_snapshot_on_failure():
    responses = [
        httpx.Response(200, json=[{"id": "a", "createdAt": "2024-01-01T00:00:00Z"}]),
        httpx.Response(503),
    ]
    feed = CommentFeed(_client(lambda request: responses.pop(0)), "hello-world", "blog", "device-1")

    await feed.refresh()
    await feed.refresh()

    assert [c.id for c in feed.comments] == ["a"]
    assert feed.loading is False


class GatedClient:
    """每次请求都挂起，直到测试手动放行"""

    def __init__(self):
        self.calls = []

    async def fetch_comments(self, identifier, comment_type, device_id):
        call = {"gate": asyncio.Event(), "records": []}
        self.calls.append(call)
        await call["gate"].wait()
        return call["records"]

    def release(self, index, records):
        self.calls[index]["records"] = records
        self.calls[index]["gate"].set()


async def _wait_for(predicate):
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def test_latest_fetch_wins():
    client = GatedClient()
    feed = CommentFeed(client, "hello-world", "blog", "device-1")

    first = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 1)
    second = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 2)

    client.release(1, [{"id": "fresh", "createdAt": "2024-01-01T00:00:00Z"}])
    await second
    client.release(0, [{"id": "stale", "createdAt": "2024-01-01T00:00:00Z"}])
    await first

    assert [c.id for c in feed.comments] == ["fresh"]
    assert feed.loading is False


async def test_close_discards_inflight_result():
    client = GatedClient()
    feed = CommentFeed(client, "hello-world", "blog", "device-1")

    pending = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 1)
    feed.close()
    client.release(0, [{"id": "late", "createdAt": "2024-01-01T00:00:00Z"}])
    await pending

    assert feed.closed is True
    assert feed.comments == []

    # 关闭后不再发起请求
    await feed.refresh()
    assert len(client.calls) == 1


async def test_feed_skips_malformed_records():
    def handler(request):
        return httpx.Response(200, json=[
            {"id": "a", "createdAt": "2024-01-01T00:00:00Z"},
            {"id": "bad", "createdAt": 1e20},
            {"id": "b", "createdAt": "2024-01-01T00:01:00Z", "likes": 1e400},
        ])

    feed = CommentFeed(_client(handler), "hello-world", "blog", "device-1")
    await feed.refresh()

    assert [(c.id, c.likes) for c in feed.comments] == [("a", 0), ("b", 0)]


class FlakyClient:
    """第一次返回正常数据，之后抛出非接口异常"""

    def __init__(self):
        self.calls = 0

    async def fetch_comments(self, identifier, comment_type, device_id):
        self.calls += 1
        if self.calls == 1:
            return [{"id": "a", "createdAt": "2024-01-01T00:00:00Z"}]
        raise RuntimeError("unexpected payload")


async def test_unexpected_error_keeps_previous_snapshot():
    feed = CommentFeed(FlakyClient(), "hello-world", "blog", "device-1")

    await feed.refresh()
    await feed.refresh()

    assert [c.id for c in feed.comments] == ["a"]
    assert feed.loading is False


async def test_silent_refresh_replacing_load_clears_loading():
    client = GatedClient()
    feed = CommentFeed(client, "hello-world", "blog", "device-1")

    first = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 1)
    assert feed.loading is True

    second = asyncio.create_task(feed.refresh(silent=True))
    await _wait_for(lambda: len(client.calls) == 2)
    client.release(1, [{"id": "a", "createdAt": "2024-01-01T00:00:00Z"}])
    client.release(0, [])
    await second
    await first

    assert [c.id for c in feed.comments] == ["a"]
    assert feed.loading is False


class StubbornClient(GatedClient):
    """忽略取消，等放行后照常返回结果"""

    async def fetch_comments(self, identifier, comment_type, device_id):
        call = {"gate": asyncio.Event(), "records": [], "cancelled": False}
        self.calls.append(call)
        while True:
            try:
                await call["gate"].wait()
                break
            except asyncio.CancelledError:
                call["cancelled"] = True
        return call["records"]


async def test_stale_result_that_completes_is_discarded():
    client = StubbornClient()
    feed = CommentFeed(client, "hello-world", "blog", "device-1")

    first = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 1)
    second = asyncio.create_task(feed.refresh())
    await _wait_for(lambda: len(client.calls) == 2)

    client.release(1, [{"id": "fresh", "createdAt": "2024-01-01T00:00:00Z"}])
    await second
    client.release(0, [{"id": "stale", "createdAt": "2024-01-01T00:00:00Z"}])
    await first

    assert client.calls[0]["cancelled"] is True
    assert [c.id for c in feed.comments] == ["fresh"]
    assert feed.loading is False
