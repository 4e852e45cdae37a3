"""
测试评论API
"""
import httpx

from main import app
from blog_api.services.comments_client import CommentFeed, CommentsClient

VISITOR = {"nickname": "小明", "email": "xm@example.com", "website": "https://xm.example.com"}


async def _post_comment(api_client, content="你好", parent_id=None, identifier="hello-world", **kwargs):
    payload = {
        "identifier": identifier,
        "commentType": "blog",
        "content": content,
        "userInfo": VISITOR,
    }
    if parent_id:
        payload["parentId"] = parent_id
    payload.update(kwargs)
    response = await api_client.post("/api/comments", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["comment"]


async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.json() == {"status": "healthy"}


async def test_create_comment_requires_identifier_and_content(api_client):
    response = await api_client.post("/api/comments", json={"identifier": "hello-world", "userInfo": VISITOR})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "缺少必要参数"}


async def test_visitor_must_provide_nickname_and_email(api_client):
    response = await api_client.post(
        "/api/comments",
        json={"identifier": "hello-world", "content": "hi", "userInfo": {"nickname": "匿名"}}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "普通用户需要提供用户信息"


async def test_create_comment_renders_and_sanitizes(api_client):
    comment = await _post_comment(api_client, content="**加粗**<script>alert(1)</script>")

    assert comment["id"].startswith("comment_")
    assert "<strong>加粗</strong>" in comment["content"]
    assert "script" not in comment["content"]
    assert comment["slug"] == "hello-world"
    assert comment["postId"] is None
    assert comment["isAdmin"] is False
    assert comment["nickname"] == "小明"


async def test_admin_comment_uses_admin_profile(api_client, admin_headers):
    response = await api_client.post(
        "/api/comments",
        json={"identifier": "12345", "commentType": "telegram", "content": "置顶说明"},
        headers=admin_headers
    )

    assert response.status_code == 201
    comment = response.json()["comment"]
    assert comment["isAdmin"] is True
    assert comment["nickname"] == "Admin"
    assert comment["postId"] == "12345"


async def test_list_comments_with_like_state(api_client):
    comment = await _post_comment(api_client)
    await _post_comment(api_client, identifier="other-post")

    response = await api_client.get(
        "/api/comments",
        params={"identifier": "hello-world", "commentType": "blog", "deviceId": "device-1"}
    )

    assert response.status_code == 200
    records = response.json()
    assert [r["id"] for r in records] == [comment["id"]]
    assert records[0]["likes"] == 0
    assert records[0]["isLiked"] is False


async def test_like_toggle_round_trip(api_client):
    comment = await _post_comment(api_client)
    body = {"commentId": comment["id"], "commentType": "blog", "deviceId": "device-1"}

    liked = await api_client.post("/api/comments/like", json=body)
    assert liked.json() == {"success": True, "likes": 1, "isLiked": True}

    records = (await api_client.get(
        "/api/comments", params={"identifier": "hello-world", "deviceId": "device-1"}
    )).json()
    assert records[0]["isLiked"] is True

    # 其他设备看到的点赞状态为 False
    records = (await api_client.get(
        "/api/comments", params={"identifier": "hello-world", "deviceId": "device-2"}
    )).json()
    assert records[0]["likes"] == 1
    assert records[0]["isLiked"] is False

    unliked = await api_client.post("/api/comments/like", json=body)
    assert unliked.json() == {"success": True, "likes": 0, "isLiked": False}


async def test_like_validation(api_client):
    missing = await api_client.post("/api/comments/like", json={"commentId": "x", "commentType": "blog"})
    assert missing.status_code == 400

    unknown = await api_client.post(
        "/api/comments/like", json={"commentId": "x", "commentType": "blog", "deviceId": "device-1"}
    )
    assert unknown.status_code == 404


async def test_admin_listing_requires_admin(api_client, admin_headers):
    await _post_comment(api_client)
    await _post_comment(api_client, identifier="other-post")

    forbidden = await api_client.get("/api/comments")
    assert forbidden.status_code == 403

    listing = (await api_client.get("/api/comments", params={"limit": 1}, headers=admin_headers)).json()
    assert listing["total"] == 2
    assert listing["page"] == 1
    assert len(listing["comments"]) == 1


async def test_invalid_token_is_treated_as_visitor(api_client):
    response = await api_client.get("/api/comments", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403


async def test_delete_comment_promotes_replies(api_client, admin_headers, memory_store):
    parent = await _post_comment(api_client, content="楼主")
    reply = await _post_comment(api_client, content="回复", parent_id=parent["id"])

    forbidden = await api_client.request(
        "DELETE", "/api/comments", json={"commentId": parent["id"], "commentType": "blog"}
    )
    assert forbidden.status_code == 403

    deleted = await api_client.request(
        "DELETE", "/api/comments",
        json={"commentId": parent["id"], "commentType": "blog"},
        headers=admin_headers
    )
    assert deleted.json()["success"] is True

    client = CommentsClient("http://test", transport=httpx.ASGITransport(app=app))
    feed = CommentFeed(client, "hello-world", "blog", "device-1", display_mode="full")
    await feed.refresh()

    assert [(c.id, c.level) for c in feed.comments] == [(reply["id"], 0)]


async def test_feed_against_api(api_client):
    root = await _post_comment(api_client, content="第一条")
    reply = await _post_comment(api_client, content="回复", parent_id=root["id"])

    client = CommentsClient("http://test", transport=httpx.ASGITransport(app=app))
    feed = CommentFeed(client, "hello-world", "blog", "device-1")
    await feed.refresh()
    assert [(c.id, c.level) for c in feed.comments] == [(root["id"], 0), (reply["id"], 1)]

    assert await feed.toggle_like(reply["id"]) is True
    assert feed.comments[1].likes == 1

    await feed.refresh(silent=True)
    assert feed.comments[1].likes == 1
    assert feed.comments[1].is_liked is True

    await feed.submit_comment("新评论", user_info=VISITOR)
    assert len(feed.comments) == 3
