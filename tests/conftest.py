"""
测试公共夹具
"""
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from blog_api.db.database import Base, get_db
from blog_api.services.comment_store import MemoryCommentStore, get_comment_store
from blog_api.services.comment_tree import CommentNode
from blog_api.utils.auth import create_admin_token
import blog_api.models  # noqa: F401  注册模型到 Base.metadata

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_node(comment_id: str, minute: int, parent_id: str = None, **kwargs) -> CommentNode:
    """构造测试用评论节点，minute 为相对 BASE_TIME 的分钟数"""
    return CommentNode(
        id=comment_id,
        content=f"<p>{comment_id}</p>",
        created_at=BASE_TIME + timedelta(minutes=minute),
        identifier="hello-world",
        comment_type="blog",
        parent_id=parent_id,
        **kwargs
    )


@pytest.fixture
def memory_store():
    return MemoryCommentStore()


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def api_client(memory_store, session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_comment_store] = lambda: memory_store
    app.dependency_overrides[get_db] = override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_admin_token()}"}
