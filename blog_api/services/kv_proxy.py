"""
Cloudflare Worker KV 代理客户端
"""
import logging
from typing import Optional

import httpx

from blog_api.core.config import settings

logger = logging.getLogger(__name__)


class KVProxy:
    """
    KV 代理客户端

    所有方法在未配置或请求失败时记录日志并返回 None / False，不抛出异常。
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url if base_url is not None else settings.CLOUDFLARE_WORKER_URL or "").rstrip("/")
        self.api_token = api_token if api_token is not None else settings.CLOUDFLARE_API_TOKEN or ""
        self.timeout = timeout if timeout is not None else settings.KV_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_token)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.api_token}"}
        )

    async def get(self, key: str) -> Optional[str]:
        """
        从 KV 获取值

        Returns:
            字符串值，不存在或失败时返回 None
        """
        if not self.configured:
            logger.warning("KV proxy not configured")
            return None

        try:
            async with self._client() as client:
                response = await client.get("/api/kv/get", params={"key": key})
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("KV get error for key %s: %s", key, e)
            return None

        if not data.get("success") or data.get("value") is None:
            return None
        value = data["value"]
        return value if isinstance(value, str) else str(value)

    async def put(self, key: str, value: str) -> bool:
        """向 KV 存储值"""
        if not self.configured:
            logger.warning("KV proxy not configured")
            return False

        try:
            async with self._client() as client:
                response = await client.post("/api/kv/put", json={"key": key, "value": value})
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("KV put error for key %s: %s", key, e)
            return False

        return bool(data.get("success"))

    async def increment(self, key: str, delta: int = 1) -> Optional[int]:
        """递增数值，返回递增后的值"""
        if not self.configured:
            logger.warning("KV proxy not configured")
            return None

        try:
            async with self._client() as client:
                response = await client.get("/api/kv/increment", params={"key": key, "delta": delta})
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("KV increment error for key %s: %s", key, e)
            return None

        if not data.get("success") or data.get("value") is None:
            return None
        try:
            return int(data["value"])
        except (TypeError, ValueError):
            return None
