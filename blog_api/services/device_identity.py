"""
设备标识

每个浏览器/设备首次使用时生成一个随机ID并持久化，之后复用。
随点赞、评论请求一起发送，用来判断“这个设备是否已经点过赞”，无需登录。

注意：这只是弱匿名标识，客户端可以随意伪造或清除，不能作为安全边界。
"""
import json
import os
import uuid
from typing import Dict, Optional

DEVICE_ID_KEY = "comment_device_id"


class LocalStorage:
    """本地键值存储接口"""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryLocalStorage(LocalStorage):
    """内存存储（进程内有效）"""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class FileLocalStorage(LocalStorage):
    """JSON文件存储"""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(items, f, indent=2)


def get_device_id(storage: LocalStorage) -> str:
    """读取设备ID，不存在时生成并保存"""
    device_id = storage.get_item(DEVICE_ID_KEY)
    if not device_id:
        device_id = str(uuid.uuid4())
        storage.set_item(DEVICE_ID_KEY, device_id)
    return device_id
