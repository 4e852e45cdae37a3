"""
测试设备标识
"""
import json
import uuid

from blog_api.services.device_identity import (
    DEVICE_ID_KEY,
    FileLocalStorage,
    MemoryLocalStorage,
    get_device_id
)


def test_device_id_generated_once():
    storage = MemoryLocalStorage()

    first = get_device_id(storage)
    second = get_device_id(storage)

    assert first == second
    assert uuid.UUID(first).version == 4
    assert storage.get_item(DEVICE_ID_KEY) == first


def test_existing_device_id_is_reused():
    storage = MemoryLocalStorage()
    storage.set_item(DEVICE_ID_KEY, "known-device")

    assert get_device_id(storage) == "known-device"


def test_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "device.json"

    device_id = get_device_id(FileLocalStorage(str(path)))

    assert get_device_id(FileLocalStorage(str(path))) == device_id
    assert json.loads(path.read_text(encoding="utf-8")) == {DEVICE_ID_KEY: device_id}
