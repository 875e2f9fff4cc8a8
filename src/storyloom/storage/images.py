"""
图像存储

原始 base64 图像以 ``image-<实体ID>`` 为键单独存放，项目 JSON 中只保留键。
"""
import os
from typing import Optional

from storyloom.editing.ids import RESERVED_IMAGE_PREFIX


def image_key(entity_id: str) -> str:
    return f"{RESERVED_IMAGE_PREFIX}{entity_id}"


def is_image_key(value: Optional[str]) -> bool:
    return bool(value) and str(value).startswith(RESERVED_IMAGE_PREFIX)


class ImageStore:
    """以文件形式保存 base64 图像。"""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        os.makedirs(base_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        if not key or os.path.basename(key) != key or key in (".", ".."):
            raise ValueError(f"非法的图像键: {key!r}")
        return os.path.join(self.base_dir, f"{key}.b64")

    def save(self, key: str, data: str) -> None:
        path = self._path(key)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def exists(self, key: str) -> bool:
        return os.path.exists(self._path(key))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not os.path.exists(path):
            return False
        os.remove(path)
        return True
