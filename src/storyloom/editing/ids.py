"""Identifier allocation for new characters, sections, notes and tasks."""

from __future__ import annotations

import uuid
from typing import Callable, Iterator, Optional

# 图像存储键的保留前缀，实体 ID 不允许落入该命名空间
RESERVED_IMAGE_PREFIX = "image-"


def _uuid_factory() -> str:
    return str(uuid.uuid4())


class IdAllocator:
    """生成全局唯一的不透明 ID。"""

    def __init__(self, factory: Optional[Callable[[], str]] = None):
        self._factory = factory or _uuid_factory

    def new_id(self) -> str:
        for _ in range(16):
            candidate = str(self._factory())
            if candidate and not candidate.startswith(RESERVED_IMAGE_PREFIX):
                return candidate
        raise RuntimeError("ID 生成器持续返回保留前缀或空值")


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    """可复现的 ID 序列，便于测试与样例数据。"""
    counter: Iterator[int] = iter(range(1, 1 << 62))
    return lambda: f"{prefix}-{next(counter)}"
