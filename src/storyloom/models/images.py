"""图像生成协作方：返回 base64 图像，或明确区分内容安全拒绝与临时故障。"""

from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import OpenAI

from storyloom.config import config
from storyloom.editing.ids import RESERVED_IMAGE_PREFIX
from storyloom.errors import MalformedResponseError

from .base import classify_error

logger = logging.getLogger(__name__)

ASPECT_RATIO_SIZES = {
    "1:1": "1024x1024",
    "16:9": "1536x1024",
    "9:16": "1024x1536",
}


class ImageGenerator:
    """基于 OpenAI Images API 的图像生成。"""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.api_key = api_key or config.openai_api_key
        self.model_name = model_name or config.image_model
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not found.")
        self.client = OpenAI(api_key=self.api_key, timeout=config.request_timeout)

    def generate(self, prompt: str, aspect_ratio: str = "1:1") -> str:
        size = ASPECT_RATIO_SIZES.get(aspect_ratio)
        if size is None:
            raise ValueError(f"不支持的画幅比例: {aspect_ratio}")
        try:
            response = self.client.images.generate(model=self.model_name, prompt=prompt, size=size, n=1)
        except openai.OpenAIError as exc:
            logger.warning("图像生成失败: %s", exc)
            raise classify_error(exc) from exc

        data = getattr(response, "data", None) or []
        payload = getattr(data[0], "b64_json", None) if data else None
        if not payload:
            raise MalformedResponseError("图像生成结果中没有图片数据")
        if payload.startswith(RESERVED_IMAGE_PREFIX):
            raise MalformedResponseError("图像数据与存储键前缀冲突")
        return payload
