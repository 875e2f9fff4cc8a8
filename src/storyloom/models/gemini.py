from typing import Optional

from storyloom.config import config

from .base import BaseChatModel


class GeminiModel(BaseChatModel):
    """Gemini 通过 Google 提供的 OpenAI 兼容端点接入。"""

    def __init__(self, api_key: Optional[str] = None, model_name: str = "gemini-2.5-flash"):
        super().__init__(
            api_key=api_key or config.gemini_api_key,
            model_name=model_name,
            base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
            missing_key_error="GEMINI_API_KEY not found.",
        )
