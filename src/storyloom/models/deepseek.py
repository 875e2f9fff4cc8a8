from typing import Optional

from storyloom.config import config

from .base import BaseChatModel


class DeepSeekModel(BaseChatModel):
    def __init__(self, api_key: Optional[str] = None, model_name: str = "deepseek-chat"):
        super().__init__(
            api_key=api_key or config.deepseek_api_key,
            model_name=model_name,
            base_url="https://api.deepseek.com",
            missing_key_error="DEEPSEEK_API_KEY not found.",
        )
