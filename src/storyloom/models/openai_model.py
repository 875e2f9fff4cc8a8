from typing import Optional

from storyloom.config import config

from .base import BaseChatModel


class OpenAIModel(BaseChatModel):
    def __init__(self, api_key: Optional[str] = None, model_name: str = "gpt-4o"):
        super().__init__(
            api_key=api_key or config.openai_api_key,
            model_name=model_name,
            base_url=None,
            missing_key_error="OPENAI_API_KEY not found.",
        )
