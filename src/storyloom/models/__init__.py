"""Models 模块 - AI 模型适配层。"""

from typing import Dict, Optional, Type

from storyloom.config import config

from .base import BaseChatModel, ChatModel, QueryResult, ToolCall, classify_error
from .deepseek import DeepSeekModel
from .gemini import GeminiModel
from .images import ASPECT_RATIO_SIZES, ImageGenerator
from .openai_model import OpenAIModel

PROVIDERS: Dict[str, Type[BaseChatModel]] = {
    "openai": OpenAIModel,
    "gemini": GeminiModel,
    "deepseek": DeepSeekModel,
}


def get_client(provider: Optional[str] = None, model_name: Optional[str] = None) -> BaseChatModel:
    """按配置选择 provider 适配器。"""
    resolved = (provider or config.provider or "openai").strip().lower()
    model_cls = PROVIDERS.get(resolved)
    if model_cls is None:
        raise ValueError(f"不支持的模型服务: {resolved}")
    name = model_name or config.model_name
    if name:
        return model_cls(model_name=name)
    return model_cls()


def get_review_client() -> BaseChatModel:
    """审阅与总结任务使用的模型（未配置时与对话模型相同）。"""
    return get_client(model_name=config.review_model)


__all__ = [
    "ASPECT_RATIO_SIZES",
    "BaseChatModel",
    "ChatModel",
    "DeepSeekModel",
    "GeminiModel",
    "ImageGenerator",
    "OpenAIModel",
    "PROVIDERS",
    "QueryResult",
    "ToolCall",
    "classify_error",
    "get_client",
    "get_review_client",
]
