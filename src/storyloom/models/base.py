"""共享模型基类，封装 OpenAI 兼容接口的通用逻辑。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import openai
from openai import OpenAI

from storyloom.config import config
from storyloom.errors import (
    ContentSafetyError,
    ExternalCollaboratorError,
    MalformedResponseError,
    TransientCollaboratorError,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."

_SAFETY_CODES = {"content_policy_violation", "moderation_blocked", "content_filter", "safety"}


@dataclass
class ToolCall:
    """模型提出的一次工具调用；arguments 为原始 JSON 字符串。"""
    id: str
    name: str
    arguments: str = "{}"

    def to_message_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class QueryResult:
    """各 provider 统一的返回结构。"""
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)


class ChatModel(Protocol):
    """模型查询协作方的统一接口。"""

    def query(
        self,
        history: Sequence[Dict[str, Any]],
        context: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        system_prompt: Optional[str] = None,
    ) -> QueryResult:
        ...

    def chat(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        history: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> str:
        ...


def classify_error(exc: Exception) -> ExternalCollaboratorError:
    """把 SDK 异常归类为可重试 / 不可重试。"""
    if isinstance(exc, (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)):
        return TransientCollaboratorError(f"模型服务暂时不可用: {exc}")
    if isinstance(exc, openai.APIStatusError):
        code = str(getattr(exc, "code", "") or "").lower()
        if code in _SAFETY_CODES:
            return ContentSafetyError(f"请求被内容安全策略拒绝: {exc}")
        if exc.status_code >= 500:
            return TransientCollaboratorError(f"模型服务暂时不可用: {exc}")
    return ExternalCollaboratorError(f"模型服务请求失败: {exc}", retryable=False)


class BaseChatModel:
    """基于 OpenAI SDK 的通用对话模型封装。"""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str,
        base_url: Optional[str],
        missing_key_error: str,
    ):
        self.api_key = api_key
        self.model_name = model_name
        if not self.api_key:
            raise ValueError(missing_key_error)

        self.client = OpenAI(api_key=self.api_key, base_url=base_url, timeout=config.request_timeout)

    def _create(self, **kwargs: Any) -> Any:
        params = dict(kwargs)
        params.setdefault("model", self.model_name)
        try:
            response = self.client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            logger.warning("%s 请求失败: %s", type(self).__name__, exc)
            raise classify_error(exc) from exc
        if not getattr(response, "choices", None):
            raise MalformedResponseError("模型返回为空")
        choice = response.choices[0]
        if getattr(choice, "finish_reason", None) == "content_filter":
            raise ContentSafetyError("回复被内容安全策略拦截")
        return choice.message

    def query(
        self,
        history: Sequence[Dict[str, Any]],
        context: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        system_prompt: Optional[str] = None,
    ) -> QueryResult:
        """带项目上下文与工具目录的对话。"""
        instruction = system_prompt or DEFAULT_SYSTEM_PROMPT
        if context:
            instruction = f"{instruction}\n\n{context}"
        messages: List[Dict[str, Any]] = [{"role": "system", "content": instruction}]
        messages.extend(history)

        params: Dict[str, Any] = {"messages": messages, "stream": False}
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        message = self._create(**params)

        tool_calls: List[ToolCall] = []
        for index, call in enumerate(getattr(message, "tool_calls", None) or []):
            function = getattr(call, "function", None)
            if function is None or not getattr(function, "name", None):
                continue
            tool_calls.append(
                ToolCall(
                    id=getattr(call, "id", None) or f"call_{index}",
                    name=function.name,
                    arguments=function.arguments or "{}",
                )
            )
        return QueryResult(text=message.content or None, tool_calls=tool_calls)

    def chat(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        history: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> str:
        """单轮文本补全（审阅、生成等场景）。"""
        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        if history:
            messages.extend(history)
        messages.append({"role": "user", "content": prompt})
        message = self._create(messages=messages, stream=False, **kwargs)
        return message.content or ""
