import os
import sys
from types import SimpleNamespace

import httpx
import openai
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from storyloom.config import config
from storyloom.errors import (
    ContentSafetyError,
    ExternalCollaboratorError,
    MalformedResponseError,
    TransientCollaboratorError,
)
from storyloom.models import DeepSeekModel, GeminiModel, ImageGenerator, OpenAIModel, classify_error, get_client


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.params = None

    def create(self, **params):
        self.params = params
        if self.error is not None:
            raise self.error
        return self.response


def _fake_client(response=None, error=None):
    completions = FakeCompletions(response, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _response(content=None, tool_calls=None, finish_reason="stop"):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


_REQUEST = httpx.Request("POST", "https://example.invalid/v1/chat/completions")


def _status_error(cls, status, body=None):
    return cls("失败", response=httpx.Response(status, request=_REQUEST), body=body)


def test_missing_api_key_raises_value_error(monkeypatch):
    monkeypatch.setattr(config, "openai_api_key", None)
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        OpenAIModel()


def test_query_sends_context_history_and_tools():
    model = OpenAIModel(api_key="test-key")
    model.client, completions = _fake_client(_response(content="你好"))

    result = model.query(
        [{"role": "user", "content": "嗨"}],
        "PROJECT CONTEXT:\nTitle: 测试",
        tools=[{"type": "function", "function": {"name": "addCharacter"}}],
        system_prompt="You are a co-writer.",
    )

    assert result.text == "你好"
    assert result.tool_calls == []
    messages = completions.params["messages"]
    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith("You are a co-writer.")
    assert "Title: 测试" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "嗨"}
    assert completions.params["tool_choice"] == "auto"
    assert completions.params["model"] == "gpt-4o"


def test_query_extracts_tool_calls():
    call = SimpleNamespace(
        id="call_abc",
        function=SimpleNamespace(name="addOutlineSection", arguments='{"title": "序章"}'),
    )
    broken = SimpleNamespace(id="call_x", function=None)
    model = OpenAIModel(api_key="test-key")
    model.client, _ = _fake_client(_response(content="", tool_calls=[call, broken]))

    result = model.query([], "")

    assert result.text is None
    assert [(item.id, item.name, item.arguments) for item in result.tool_calls] == [
        ("call_abc", "addOutlineSection", '{"title": "序章"}')
    ]


def test_chat_returns_text():
    model = DeepSeekModel(api_key="test-key")
    model.client, completions = _fake_client(_response(content="整理好了"))
    assert model.chat("润色这段", system_prompt="editor") == "整理好了"
    assert completions.params["messages"][-1] == {"role": "user", "content": "润色这段"}
    assert completions.params["model"] == "deepseek-chat"


def test_empty_choices_is_malformed():
    model = OpenAIModel(api_key="test-key")
    model.client, _ = _fake_client(SimpleNamespace(choices=[]))
    with pytest.raises(MalformedResponseError):
        model.chat("hi")


def test_content_filter_finish_reason_is_safety_error():
    model = GeminiModel(api_key="test-key")
    model.client, _ = _fake_client(_response(content=None, finish_reason="content_filter"))
    with pytest.raises(ContentSafetyError):
        model.chat("hi")


def test_sdk_errors_are_classified():
    model = OpenAIModel(api_key="test-key")
    model.client, _ = _fake_client(error=openai.APIConnectionError(request=_REQUEST))
    with pytest.raises(TransientCollaboratorError) as info:
        model.chat("hi")
    assert info.value.retryable is True


def test_classify_error_variants():
    rate_limited = classify_error(_status_error(openai.RateLimitError, 429))
    assert isinstance(rate_limited, TransientCollaboratorError)

    server = classify_error(_status_error(openai.InternalServerError, 503))
    assert server.retryable is True

    blocked = classify_error(
        _status_error(openai.BadRequestError, 400, body={"code": "content_policy_violation", "message": "blocked"})
    )
    assert isinstance(blocked, ContentSafetyError)
    assert blocked.retryable is False

    bad_request = classify_error(_status_error(openai.BadRequestError, 400))
    assert type(bad_request) is ExternalCollaboratorError
    assert bad_request.retryable is False
    assert bad_request.kind == "ExternalCollaboratorError"


def test_get_client_selects_provider(monkeypatch):
    monkeypatch.setattr(config, "deepseek_api_key", "test-key")
    assert isinstance(get_client("DeepSeek"), DeepSeekModel)
    with pytest.raises(ValueError):
        get_client("glm")


def test_get_client_uses_configured_provider(monkeypatch):
    monkeypatch.setattr(config, "provider", "gemini")
    monkeypatch.setattr(config, "gemini_api_key", "test-key")
    monkeypatch.setattr(config, "model_name", None)

    client = get_client()

    assert isinstance(client, GeminiModel)
    assert client.model_name == "gemini-2.5-flash"


class FakeImages:
    def __init__(self, payload):
        self.payload = payload
        self.params = None

    def generate(self, **params):
        self.params = params
        return SimpleNamespace(data=[SimpleNamespace(b64_json=self.payload)] if self.payload else [])


def test_image_generator_returns_base64():
    generator = ImageGenerator(api_key="test-key", model_name="gpt-image-1")
    images = FakeImages("aW1n")
    generator.client = SimpleNamespace(images=images)

    assert generator.generate("a lighthouse", aspect_ratio="16:9") == "aW1n"
    assert images.params["size"] == "1536x1024"


def test_image_generator_rejects_bad_ratio_and_empty_result():
    generator = ImageGenerator(api_key="test-key", model_name="gpt-image-1")
    generator.client = SimpleNamespace(images=FakeImages(None))
    with pytest.raises(ValueError):
        generator.generate("x", aspect_ratio="4:3")
    with pytest.raises(MalformedResponseError):
        generator.generate("x")
