"""Tests for the model backends (no network calls)."""

from __future__ import annotations

import pytest
from google.genai import errors, types

from sketchchat.config import AppConfig, DEFAULT_GENERATION_SETTINGS, DEFAULT_SAFETY_SETTINGS
from sketchchat.model_client import (
    GeminiClient,
    MockModelClient,
    ModelRequest,
    TransportError,
    build_contents,
    build_generate_config,
    create_client,
)


@pytest.fixture
def request_for(inked_surface):
    return ModelRequest(prompt="describe", image_data=inked_surface.snapshot().to_bytes())


def test_generate_config_carries_static_settings():
    config = build_generate_config(DEFAULT_GENERATION_SETTINGS, DEFAULT_SAFETY_SETTINGS)

    assert config.temperature == 0.9
    assert config.top_k == 32
    assert config.top_p == 0.95
    assert config.max_output_tokens == 1024
    assert {s.category for s in config.safety_settings} == {
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    }
    assert all(
        s.threshold == types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE
        for s in config.safety_settings
    )


def test_contents_is_one_user_turn(request_for):
    contents = build_contents(request_for)

    assert len(contents) == 1
    turn = contents[0]
    assert turn.role == "user"
    assert turn.parts[0].text == "describe"
    assert turn.parts[1].inline_data.mime_type == "image/png"
    assert turn.parts[1].inline_data.data == request_for.image_data


class _FakeModels:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class _FakeResponse:
    def __init__(self, text):
        self.text = text


def _client_with(models) -> GeminiClient:
    client = GeminiClient(api_key="test-key")
    client._client = type("FakeGenai", (), {"models": models})()
    return client


def test_gemini_returns_reply_text(request_for):
    models = _FakeModels(response=_FakeResponse("hi there"))
    client = _client_with(models)

    assert client.generate(request_for) == "hi there"
    call = models.calls[0]
    assert call["model"] == "gemini-2.5-pro"
    assert call["config"].max_output_tokens == 1024


def test_gemini_empty_reply_is_transport_error(request_for):
    client = _client_with(_FakeModels(response=_FakeResponse(None)))
    with pytest.raises(TransportError):
        client.generate(request_for)


def test_gemini_api_error_is_transport_error(request_for):
    error = errors.APIError(503, {"error": {"message": "overloaded", "status": "UNAVAILABLE"}})
    client = _client_with(_FakeModels(error=error))

    with pytest.raises(TransportError, match="503"):
        client.generate(request_for)


def test_gemini_without_key_is_not_configured():
    assert GeminiClient(api_key="").is_configured() is False


def test_mock_replies_in_order(request_for):
    client = MockModelClient(replies=["one", "two"])
    assert client.generate(request_for) == "one"
    assert client.generate(request_for) == "two"
    assert "cover" in client.generate(request_for)
    assert len(client.requests) == 3


def test_mock_blank_canvas(surface):
    client = MockModelClient()
    request = ModelRequest(prompt="describe", image_data=surface.snapshot().to_bytes())
    assert "can't see anything" in client.generate(request)


def test_create_client():
    assert isinstance(create_client(AppConfig(), use_mock=True), MockModelClient)
    assert create_client(AppConfig(api_key="")) is None
    assert isinstance(create_client(AppConfig(api_key="k")), GeminiClient)


def test_request_defaults_to_configured_model_id():
    from sketchchat.config import DEFAULT_MODEL_ID

    request = ModelRequest(prompt="p", image_data=b"")
    assert request.model_id == DEFAULT_MODEL_ID == AppConfig().model_id
