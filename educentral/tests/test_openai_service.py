"""
Tests for the OpenAI assessment service with a mocked client.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient
from openai import APIConnectionError, AuthenticationError, BadRequestError, RateLimitError

from educentral import config
from educentral.ai import openai_service
from educentral.app import create_app
from educentral.common.error_handling import AIServiceError, ErrorCode

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def status_error(error_class, status, code):
    return error_class(
        f"Error code: {status}",
        response=httpx.Response(status, request=REQUEST),
        body={"code": code, "message": "provider message"},
    )


@pytest.fixture
def client_mock():
    """Patch the shared OpenAI client."""
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock()
    mock.audio.transcriptions.create = AsyncMock()
    mock.models.list = AsyncMock()
    with patch.object(openai_service, "get_openai_client", return_value=mock):
        yield mock


@pytest.mark.parametrize("value, expected", [
    (5, 5),
    ("7.5", 7.5),
    (42, 10),
    (-3, 1),
    (None, 5),
    (0, 5),
    ("n/a", 5),
])
def test_clamp(value, expected):
    assert openai_service.clamp(value, 1, 10, 5) == expected


def test_missing_api_key():
    config.reload_settings(OPENAI_API_KEY=None)

    with pytest.raises(AIServiceError) as exc_info:
        openai_service.get_openai_client()

    assert exc_info.value.status_code == 500
    assert exc_info.value.code == ErrorCode.AI_NOT_CONFIGURED


def test_client_rebuilt_when_key_changes():
    config.reload_settings(OPENAI_API_KEY="key-one")
    first = openai_service.get_openai_client()
    assert openai_service.get_openai_client() is first

    config.reload_settings(OPENAI_API_KEY="key-two")
    assert openai_service.get_openai_client() is not first


@pytest.mark.asyncio
async def test_video_assessment_clamps_model_output(client_mock):
    client_mock.chat.completions.create.return_value = completion(json.dumps({
        "overall_score": 45,
        "feedback": "Speak slower",
        "speech_clarity": 12,
        "content_accuracy": 0,
        "use_of_examples": 7,
    }))

    result = await openai_service.assess_video_response("closures...", "Explain closures", 30)

    assert result["score"] == 30
    assert result["max_score"] == 30
    assert result["feedback"] == "Speak slower"
    assert result["criteria"] == {
        "speech_clarity": 10,
        "content_accuracy": 5,
        "use_of_examples": 7,
        "presentation_quality": 5,
    }
    kwargs = client_mock.chat.completions.create.await_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_photo_assessment_sends_image(client_mock):
    client_mock.chat.completions.create.return_value = completion("{}")

    result = await openai_service.assess_photo_submission("aGVsbG8=", "Draw the event loop", 25)

    assert result["score"] == 0
    assert result["feedback"] == openai_service.NO_FEEDBACK
    assert set(result["criteria"]) == set(openai_service.PHOTO_CRITERIA)
    content = client_mock.chat.completions.create.await_args.kwargs["messages"][1]["content"]
    assert content[1]["image_url"]["url"] == "data:image/jpeg;base64,aGVsbG8="


@pytest.mark.asyncio
async def test_text_assessment_normalises_key_points(client_mock):
    client_mock.chat.completions.create.return_value = completion(json.dumps({
        "score": 6.5, "feedback": "Good", "key_points": "hoisting",
    }))

    result = await openai_service.assess_text_response("var is hoisted", "Explain var", "var is function scoped")

    assert result["score"] == 6.5
    assert result["key_points"] == ["hoisting"]
    prompt = client_mock.chat.completions.create.await_args.kwargs["messages"][1]["content"]
    assert "Correct Answer: var is function scoped" in prompt


@pytest.mark.asyncio
async def test_invalid_json_becomes_service_error(client_mock):
    client_mock.chat.completions.create.return_value = completion("not json")

    with pytest.raises(AIServiceError) as exc_info:
        await openai_service.assess_text_response("answer", "question")

    assert exc_info.value.status_code == 502
    assert exc_info.value.provider == "openai"


@pytest.mark.asyncio
async def test_connection_errors_are_retried(client_mock):
    client_mock.chat.completions.create.side_effect = [
        APIConnectionError(request=REQUEST),
        completion(json.dumps({"score": 8, "feedback": "ok"})),
    ]

    result = await openai_service.assess_text_response("answer", "question")

    assert result["score"] == 8
    assert client_mock.chat.completions.create.await_count == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(client_mock):
    client_mock.chat.completions.create.side_effect = status_error(BadRequestError, 400, "bad_request")

    with pytest.raises(AIServiceError):
        await openai_service.assess_video_response("t", "q")

    assert client_mock.chat.completions.create.await_count == 1


@pytest.mark.asyncio
async def test_transcribe_audio(client_mock):
    client_mock.audio.transcriptions.create.return_value = SimpleNamespace(text="hello world")

    assert await openai_service.transcribe_audio(b"bytes", "clip.webm") == "hello world"
    kwargs = client_mock.audio.transcriptions.create.await_args.kwargs
    assert kwargs["file"] == ("clip.webm", b"bytes")


@pytest.mark.asyncio
async def test_tutor_sends_recent_history(client_mock):
    client_mock.chat.completions.create.return_value = completion("Use a hash map.")
    history = [{"sender": "user" if i % 2 else "ai", "content": f"turn {i}"} for i in range(8)]

    reply = await openai_service.tutor_reply("How do I find duplicates?", history)

    assert reply == "Use a hash map."
    messages = client_mock.chat.completions.create.await_args.kwargs["messages"]
    assert messages[0]["role"] == "system"
    assert [m["content"] for m in messages[1:-1]] == ["turn 3", "turn 4", "turn 5", "turn 6", "turn 7"]
    assert messages[1]["role"] == "user"
    assert messages[2]["role"] == "assistant"
    assert messages[-1] == {"role": "user", "content": "How do I find duplicates?"}


@pytest.mark.asyncio
async def test_tutor_fallback_reply(client_mock):
    client_mock.chat.completions.create.return_value = SimpleNamespace(choices=[])

    assert await openai_service.tutor_reply("hi") == openai_service.TUTOR_FALLBACK_REPLY


@pytest.mark.asyncio
@pytest.mark.parametrize("error, status, code", [
    (status_error(RateLimitError, 429, "insufficient_quota"), 429, ErrorCode.AI_QUOTA_EXCEEDED),
    (status_error(AuthenticationError, 401, "invalid_api_key"), 401, ErrorCode.AI_NOT_CONFIGURED),
    (status_error(BadRequestError, 400, "context_length_exceeded"), 500, ErrorCode.AI_SERVICE_ERROR),
])
async def test_tutor_error_mapping(client_mock, error, status, code):
    client_mock.chat.completions.create.side_effect = error

    with pytest.raises(AIServiceError) as exc_info:
        await openai_service.tutor_reply("hi")

    assert exc_info.value.status_code == status
    assert exc_info.value.code == code


@pytest.mark.asyncio
async def test_list_chat_models_filters_gpt(client_mock):
    client_mock.models.list.return_value = SimpleNamespace(data=[
        SimpleNamespace(id="gpt-4o", created=1, object="model"),
        SimpleNamespace(id="whisper-1", created=2, object="model"),
    ])

    models = await openai_service.list_chat_models()

    assert models == [{"id": "gpt-4o", "created": 1, "object": "model"}]


# Tutor routes

def test_chat_route(client, client_mock):
    client_mock.chat.completions.create.return_value = completion("A stack is LIFO.")

    response = client.post("/api/ai-tutor/chat", json={
        "message": "What is a stack?",
        "conversationHistory": [{"sender": "user", "content": "hi"}],
    })

    assert response.status_code == 200
    assert response.json()["response"] == "A stack is LIFO."
    assert response.json()["model"] == "gpt-4o"


def test_chat_route_requires_message(client):
    response = client.post("/api/ai-tutor/chat", json={"message": "   "})

    assert response.status_code == 400
    assert response.json()["message"] == "Message is required"


def test_chat_route_quota_error(client, client_mock):
    client_mock.chat.completions.create.side_effect = status_error(RateLimitError, 429, "insufficient_quota")

    response = client.post("/api/ai-tutor/chat", json={"message": "hi"})

    assert response.status_code == 429
    assert response.json()["code"] == "ai_quota_exceeded"


def test_chat_route_without_key(settings):
    app_settings = settings.model_copy(update={"OPENAI_API_KEY": None})

    with TestClient(create_app(app_settings)) as client:
        response = client.post("/api/ai-tutor/chat", json={"message": "hi"})
        health = client.get("/api/ai-tutor/health").json()

    assert response.status_code == 500
    assert response.json()["code"] == "ai_not_configured"
    assert health == {"status": "error", "message": "OpenAI API key not configured", "configured": False}


def test_models_route(client, client_mock):
    client_mock.models.list.return_value = SimpleNamespace(data=[SimpleNamespace(id="gpt-4o", created=1, object="model")])

    assert client.get("/api/ai-tutor/models").json() == {"models": [{"id": "gpt-4o", "created": 1, "object": "model"}]}


def test_health_route(client, client_mock):
    client_mock.chat.completions.create.return_value = completion("Hi!")

    health = client.get("/api/ai-tutor/health").json()

    assert health["status"] == "healthy"
    assert health["testResponse"] == "Hi!"


def test_health_route_reports_provider_failure(client, client_mock):
    client_mock.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)

    health = client.get("/api/ai-tutor/health").json()

    assert health["status"] == "error"
    assert health["configured"] is True
    assert "error" in health
