"""
Tests for the HuggingFace inference client and the analyses built on it.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from educentral.ai import huggingface
from educentral.ai.huggingface import HuggingFaceClient
from educentral.common.error_handling import AIServiceError


class FakeResponse:
    def __init__(self, status, payload=None):
        self.status = status
        self.payload = payload

    async def json(self):
        return self.payload

    async def text(self):
        return str(self.payload)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Replays queued responses or exceptions for successive posts."""

    closed = False

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def post(self, url, json=None):
        self.requests.append((url, json))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True


def client_with(*outcomes, max_retries=1):
    client = HuggingFaceClient("https://hf.test/models/", api_key="hf-key", max_retries=max_retries)
    client._session = FakeSession(*outcomes)
    return client


@pytest.fixture
def hf_client():
    """Patch the shared client used by the analysis functions."""
    mock = MagicMock()
    mock.text_classification = AsyncMock()
    mock.question_answering = AsyncMock()
    mock.text_generation = AsyncMock(return_value="")
    with patch.object(huggingface, "get_huggingface_client", return_value=mock):
        yield mock


# Client

@pytest.mark.asyncio
async def test_query_posts_to_model_url():
    client = client_with(FakeResponse(200, {"ok": True}))

    assert await client.query("org/model", {"inputs": "hi"}) == {"ok": True}
    assert client._session.requests == [("https://hf.test/models/org/model", {"inputs": "hi"})]


@pytest.mark.asyncio
async def test_query_retries_cold_start():
    client = client_with(FakeResponse(503, "loading"), FakeResponse(200, [1]))

    assert await client.query("org/model", {}) == [1]
    assert len(client._session.requests) == 2


@pytest.mark.asyncio
async def test_query_does_not_retry_client_errors():
    client = client_with(FakeResponse(400, "bad input"), FakeResponse(200, [1]))

    with pytest.raises(AIServiceError) as exc_info:
        await client.query("org/model", {})

    assert exc_info.value.details["status"] == 400
    assert len(client._session.requests) == 1


@pytest.mark.asyncio
async def test_query_gives_up_after_network_errors():
    client = client_with(aiohttp.ClientError("reset"), aiohttp.ClientError("reset"))

    with pytest.raises(AIServiceError):
        await client.query("org/model", {})


@pytest.mark.asyncio
async def test_text_classification_unwraps_and_sorts():
    client = client_with(FakeResponse(200, [[
        {"label": "sadness", "score": 0.1},
        {"label": "joy", "score": 0.8},
        {"label": "fear", "score": 0.1},
    ]]))

    labels = await client.text_classification("org/model", "great day")

    assert [item["label"] for item in labels] == ["joy", "sadness", "fear"]


@pytest.mark.asyncio
async def test_text_classification_rejects_empty_result():
    client = client_with(FakeResponse(200, []), max_retries=0)

    with pytest.raises(AIServiceError):
        await client.text_classification("org/model", "text")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    [[{"score": 0.9}]],
    [{"label": "joy", "score": "high"}],
    ["joy"],
    {"error": "unexpected"},
])
async def test_text_classification_rejects_malformed_labels(payload):
    client = client_with(FakeResponse(200, payload), max_retries=0)

    with pytest.raises(AIServiceError, match="Unexpected response shape"):
        await client.text_classification("org/model", "text")


@pytest.mark.asyncio
async def test_question_answering_unwraps_list():
    client = client_with(FakeResponse(200, [{"answer": "x", "score": 0.4}]))

    assert await client.question_answering("org/model", "q", "c") == {"answer": "x", "score": 0.4}


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, "text", [{"score": "high"}]])
async def test_question_answering_rejects_malformed_answer(payload):
    client = client_with(FakeResponse(200, payload), max_retries=0)

    with pytest.raises(AIServiceError):
        await client.question_answering("org/model", "q", "c")


@pytest.mark.asyncio
async def test_text_generation_reads_first_item():
    client = client_with(FakeResponse(200, [{"generated_text": "Nice work"}]))

    assert await client.text_generation("org/model", "prompt", max_new_tokens=5) == "Nice work"
    assert client._session.requests[0][1] == {"inputs": "prompt", "parameters": {"max_new_tokens": 5}}


@pytest.mark.asyncio
async def test_close():
    client = client_with()
    session = client._session

    await client.close()

    assert session.closed
    assert client._session is None


# Analyses

@pytest.mark.asyncio
async def test_emotion_analysis(hf_client):
    hf_client.text_classification.return_value = [
        {"label": "Joy", "score": 0.75},
        {"label": "Neutral", "score": 0.25},
    ]

    result = await huggingface.analyze_emotion_from_text("I enjoyed this")

    assert result["emotion"] == "joy"
    assert result["confidence"] == 0.75
    assert result["facial_score"] == 75
    assert result["emotions"][1] == {"label": "neutral", "score": 0.25}


@pytest.mark.asyncio
async def test_emotion_analysis_fallback(hf_client):
    hf_client.text_classification.side_effect = AIServiceError("down", provider="huggingface")

    result = await huggingface.analyze_emotion_from_text("text")

    assert result["emotion"] == "neutral"
    assert result["facial_score"] == 50


@pytest.mark.asyncio
async def test_speech_quality(hf_client):
    hf_client.text_classification.return_value = [{"label": "POSITIVE", "score": 0.9}]
    transcript = "Closures capture variables from the scope where they are defined. They keep state."

    result = await huggingface.analyze_speech_quality(transcript, 3)

    assert result["sentiment"] == "positive"
    assert result["tone_analysis"]["tone"] == "confident"
    assert result["speech_quality"]["pace"] == "fast"
    assert result["speech_quality"]["volume"] == "normal"
    assert result["transcript"] == transcript


@pytest.mark.asyncio
async def test_speech_quality_fallback(hf_client):
    hf_client.text_classification.side_effect = AIServiceError("down", provider="huggingface")

    result = await huggingface.analyze_speech_quality("words", 60)

    assert result["sentiment"] == "neutral"
    assert result["speech_quality"] == {"clarity": 0.5, "pace": "normal", "volume": "normal"}


@pytest.mark.asyncio
async def test_content_quality_with_expected_answer(hf_client):
    hf_client.question_answering.return_value = {"score": 0.2, "answer": "scope"}
    hf_client.text_generation.return_value = "Mention lexical scope."

    result = await huggingface.assess_content_quality(
        "What is a closure?",
        "A closure is a function bundled with its lexical scope.",
        "A closure is a function with its lexical scope.",
    )

    assert 0 <= result["content_score"] <= 100
    assert result["accuracy"] > 20
    assert result["feedback"] == "Mention lexical scope."
    assert result["suggestions"]


@pytest.mark.asyncio
async def test_content_quality_uses_model_confidence(hf_client):
    hf_client.question_answering.return_value = {"score": 0.42}

    result = await huggingface.assess_content_quality("What is a closure?", "A function and its scope.")

    assert result["accuracy"] == 42
    assert result["feedback"].startswith("Your answer scores")


@pytest.mark.asyncio
async def test_content_quality_fallback(hf_client):
    hf_client.question_answering.side_effect = AIServiceError("down", provider="huggingface")

    result = await huggingface.assess_content_quality("q", "a")

    assert result == huggingface.FALLBACK_CONTENT
    assert result is not huggingface.FALLBACK_CONTENT


@pytest.mark.asyncio
async def test_generate_feedback_strips_prompt(hf_client):
    hf_client.text_generation.side_effect = AIServiceError("down", provider="huggingface")

    feedback = await huggingface.generate_feedback("q", "a", 55)

    assert feedback == (
        "Your answer scores 55/100. Focus on providing more specific details and clear explanations."
    )


@pytest.mark.asyncio
async def test_malformed_emotion_response_falls_back():
    client = client_with(FakeResponse(200, [[{"score": 0.9}]]), max_retries=0)

    with patch.object(huggingface, "get_huggingface_client", return_value=client):
        result = await huggingface.analyze_emotion_from_text("I am happy")

    assert result["emotion"] == "neutral"
    assert result["confidence"] == 0.5


@pytest.mark.asyncio
async def test_malformed_sentiment_response_falls_back():
    client = client_with(FakeResponse(200, {"unexpected": True}), max_retries=0)

    with patch.object(huggingface, "get_huggingface_client", return_value=client):
        result = await huggingface.analyze_speech_quality("words", 60)

    assert result["speech_quality"]["clarity"] == 0.5


@pytest.mark.asyncio
async def test_listed_answer_from_qa_model_is_scored():
    client = client_with(
        FakeResponse(200, [{"answer": "x", "score": 0.4}]),
        FakeResponse(200, [{"generated_text": "Good start."}]),
        max_retries=0,
    )

    with patch.object(huggingface, "get_huggingface_client", return_value=client):
        result = await huggingface.assess_content_quality("What is a closure?", "A function and its scope.")

    assert result["accuracy"] == 40
    assert result["feedback"] == "Good start."
