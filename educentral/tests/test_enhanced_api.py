"""
API tests for the multi-signal enhanced assessment.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from educentral.app import create_app
from educentral.assessments.enhanced import build_summary

EMOTION = {
    "emotion": "joy",
    "confidence": 0.9,
    "facial_score": 90.0,
    "emotions": [{"label": "joy", "score": 0.9}],
}
SPEECH = {
    "transcript": "closures capture variables",
    "sentiment": "positive",
    "confidence": 0.8,
    "tone_analysis": {"tone": "confident", "confidence": 0.8},
    "speech_quality": {"clarity": 0.9, "pace": "normal", "volume": "normal"},
}
CONTENT = {
    "content_score": 80,
    "accuracy": 70,
    "completeness": 60,
    "relevance": 90,
    "technical_depth": 40,
    "feedback": "Solid answer",
    "suggestions": ["Include examples"],
}


@pytest.fixture
def analyses():
    """Patch the three HuggingFace analyses with fixed results."""
    with patch("educentral.ai.huggingface.analyze_emotion_from_text", AsyncMock(return_value=EMOTION)) as emotion, \
            patch("educentral.ai.huggingface.analyze_speech_quality", AsyncMock(return_value=SPEECH)) as speech, \
            patch("educentral.ai.huggingface.assess_content_quality", AsyncMock(return_value=CONTENT)) as content:
        yield {"emotion": emotion, "speech": speech, "content": content}


def test_analyze_video(client, analyses):
    response = client.post(
        "/api/enhanced-assessment/analyze-video",
        files={"video": ("answer.webm", b"video-bytes", "video/webm")},
        data={
            "transcript": "closures capture variables",
            "question": "Explain closures",
            "duration": "30",
            "facialData": json.dumps({"emotion": "happy", "confidence": 0.95, "facial_score": 85}),
            "questionId": "2",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["question_id"] == 2
    assert 0 <= body["overall_score"] <= 100
    assert body["facial_analysis"] == {"emotion": "happy", "confidence": 0.95, "facial_score": 85}
    assert body["video_metadata"] == {"duration": 30.0, "file_size": 11, "format": "video/webm"}
    assert body["content_analysis"] == CONTENT
    assert "Solid answer" in body["feedback"]
    analyses["speech"].assert_awaited_once_with("closures capture variables", 30.0)
    analyses["content"].assert_awaited_once_with("Explain closures", "closures capture variables")


def test_analyze_video_defaults(client, analyses):
    """Test the default duration, question and facial score."""
    response = client.post(
        "/api/enhanced-assessment/analyze-video",
        files={"video": ("answer.webm", b"video-bytes", "video/webm")},
        data={"transcript": "some words"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["video_metadata"]["duration"] == 60.0
    assert body["facial_analysis"] == {"emotion": "neutral", "confidence": 0.7, "facial_score": 70}
    analyses["content"].assert_awaited_once_with("General assessment", "some words")


def test_analyze_video_requires_video_and_transcript(client, analyses):
    no_video = client.post("/api/enhanced-assessment/analyze-video", data={"transcript": "words"})
    no_transcript = client.post(
        "/api/enhanced-assessment/analyze-video",
        files={"video": ("answer.webm", b"video-bytes", "video/webm")},
    )

    assert no_video.status_code == 400
    assert no_transcript.status_code == 400
    analyses["emotion"].assert_not_awaited()


def test_analyze_video_rejects_bad_facial_data(client, analyses):
    response = client.post(
        "/api/enhanced-assessment/analyze-video",
        files={"video": ("answer.webm", b"video-bytes", "video/webm")},
        data={"transcript": "words", "facialData": "[1, 2]"},
    )

    assert response.status_code == 400


@pytest.fixture
def small_video_client(settings):
    app = create_app(settings.model_copy(update={"MAX_VIDEO_UPLOAD_BYTES": 8}))
    with TestClient(app) as test_client:
        yield test_client


def test_analyze_video_rejects_oversized_video(small_video_client, analyses):
    response = small_video_client.post(
        "/api/enhanced-assessment/analyze-video",
        files={"video": ("answer.webm", b"0123456789", "video/webm")},
        data={"transcript": "closures capture variables"},
    )

    assert response.status_code == 413
    assert response.json()["code"] == "payload_too_large"
    analyses["emotion"].assert_not_awaited()


def test_single_analyses(client, analyses):
    emotion = client.post("/api/enhanced-assessment/analyze-emotion", json={"text": "I love this"})
    speech = client.post("/api/enhanced-assessment/analyze-speech", json={"transcript": "hello there"})
    content = client.post("/api/enhanced-assessment/assess-content", json={
        "question": "What is a closure?", "answer": "A function with its scope", "expectedAnswer": "function scope",
    })

    assert emotion.json() == EMOTION
    assert speech.json() == SPEECH
    assert content.json() == CONTENT
    analyses["speech"].assert_awaited_once_with("hello there", 60.0)
    analyses["content"].assert_awaited_once_with("What is a closure?", "A function with its scope", "function scope")


@pytest.mark.parametrize("path, body", [
    ("/api/enhanced-assessment/analyze-emotion", {}),
    ("/api/enhanced-assessment/analyze-speech", {"duration": 10}),
    ("/api/enhanced-assessment/assess-content", {"question": "Only a question"}),
])
def test_single_analyses_require_input(client, analyses, path, body):
    response = client.post(path, json=body)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_summary_of_missing_attempt(client):
    assert client.get("/api/enhanced-assessment/summary/999").status_code == 404


def test_summary_of_new_attempt(client):
    attempt_id = client.post("/api/attempts", json={"testId": 1, "userId": 1}).json()["id"]

    response = client.get(f"/api/enhanced-assessment/summary/{attempt_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["attempt_id"] == attempt_id
    assert body["status"] == "in_progress"
    assert body["overall_performance"]["content_score"] == 0
    assert body["overall_performance"]["delivery_score"] is None
    assert body["question_breakdown"] == []


def test_build_summary_from_answers():
    """Test strengths, weaknesses and scores derived from stored answers."""
    attempt = {
        "id": 5,
        "status": "completed",
        "total_score": 34,
        "max_score": 40,
        "ai_overall_rating": 7,
        "answers": [
            {
                "question_id": 1,
                "score": 10,
                "max_score": 10,
                "ai_assessment": None,
                "question": {"type": "mcq"},
            },
            {
                "question_id": 2,
                "score": 24,
                "max_score": 30,
                "ai_assessment": {
                    "feedback": "Speak up",
                    "criteria": {"speech_clarity": 4, "content_accuracy": 9, "use_of_examples": 9, "presentation_quality": 6},
                    "type": "video",
                },
                "question": {"type": "video"},
            },
        ],
    }

    summary = build_summary(attempt)

    performance = summary["overall_performance"]
    assert performance["total_score"] == 85
    assert performance["content_score"] == 90
    assert performance["delivery_score"] == 70
    assert performance["ai_overall_rating"] == 7
    assert summary["detailed_analysis"]["strengths"] == ["content accuracy", "use of examples"]
    assert summary["detailed_analysis"]["areas_for_improvement"] == ["speech clarity"]
    assert summary["recommendations"] == ["Work on your speech clarity"]
    assert [q["question_type"] for q in summary["question_breakdown"]] == ["mcq", "video"]
    assert summary["question_breakdown"][1]["feedback"] == "Speak up"
