"""
API tests for tests, attempts and AI-graded answers.

OpenAI calls are patched at the service module, so no network is used.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from educentral.app import create_app
from educentral.common.error_handling import AIServiceError

TEXT_ASSESSMENT = {"score": 28, "max_score": 35, "feedback": "Clear comparison", "key_points": ["block scope"]}
VIDEO_ASSESSMENT = {
    "score": 24,
    "max_score": 30,
    "feedback": "Good examples",
    "criteria": {"speech_clarity": 8, "content_accuracy": 8, "use_of_examples": 6, "presentation_quality": 8},
}
PHOTO_ASSESSMENT = {
    "score": 20,
    "max_score": 25,
    "feedback": "Well labelled",
    "criteria": {"diagram_accuracy": 9, "proper_labeling": 9, "clarity": 9, "completeness": 9},
}


def start_attempt(client, test_id=1, user_id=1):
    response = client.post("/api/attempts", json={"testId": test_id, "userId": user_id})
    assert response.status_code == 201
    return response.json()["id"]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_list_published_tests(client):
    response = client.get("/api/tests")

    assert response.status_code == 200
    titles = [test["title"] for test in response.json()]
    assert titles == ["JavaScript Fundamentals Assessment"]


def test_get_test_with_questions(client):
    response = client.get("/api/tests/1")

    assert response.status_code == 200
    questions = response.json()["questions"]
    assert [q["type"] for q in questions] == ["mcq", "video", "photo", "text"]


def test_get_missing_test_returns_envelope(client):
    response = client.get("/api/tests/999")

    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "error"
    assert body["code"] == "not_found_error"
    assert body["message"] == "Test not found"


def test_create_test_and_question(client):
    response = client.post("/api/tests", json={
        "title": "Python Basics",
        "subject": "programming",
        "duration": 20,
        "difficulty": "beginner",
        "createdBy": 1,
        "isPublished": True,
    })
    assert response.status_code == 201
    test_id = response.json()["id"]

    response = client.post(f"/api/tests/{test_id}/questions", json={
        "type": "mcq",
        "question": "Which keyword defines a function?",
        "options": ["def", "fun", "function"],
        "correctAnswer": "def",
        "points": 5,
    })
    assert response.status_code == 201
    assert response.json()["test_id"] == test_id

    assert len(client.get(f"/api/tests/{test_id}").json()["questions"]) == 1


def test_create_test_validation_error(client):
    response = client.post("/api/tests", json={"title": "No subject"})

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["message"] == "Validation error"
    assert body["details"]


def test_create_test_unknown_author(client):
    response = client.post("/api/tests", json={
        "title": "Orphan", "subject": "x", "duration": 10, "difficulty": "easy", "createdBy": 999,
    })
    assert response.status_code == 404


def test_add_question_to_missing_test(client):
    response = client.post("/api/tests/999/questions", json={"type": "text", "question": "Why?"})
    assert response.status_code == 404


def test_start_attempt_requires_existing_test_and_user(client):
    assert client.post("/api/attempts", json={"testId": 999, "userId": 1}).status_code == 404
    assert client.post("/api/attempts", json={"testId": 1, "userId": 999}).status_code == 404


def test_mcq_answer_scoring(client):
    attempt_id = start_attempt(client)

    right = client.post(f"/api/attempts/{attempt_id}/answers", json={
        "questionId": 1, "answerData": {"answer": "var myVar;"}, "timeSpent": 12,
    })
    wrong = client.post(f"/api/attempts/{attempt_id}/answers", json={
        "questionId": 1, "answerData": {"answer": "v myVar;"},
    })

    assert right.status_code == 201
    assert right.json()["score"] == 10
    assert right.json()["max_score"] == 10
    assert wrong.json()["score"] == 0


def test_answer_to_question_of_other_test(client):
    response = client.post("/api/tests", json={
        "title": "Other", "subject": "x", "duration": 10, "difficulty": "easy",
    })
    other_test = response.json()["id"]
    attempt_id = start_attempt(client, test_id=other_test)

    response = client.post(f"/api/attempts/{attempt_id}/answers", json={"questionId": 1, "answerData": {}})

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_answer_to_missing_attempt(client):
    response = client.post("/api/attempts/999/answers", json={"questionId": 1, "answerData": {}})
    assert response.status_code == 404


def test_full_attempt_flow(client):
    """Test grading every answer type, then completing the attempt."""
    attempt_id = start_attempt(client)

    client.post(f"/api/attempts/{attempt_id}/answers", json={
        "questionId": 1, "answerData": {"answer": "var myVar;"},
    })

    with patch("educentral.ai.openai_service.assess_text_response", AsyncMock(return_value=TEXT_ASSESSMENT)) as text:
        response = client.post(f"/api/attempts/{attempt_id}/text", json={
            "questionId": 4, "answer": "let and const are block scoped, var is function scoped",
        })
    assert response.status_code == 201
    assert response.json()["ai_assessment"] == {
        "feedback": "Clear comparison", "keyPoints": ["block scope"], "type": "text",
    }
    assert text.await_args.args[3] == 35

    with patch("educentral.ai.openai_service.transcribe_audio", AsyncMock(return_value="closures keep scope")), \
            patch("educentral.ai.openai_service.assess_video_response", AsyncMock(return_value=VIDEO_ASSESSMENT)):
        response = client.post(
            f"/api/attempts/{attempt_id}/video",
            files={"video": ("answer.webm", b"fake-video-bytes", "video/webm")},
            data={"questionId": "2", "timeSpent": "120"},
        )
    assert response.status_code == 201
    video = response.json()
    assert video["answer_type"] == "video"
    assert video["answer_data"] == {"transcription": "closures keep scope", "videoSize": 16}
    assert video["ai_assessment"]["type"] == "video"

    with patch("educentral.ai.openai_service.assess_photo_submission",
               AsyncMock(return_value=PHOTO_ASSESSMENT)) as photo:
        response = client.post(
            f"/api/attempts/{attempt_id}/photo",
            files={"photo": ("diagram.jpg", b"\xff\xd8\xff", "image/jpeg")},
            data={"questionId": "3"},
        )
    assert response.status_code == 201
    assert response.json()["answer_data"] == {"imageSize": 3, "mimeType": "image/jpeg"}
    assert photo.await_args.args[0] == "/9j/"

    response = client.patch(f"/api/attempts/{attempt_id}/complete", json={"timeSpent": 900})
    assert response.status_code == 200
    completed = response.json()
    assert completed["status"] == "completed"
    assert completed["total_score"] == 82
    assert completed["max_score"] == 100
    assert completed["time_spent"] == 900
    # 7.5 (video) plus 9 (photo) over four answers
    assert completed["ai_overall_rating"] == 4
    assert completed["completed_at"] is not None

    details = client.get(f"/api/attempts/{attempt_id}").json()
    assert len(details["answers"]) == 4
    assert details["test"]["title"] == "JavaScript Fundamentals Assessment"

    # 150 seeded XP plus the rounded total score
    stats = client.get("/api/learning/stats", params={"user_id": 1}).json()
    assert stats["total_xp"] == 232


def test_complete_without_rated_answers_defaults_rating(client):
    attempt_id = start_attempt(client)

    response = client.patch(f"/api/attempts/{attempt_id}/complete")

    assert response.status_code == 200
    assert response.json()["ai_overall_rating"] == 7
    assert response.json()["total_score"] == 0


def test_completed_attempt_rejects_changes(client):
    attempt_id = start_attempt(client)
    client.patch(f"/api/attempts/{attempt_id}/complete")

    answer = client.post(f"/api/attempts/{attempt_id}/answers", json={"questionId": 1, "answerData": {}})
    again = client.patch(f"/api/attempts/{attempt_id}/complete")

    assert answer.status_code == 409
    assert answer.json()["code"] == "conflict_error"
    assert again.status_code == 409


def test_text_answer_requires_content(client):
    attempt_id = start_attempt(client)

    response = client.post(f"/api/attempts/{attempt_id}/text", json={"questionId": 4, "answer": ""})

    assert response.status_code == 422


def test_text_answer_provider_failure(client):
    attempt_id = start_attempt(client)
    failure = AIServiceError("Failed to assess text response: boom", provider="openai")

    with patch("educentral.ai.openai_service.assess_text_response", AsyncMock(side_effect=failure)):
        response = client.post(f"/api/attempts/{attempt_id}/text", json={"questionId": 4, "answer": "anything"})

    assert response.status_code == 502
    assert response.json()["code"] == "ai_service_error"
    assert client.get(f"/api/attempts/{attempt_id}").json()["answers"] == []


def test_empty_upload_rejected(client):
    attempt_id = start_attempt(client)

    response = client.post(
        f"/api/attempts/{attempt_id}/photo",
        files={"photo": ("empty.jpg", b"", "image/jpeg")},
        data={"questionId": "3"},
    )

    assert response.status_code == 400


@pytest.fixture
def small_upload_client(settings):
    app = create_app(settings.model_copy(update={"MAX_UPLOAD_BYTES": 8}))
    with TestClient(app) as test_client:
        yield test_client


def test_oversized_upload_rejected(small_upload_client):
    attempt_id = start_attempt(small_upload_client)

    with patch("educentral.ai.openai_service.transcribe_audio", AsyncMock()) as transcribe:
        response = small_upload_client.post(
            f"/api/attempts/{attempt_id}/video",
            files={"video": ("answer.webm", b"0123456789", "video/webm")},
            data={"questionId": "2"},
        )

    assert response.status_code == 413
    assert response.json()["code"] == "payload_too_large"
    transcribe.assert_not_awaited()


def test_user_results_newest_first(client):
    first = start_attempt(client)
    second = start_attempt(client)
    client.patch(f"/api/attempts/{first}/complete")

    response = client.get("/api/users/1/results")

    assert response.status_code == 200
    ids = [result["id"] for result in response.json()]
    assert ids == [second, first]
    assert all("answers" in result and "test" in result for result in response.json())


def test_results_of_unknown_user_are_empty(client):
    assert client.get("/api/users/999/results").json() == []
