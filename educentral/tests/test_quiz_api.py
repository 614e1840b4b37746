"""
API tests for quiz topics, submissions, progress and leaderboards.
"""

CORRECT_ANSWERS = {
    "1": "O(1)",
    "2": "Insert at beginning",
    "3": "10",
    "4": "length()",
    "5": "Throws an exception",
}


def submit(client, answers, user_id=1, quiz_id=1):
    return client.post(f"/api/quiz/{quiz_id}/submit", json={
        "answers": answers, "userId": user_id, "timeSpent": 240,
    })


def test_list_topics(client):
    response = client.get("/api/quiz/topics")

    assert response.status_code == 200
    assert [topic["name"] for topic in response.json()] == ["DSA", "Java", "Python"]


def test_get_topic(client):
    assert client.get("/api/quiz/topics/2").json()["name"] == "Java"
    assert client.get("/api/quiz/topics/99").status_code == 404


def test_topic_quizzes_ordered_by_level(client):
    response = client.get("/api/quiz/topics/1/quizzes")

    assert response.status_code == 200
    levels = [quiz["level"] for quiz in response.json()]
    assert levels == ["beginner", "intermediate", "advanced"]


def test_get_quiz_and_questions(client):
    quiz = client.get("/api/quiz/1").json()
    questions = client.get("/api/quiz/1/questions").json()

    assert quiz["title"] == "Arrays and Strings Basics"
    assert [q["id"] for q in questions] == [1, 2, 3, 4, 5]
    assert client.get("/api/quiz/99").status_code == 404


def test_submit_perfect_quiz(client):
    """Test a passing submission, its rewards and the stored attempt."""
    response = submit(client, CORRECT_ANSWERS)

    assert response.status_code == 200
    result = response.json()
    assert result["score"] == 100
    assert result["correctAnswers"] == 5
    assert result["totalQuestions"] == 5
    assert result["totalPoints"] == 100
    assert result["passed"] is True
    assert result["xpAwarded"] == 100
    assert sorted(badge["name"] for badge in result["newBadges"]) == ["DSA Master", "First Steps"]

    attempt = client.get(f"/api/quiz/attempts/{result['attemptId']}").json()
    assert attempt["score"] == 100
    assert attempt["time_spent"] == 240
    assert all(detail["isCorrect"] for detail in attempt["answers"])


def test_submit_partial_quiz(client):
    answers = {"1": "O(1)", "2": "Insert at beginning", "3": "9"}

    result = submit(client, answers).json()

    assert result["score"] == 40
    assert result["correctAnswers"] == 2
    assert result["totalPoints"] == 40
    assert result["passed"] is False
    assert [badge["name"] for badge in result["newBadges"]] == ["First Steps"]


def test_submit_rounds_score(client):
    result = submit(client, {"1": "O(1)"}).json()
    assert result["score"] == 20


def test_submit_quiz_without_questions(client):
    response = submit(client, {}, quiz_id=2)

    assert response.status_code == 404


def test_submit_unknown_user(client):
    assert submit(client, CORRECT_ANSWERS, user_id=999).status_code == 404


def test_submit_requires_user(client):
    response = client.post("/api/quiz/1/submit", json={"answers": CORRECT_ANSWERS})
    assert response.status_code == 422


def test_badges_are_not_repeated(client):
    submit(client, CORRECT_ANSWERS)

    second = submit(client, CORRECT_ANSWERS).json()

    assert second["newBadges"] == []


def test_user_progress_defaults_to_demo_user(client):
    submit(client, CORRECT_ANSWERS)
    submit(client, {"1": "O(1)"})

    response = client.get("/api/quiz/user-progress")

    assert response.status_code == 200
    progress = response.json()
    assert progress["totalQuizzes"] == 9
    assert progress["completedQuizzes"] == 1
    assert progress["totalPoints"] == 120
    assert progress["averageScore"] == 60
    assert progress["rank"] == 1
    assert progress["badges"] == ["First Steps", "DSA Master"]


def test_user_progress_unknown_user(client):
    assert client.get("/api/quiz/user-progress", params={"user_id": 999}).status_code == 404


def test_leaderboard(client):
    submit(client, {"1": "O(1)"}, user_id=2)
    submit(client, CORRECT_ANSWERS, user_id=1)

    entries = client.get("/api/quiz/leaderboard/1").json()

    assert [(e["user_id"], e["total_points"], e["rank"]) for e in entries] == [(1, 100, 1), (2, 20, 2)]
    assert len(client.get("/api/quiz/leaderboard/1", params={"limit": 1}).json()) == 1
    assert client.get("/api/quiz/leaderboard/2").json() == []
