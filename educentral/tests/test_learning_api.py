"""
API tests for learning modules, lessons and lesson progress.
"""


def test_list_modules(client):
    response = client.get("/api/learning/modules")

    assert response.status_code == 200
    assert [module["category"] for module in response.json()] == ["dsa", "algorithms"]


def test_module_with_lessons(client):
    module = client.get("/api/learning/modules/1").json()

    assert [lesson["order_index"] for lesson in module["lessons"]] == [1, 2, 3]
    assert module["lessons"][1]["unlock_condition"] == {"prerequisite": 1}
    assert client.get("/api/learning/modules/2").json()["lessons"] == []


def test_missing_module_and_lesson(client):
    assert client.get("/api/learning/modules/99").status_code == 404
    assert client.get("/api/learning/lessons/99").status_code == 404


def test_get_lesson(client):
    lesson = client.get("/api/learning/lessons/1").json()

    assert lesson["title"] == "Introduction to Arrays"
    assert lesson["xp_reward"] == 50


def test_stats_default_to_demo_user(client):
    stats = client.get("/api/learning/stats").json()

    assert stats["user_id"] == 1
    assert stats["total_xp"] == 150
    assert stats["streak"] == 3


def test_stats_created_for_new_user(client):
    stats = client.get("/api/learning/stats", params={"user_id": 2}).json()

    assert stats["total_xp"] == 0
    assert stats["level"] == 1
    assert stats["streak"] == 0


def test_completing_lesson_awards_xp(client):
    response = client.post("/api/learning/progress", json={
        "userId": 1, "moduleId": 1, "lessonId": 2, "isCompleted": True, "timeSpent": 600,
    })

    assert response.status_code == 200
    assert response.json()["completed_at"] is not None
    stats = client.get("/api/learning/stats").json()
    assert stats["total_xp"] == 225


def test_incomplete_progress_awards_nothing(client):
    response = client.post("/api/learning/progress", json={"userId": 1, "moduleId": 1, "lessonId": 1})

    assert response.json()["is_completed"] is False
    assert client.get("/api/learning/stats").json()["total_xp"] == 150


def test_progress_for_unknown_entities(client):
    assert client.post("/api/learning/progress", json={"userId": 99, "moduleId": 1}).status_code == 404
    assert client.post("/api/learning/progress", json={"userId": 1, "moduleId": 99}).status_code == 404
    assert client.post("/api/learning/progress", json={
        "userId": 1, "moduleId": 1, "lessonId": 99,
    }).status_code == 404


def test_module_progress(client):
    client.post("/api/learning/progress", json={"userId": 1, "moduleId": 1, "lessonId": 1, "isCompleted": True})
    client.post("/api/learning/progress", json={"userId": 1, "moduleId": 1, "lessonId": 2})

    progress = client.get("/api/learning/progress/1/1").json()

    assert [entry["lesson_id"] for entry in progress] == [1, 2]
    assert client.get("/api/learning/progress/2/1").json() == []
