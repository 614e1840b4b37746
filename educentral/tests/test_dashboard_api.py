"""
API tests for the student and admin dashboard views.
"""


def complete_test(client, user_id=1, mcq_answer="var myVar;"):
    attempt_id = client.post("/api/attempts", json={"testId": 1, "userId": user_id}).json()["id"]
    client.post(f"/api/attempts/{attempt_id}/answers", json={"questionId": 1, "answerData": {"answer": mcq_answer}})
    client.patch(f"/api/attempts/{attempt_id}/complete", json={"timeSpent": 3600})
    return attempt_id


def test_user_dashboard(client):
    attempt_id = complete_test(client)

    response = client.get("/api/dashboard/1")

    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["tests_taken"] == 1
    assert body["stats"]["avg_score"] == 100
    assert body["stats"]["total_study_time"] == 1
    assert [a["id"] for a in body["recentAttempts"]] == [attempt_id]
    assert [t["id"] for t in body["availableTests"]] == [1]


def test_user_dashboard_limits_recent_attempts(client):
    for _ in range(6):
        client.post("/api/attempts", json={"testId": 1, "userId": 1})

    body = client.get("/api/dashboard/1").json()

    assert len(body["recentAttempts"]) == 5


def test_dashboards_for_unknown_user(client):
    assert client.get("/api/dashboard/999").status_code == 404
    assert client.get("/api/student-dashboard/999").status_code == 404


def test_dashboard_stats(client):
    complete_test(client)
    complete_test(client, mcq_answer="wrong")
    client.post("/api/attempts", json={"testId": 1, "userId": 1})

    response = client.get("/api/dashboard-stats")

    assert response.status_code == 200
    assert response.json() == {
        "liveUsers": 0,
        "totalStudents": 0,
        "totalAdmins": 0,
        "testsCompletedToday": 2,
        "averageScore": 50,
        "activeTests": 1,
    }


def test_dashboard_stats_include_quizzes(client):
    client.post("/api/quiz/1/submit", json={"answers": {"1": "O(1)"}, "userId": 1})

    stats = client.get("/api/dashboard-stats").json()

    assert stats["testsCompletedToday"] == 1
    assert stats["averageScore"] == 20


def test_student_dashboard(client):
    """Test the seeded user's home page after one test and one quiz."""
    attempt_id = complete_test(client)
    client.post("/api/quiz/1/submit", json={"answers": {"1": "O(1)"}, "userId": 1})

    response = client.get("/api/student-dashboard/1")

    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["testsTaken"] == 1
    assert body["stats"]["averageScore"] == 100
    assert body["stats"]["rank"] == 1
    recent = body["recentTests"][0]
    assert recent["id"] == attempt_id
    assert recent["title"] == "JavaScript Fundamentals Assessment"
    assert recent["score"] == 100
    assert recent["status"] == "completed"
    assert body["upcomingTests"] == []
    assert [a["title"] for a in body["achievements"]] == ["First Steps"]


def test_student_dashboard_upcoming_tests(client):
    body = client.get("/api/student-dashboard/2").json()

    assert body["stats"]["testsTaken"] == 0
    assert body["recentTests"] == []
    assert body["upcomingTests"] == [
        {"id": 1, "title": "JavaScript Fundamentals Assessment", "difficulty": "intermediate"}
    ]
    assert body["achievements"] == []
