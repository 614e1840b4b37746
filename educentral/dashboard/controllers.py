"""
Dashboard Controllers

Aggregated views for the student home page and the admin dashboard. Live
user counts come from the WebSocket registry, everything else from the
database.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from educentral.assessments.scoring import round_half_up
from educentral.common.error_handling import NotFoundError
from educentral.common.logger import app_logger
from educentral.realtime.dashboard import DashboardBroadcaster, start_of_today
from educentral.storage.repository import DatabaseStorage, attempt_percentage, get_storage

logger = app_logger.getChild("dashboard.controllers")

router = APIRouter()

RECENT_ATTEMPTS_LIMIT = 5
AVAILABLE_TESTS_LIMIT = 10
UPCOMING_TESTS_LIMIT = 5


def get_dashboard_component(request: Request) -> Optional[DashboardBroadcaster]:
    return request.app.state.components.get("dashboard")


@router.get("/dashboard/{user_id}")
async def get_user_dashboard(user_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    """Stats, latest attempts and published tests for a user's home page."""
    if await storage.get_user(user_id) is None:
        raise NotFoundError("User", user_id)

    attempts = await storage.get_attempts_by_user(user_id)
    tests = await storage.get_published_tests()
    return {
        "stats": await storage.get_user_stats(user_id),
        "recentAttempts": [attempt.to_dict() for attempt in attempts[:RECENT_ATTEMPTS_LIMIT]],
        "availableTests": [test.to_dict() for test in tests[:AVAILABLE_TESTS_LIMIT]],
    }


@router.get("/dashboard-stats")
async def get_dashboard_stats(
    dashboard: Optional[DashboardBroadcaster] = Depends(get_dashboard_component),
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Admin dashboard counters.

    ``liveUsers``, ``totalStudents`` and ``totalAdmins`` count authenticated
    sockets; the remaining counters cover attempts finished since midnight
    UTC and attempts still in progress.
    """
    live_users = dashboard.get_connected_users() if dashboard is not None else []
    since = start_of_today()
    return {
        "liveUsers": len(live_users),
        "totalStudents": sum(1 for user in live_users if user.role == "student"),
        "totalAdmins": sum(1 for user in live_users if user.is_admin),
        "testsCompletedToday": await storage.count_attempts_completed_since(since),
        "averageScore": await storage.average_completed_score_since(since),
        "activeTests": await storage.count_active_attempts(),
    }


@router.get("/student-dashboard/{user_id}")
async def get_student_dashboard(user_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    if await storage.get_user(user_id) is None:
        raise NotFoundError("User", user_id)

    stats = await storage.get_user_stats(user_id)
    attempts = await storage.get_attempts_by_user(user_id)
    completed = [attempt for attempt in attempts if attempt.status == "completed"]

    recent_tests: List[Dict[str, Any]] = []
    for attempt in completed[:RECENT_ATTEMPTS_LIMIT]:
        test = await storage.get_test(attempt.test_id)
        recent_tests.append({
            "id": attempt.id,
            "testId": attempt.test_id,
            "title": test.title if test else None,
            "score": round_half_up(attempt_percentage(attempt)),
            "date": attempt.completed_at,
            "status": attempt.status,
        })

    attempted = {attempt.test_id for attempt in attempts}
    upcoming = [test for test in await storage.get_published_tests() if test.id not in attempted]

    return {
        "stats": {
            "testsTaken": stats["tests_taken"],
            "averageScore": stats["avg_score"],
            "totalTimeSpent": stats["total_study_time"],
            "rank": stats["rank"],
        },
        "recentTests": recent_tests,
        "upcomingTests": [
            {"id": test.id, "title": test.title, "difficulty": test.difficulty}
            for test in upcoming[:UPCOMING_TESTS_LIMIT]
        ],
        "achievements": [
            {
                "id": badge["id"],
                "title": badge["name"],
                "icon": badge["icon"],
                "earnedDate": badge["earned_at"],
            }
            for badge in await storage.get_user_badges(user_id)
        ],
    }
