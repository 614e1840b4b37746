"""
Gamification Service

XP, levels and daily streaks for every user, plus the quiz side of the
reward loop: topic progress, per-topic leaderboards and badges whose
requirements are stored as JSON on the badge row.

Requirement shapes:
- ``{"type": "quiz_count", "value": n}``: n quizzes taken
- ``{"type": "high_score_count", "value": n, "threshold": t}``: n quizzes scored >= t
- ``{"type": "streak", "value": n}``: a daily streak of n
- ``{"type": "topic_mastery", "topic": name, "threshold": t}``: best score >= t in the topic
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from educentral.assessments.scoring import round_half_up
from educentral.common.error_handling import NotFoundError
from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.database.models import Badge, Quiz, UserStats
from educentral.storage.repository import LEVEL_ORDER, DatabaseStorage

logger = app_logger.getChild("gamification")

XP_PER_LEVEL = 1000


def level_for_xp(total_xp: int) -> int:
    return total_xp // XP_PER_LEVEL + 1


async def ensure_user_stats(storage: DatabaseStorage, user_id: int) -> UserStats:
    """Return the user's stats row, creating a zeroed one when missing."""
    stats = await storage.get_user_game_stats(user_id)
    if stats is None:
        stats = await storage.create_or_update_user_stats(user_id, {
            "total_xp": 0,
            "level": 1,
            "streak": 0,
            "badges": [],
            "achievements": [],
        })
    return stats


async def award_xp(
    storage: DatabaseStorage,
    user_id: int,
    xp: int,
    now: Optional[datetime] = None,
) -> UserStats:
    """
    Credit XP for an activity and advance the daily streak.

    Args:
        storage: Storage bound to the current transaction
        user_id: User receiving the XP
        xp: Amount to add, negative values count as zero
        now: Activity time, defaults to the current UTC time

    Returns:
        The updated stats row
    """
    await ensure_user_stats(storage, user_id)
    await storage.add_xp_to_user(user_id, max(int(xp), 0), XP_PER_LEVEL)
    stats = await storage.update_user_streak(user_id, now)
    logger.debug(f"Awarded {xp} XP to user {user_id}, streak {stats.streak}")
    return stats


async def _requirement_met(
    storage: DatabaseStorage,
    user_id: int,
    requirement: Dict[str, Any],
    quiz_scores: List[int],
    stats: UserStats,
) -> bool:
    kind = requirement.get("type")
    target = requirement.get("value", 1)

    if kind == "quiz_count":
        return len(quiz_scores) >= target
    if kind == "high_score_count":
        threshold = requirement.get("threshold", 90)
        return sum(1 for score in quiz_scores if score >= threshold) >= target
    if kind == "streak":
        return (stats.streak or 0) >= target
    if kind == "topic_mastery":
        topic = await storage.get_topic_by_name(requirement.get("topic", ""))
        if topic is None:
            return False
        progress = await storage.get_topic_progress(user_id, topic.id)
        return progress is not None and (progress.best_score or 0) >= requirement.get("threshold", 80)

    logger.warning(f"Unknown badge requirement type: {kind}")
    return False


async def evaluate_badges(storage: DatabaseStorage, user_id: int) -> List[Badge]:
    """
    Award every badge whose requirement the user now meets.

    Badge points are credited as XP and badge names are appended to the
    user's stats.

    Returns:
        Badges earned by this call
    """
    earned_ids = set(await storage.get_earned_badge_ids(user_id))
    candidates = [badge for badge in await storage.get_badges() if badge.id not in earned_ids]
    if not candidates:
        return []

    quiz_scores = [attempt.score for attempt in await storage.get_quiz_attempts_by_user(user_id)]
    stats = await ensure_user_stats(storage, user_id)

    new_badges = []
    for badge in candidates:
        if await _requirement_met(storage, user_id, badge.requirement or {}, quiz_scores, stats):
            await storage.award_badge(user_id, badge.id)
            new_badges.append(badge)

    if new_badges:
        bonus = sum(badge.points or 0 for badge in new_badges)
        total_xp = (stats.total_xp or 0) + bonus
        await storage.create_or_update_user_stats(user_id, {
            "total_xp": total_xp,
            "level": level_for_xp(total_xp),
            # Reassign so the JSON column is flagged dirty
            "badges": list(stats.badges or []) + [badge.name for badge in new_badges],
        })
        logger.info(f"User {user_id} earned badges: {[badge.name for badge in new_badges]}")

    return new_badges


async def record_quiz_result(
    storage: DatabaseStorage,
    quiz: Quiz,
    user_id: int,
    score: int,
    points: int,
    passed: bool,
) -> Dict[str, Any]:
    """
    Apply the rewards of a submitted quiz.

    Updates topic progress (passing a harder level raises ``current_level``),
    adds the points to the topic leaderboard and to the user's XP, then
    checks badges.

    Returns:
        Dict with ``xp_awarded``, ``topic_progress`` and ``new_badges``
    """
    progress = await storage.get_topic_progress(user_id, quiz.topic_id)
    current_level = progress.current_level if progress else "beginner"
    if passed and LEVEL_ORDER.get(quiz.level, 0) > LEVEL_ORDER.get(current_level, 0):
        current_level = quiz.level

    progress = await storage.save_topic_progress(user_id, quiz.topic_id, {
        "current_level": current_level,
        "total_points": (progress.total_points or 0) + points if progress else points,
        "quizzes_completed": (progress.quizzes_completed or 0) + 1 if progress else 1,
        "best_score": max(progress.best_score or 0, score) if progress else score,
    })

    await storage.add_leaderboard_points(user_id, quiz.topic_id, points)
    await award_xp(storage, user_id, points)
    new_badges = await evaluate_badges(storage, user_id)

    return {
        "xp_awarded": points,
        "topic_progress": progress.to_dict(),
        "new_badges": [badge.to_dict() for badge in new_badges],
    }


async def quiz_progress_summary(storage: DatabaseStorage, user_id: int) -> Dict[str, Any]:
    """Totals across every topic for the quiz landing page."""
    attempts = await storage.get_quiz_attempts_by_user(user_id)
    topic_progress = await storage.get_topic_progress_by_user(user_id)
    badges = await storage.get_user_badges(user_id)

    average = round_half_up(sum(a.score for a in attempts) / len(attempts)) if attempts else 0
    return {
        "totalQuizzes": await storage.count_published_quizzes(),
        "completedQuizzes": len({a.quiz_id for a in attempts}),
        "totalPoints": sum(p.total_points or 0 for p in topic_progress),
        "averageScore": average,
        "rank": await storage.get_user_rank(user_id),
        "badges": [badge["name"] for badge in badges],
    }


async def resolve_user_id(storage: DatabaseStorage, user_id: Optional[int] = None) -> int:
    """
    The requested user, or the configured demo user when none is given.

    Raises:
        NotFoundError: If the user does not exist
    """
    if user_id is not None:
        if await storage.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        return user_id

    username = get_settings().DEMO_USERNAME
    user = await storage.get_user_by_username(username)
    if user is None:
        raise NotFoundError("Demo user", username)
    return user.id
