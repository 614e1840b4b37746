"""
Storage Module

``DatabaseStorage`` is the data-access façade used by every route handler.
It wraps one ``AsyncSession`` and exposes CRUD operations per entity plus
the aggregate queries behind the dashboards (user stats, rank, today's
activity).

Conventions:
- ``get_*`` returns the ORM row or ``None`` when it does not exist
- ``update_*`` returns the updated row or ``None`` when it does not exist
- ``*_with_*`` views return plain dictionaries ready for JSON encoding
- writes are flushed, the caller's session scope commits
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from fastapi import Depends
from pydantic import BaseModel
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from educentral.assessments.scoring import round_half_up
from educentral.common.logger import app_logger
from educentral.database.base import ModelBase, utcnow
from educentral.database.init_db import get_session
from educentral.database.models import (
    Answer, Badge, LeaderboardEntry, LearningModule, Lesson, Question, Quiz,
    QuizAttempt, QuizQuestion, Test, TestAttempt, Topic, TopicProgress, User,
    UserBadge, UserProgress, UserStats,
)
from educentral.storage.schemas import (
    AnswerCreate, BadgeCreate, LearningModuleCreate, LessonCreate, QuestionCreate,
    QuizAttemptCreate, QuizCreate, QuizQuestionCreate, TestAttemptCreate,
    TestCreate, TopicCreate, UserCreate, UserProgressCreate,
)

logger = app_logger.getChild("storage")

M = TypeVar("M", bound=ModelBase)
Values = Union[BaseModel, Dict[str, Any]]

SECONDS_PER_HOUR = 3600
LEVEL_ORDER = {"beginner": 0, "intermediate": 1, "advanced": 2}


def _as_dict(values: Values, partial: bool = True) -> Dict[str, Any]:
    if isinstance(values, BaseModel):
        return values.model_dump(exclude_unset=partial)
    return dict(values)


def attempt_percentage(attempt: TestAttempt) -> float:
    """Score of a completed attempt as a percentage of its maximum."""
    if not attempt.max_score:
        return 0.0
    return (attempt.total_score or 0) / attempt.max_score * 100


class DatabaseStorage:
    """
    Data-access façade over a single async session.

    Args:
        session: Session whose transaction all operations share
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # Generic helpers

    async def _get(self, model: Type[M], entity_id: int) -> Optional[M]:
        return await self.session.get(model, entity_id)

    async def _create(self, model: Type[M], values: Values) -> M:
        entity = model.from_dict(_as_dict(values, partial=False))
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def _update(self, model: Type[M], entity_id: int, values: Values) -> Optional[M]:
        entity = await self._get(model, entity_id)
        if entity is None:
            return None
        entity.update(_as_dict(values))
        await self.session.flush()
        return entity

    async def _all(self, statement) -> List[Any]:
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def create_user(self, user: UserCreate) -> User:
        return await self._create(User, user)

    async def count_users(self) -> int:
        return await self.session.scalar(select(func.count(User.id))) or 0

    # Tests

    async def get_test(self, test_id: int) -> Optional[Test]:
        return await self._get(Test, test_id)

    async def get_test_with_questions(self, test_id: int) -> Optional[Dict[str, Any]]:
        test = await self.get_test(test_id)
        if test is None:
            return None
        questions = await self.get_questions_by_test(test_id)
        return {**test.to_dict(), "questions": [q.to_dict() for q in questions]}

    async def get_published_tests(self) -> List[Test]:
        return await self._all(
            select(Test)
            .where(Test.is_published.is_(True))
            .order_by(Test.created_at.desc(), Test.id.desc())
        )

    async def create_test(self, test: TestCreate) -> Test:
        return await self._create(Test, test)

    async def update_test(self, test_id: int, values: Values) -> Optional[Test]:
        return await self._update(Test, test_id, values)

    # Questions

    async def get_question(self, question_id: int) -> Optional[Question]:
        return await self._get(Question, question_id)

    async def get_questions_by_test(self, test_id: int) -> List[Question]:
        return await self._all(
            select(Question)
            .where(Question.test_id == test_id)
            .order_by(Question.order_index, Question.id)
        )

    async def create_question(self, question: QuestionCreate) -> Question:
        return await self._create(Question, question)

    async def update_question(self, question_id: int, values: Values) -> Optional[Question]:
        return await self._update(Question, question_id, values)

    # Test attempts

    async def get_test_attempt(self, attempt_id: int) -> Optional[TestAttempt]:
        return await self._get(TestAttempt, attempt_id)

    async def get_attempts_by_user(self, user_id: int) -> List[TestAttempt]:
        return await self._all(
            select(TestAttempt)
            .where(TestAttempt.user_id == user_id)
            .order_by(TestAttempt.started_at.desc(), TestAttempt.id.desc())
        )

    async def get_attempt_with_details(self, attempt_id: int) -> Optional[Dict[str, Any]]:
        """
        Attempt joined with its test and its answers.

        Each answer carries the question it responds to under ``question``.
        """
        attempt = await self.get_test_attempt(attempt_id)
        if attempt is None:
            return None

        test = await self.get_test(attempt.test_id)
        result = await self.session.execute(
            select(Answer, Question)
            .join(Question, Answer.question_id == Question.id)
            .where(Answer.attempt_id == attempt_id)
            .order_by(Answer.id)
        )
        answers = [
            {**answer.to_dict(), "question": question.to_dict()}
            for answer, question in result.all()
        ]
        return {
            **attempt.to_dict(),
            "test": test.to_dict() if test else None,
            "answers": answers,
        }

    async def create_test_attempt(self, attempt: TestAttemptCreate) -> TestAttempt:
        return await self._create(TestAttempt, attempt)

    async def update_test_attempt(self, attempt_id: int, values: Values) -> Optional[TestAttempt]:
        return await self._update(TestAttempt, attempt_id, values)

    # Answers

    async def get_answer(self, answer_id: int) -> Optional[Answer]:
        return await self._get(Answer, answer_id)

    async def get_answers_by_attempt(self, attempt_id: int) -> List[Answer]:
        return await self._all(
            select(Answer).where(Answer.attempt_id == attempt_id).order_by(Answer.id)
        )

    async def create_answer(self, answer: AnswerCreate) -> Answer:
        return await self._create(Answer, answer)

    async def update_answer(self, answer_id: int, values: Values) -> Optional[Answer]:
        return await self._update(Answer, answer_id, values)

    # Aggregates

    async def get_user_stats(self, user_id: int) -> Dict[str, int]:
        """
        Summary of a user's completed test attempts.

        Returns:
            Dict with ``tests_taken``, ``avg_score`` (rounded mean percentage),
            ``total_study_time`` (whole hours) and ``rank``
        """
        attempts = await self._all(
            select(TestAttempt).where(
                TestAttempt.user_id == user_id,
                TestAttempt.status == "completed",
            )
        )
        tests_taken = len(attempts)
        total_seconds = sum(a.time_spent or 0 for a in attempts)
        avg_score = 0
        if tests_taken:
            avg_score = round_half_up(sum(attempt_percentage(a) for a in attempts) / tests_taken)

        return {
            "tests_taken": tests_taken,
            "avg_score": avg_score,
            "total_study_time": total_seconds // SECONDS_PER_HOUR,
            "rank": await self.get_user_rank(user_id),
        }

    async def get_user_rank(self, user_id: int) -> int:
        """
        One plus the number of users with strictly more XP.

        Users without a stats row count as having zero XP.
        """
        stats = await self.get_user_game_stats(user_id)
        xp = stats.total_xp if stats and stats.total_xp else 0
        ahead = await self.session.scalar(
            select(func.count(UserStats.id)).where(UserStats.total_xp > xp)
        )
        return 1 + (ahead or 0)

    async def count_attempts_completed_since(self, since: datetime) -> int:
        """Completed test attempts plus quiz attempts finished at or after ``since``."""
        tests = await self.session.scalar(
            select(func.count(TestAttempt.id)).where(
                TestAttempt.status == "completed",
                TestAttempt.completed_at >= since,
            )
        )
        quizzes = await self.session.scalar(
            select(func.count(QuizAttempt.id)).where(QuizAttempt.completed_at >= since)
        )
        return (tests or 0) + (quizzes or 0)

    async def average_completed_score_since(self, since: datetime) -> int:
        """Rounded mean percentage over tests and quizzes finished since ``since``."""
        attempts = await self._all(
            select(TestAttempt).where(
                TestAttempt.status == "completed",
                TestAttempt.completed_at >= since,
            )
        )
        quiz_scores = (await self.session.execute(
            select(QuizAttempt.score).where(QuizAttempt.completed_at >= since)
        )).scalars().all()

        scores = [attempt_percentage(a) for a in attempts] + [float(s) for s in quiz_scores]
        if not scores:
            return 0
        return round_half_up(sum(scores) / len(scores))

    async def count_active_attempts(self) -> int:
        return await self.session.scalar(
            select(func.count(TestAttempt.id)).where(TestAttempt.status == "in_progress")
        ) or 0

    # Learning modules and lessons

    async def get_learning_module(self, module_id: int) -> Optional[LearningModule]:
        return await self._get(LearningModule, module_id)

    async def get_module_with_lessons(self, module_id: int) -> Optional[Dict[str, Any]]:
        module = await self.get_learning_module(module_id)
        if module is None:
            return None
        lessons = await self.get_lessons_by_module(module_id)
        return {**module.to_dict(), "lessons": [lesson.to_dict() for lesson in lessons]}

    async def get_published_modules(self) -> List[LearningModule]:
        return await self._all(
            select(LearningModule)
            .where(LearningModule.is_published.is_(True))
            .order_by(LearningModule.id)
        )

    async def create_learning_module(self, module: LearningModuleCreate) -> LearningModule:
        return await self._create(LearningModule, module)

    async def update_learning_module(self, module_id: int, values: Values) -> Optional[LearningModule]:
        return await self._update(LearningModule, module_id, values)

    async def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        return await self._get(Lesson, lesson_id)

    async def get_lessons_by_module(self, module_id: int) -> List[Lesson]:
        return await self._all(
            select(Lesson).where(Lesson.module_id == module_id).order_by(Lesson.order_index, Lesson.id)
        )

    async def create_lesson(self, lesson: LessonCreate) -> Lesson:
        return await self._create(Lesson, lesson)

    async def update_lesson(self, lesson_id: int, values: Values) -> Optional[Lesson]:
        return await self._update(Lesson, lesson_id, values)

    # Lesson progress

    async def get_user_progress(self, user_id: int, lesson_id: int) -> Optional[UserProgress]:
        result = await self.session.execute(
            select(UserProgress).where(
                UserProgress.user_id == user_id,
                UserProgress.lesson_id == lesson_id,
            )
        )
        return result.scalars().first()

    async def get_user_module_progress(self, user_id: int, module_id: int) -> List[UserProgress]:
        return await self._all(
            select(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.module_id == module_id)
            .order_by(UserProgress.id)
        )

    async def create_user_progress(self, progress: UserProgressCreate) -> UserProgress:
        values = _as_dict(progress, partial=False)
        if values.get("is_completed"):
            values["completed_at"] = utcnow()
        return await self._create(UserProgress, values)

    async def update_user_progress(self, progress_id: int, values: Values) -> Optional[UserProgress]:
        return await self._update(UserProgress, progress_id, values)

    # Gamification stats

    async def get_user_game_stats(self, user_id: int) -> Optional[UserStats]:
        result = await self.session.execute(select(UserStats).where(UserStats.user_id == user_id))
        return result.scalar_one_or_none()

    async def create_or_update_user_stats(self, user_id: int, values: Values) -> UserStats:
        stats = await self.get_user_game_stats(user_id)
        values = _as_dict(values)
        if stats is None:
            values.setdefault("badges", [])
            values.setdefault("achievements", [])
            return await self._create(UserStats, {**values, "user_id": user_id})
        stats.update(values)
        await self.session.flush()
        return stats

    async def add_xp_to_user(self, user_id: int, xp: int, xp_per_level: int = 1000) -> Optional[UserStats]:
        """
        Add XP and recompute the level as ``total_xp // xp_per_level + 1``.

        Returns:
            Updated stats, or None when the user has no stats row
        """
        stats = await self.get_user_game_stats(user_id)
        if stats is None:
            return None
        total_xp = (stats.total_xp or 0) + xp
        return await self.create_or_update_user_stats(user_id, {
            "total_xp": total_xp,
            "level": total_xp // xp_per_level + 1,
        })

    async def update_user_streak(self, user_id: int, now: Optional[datetime] = None) -> Optional[UserStats]:
        """
        Advance the daily activity streak.

        Activity the day after the last active date extends the streak, a gap
        of more than one day restarts it at 1, and repeated activity on the
        same day leaves it unchanged.

        Returns:
            Updated stats, or None when the user has no stats row
        """
        stats = await self.get_user_game_stats(user_id)
        if stats is None:
            return None

        now = now or utcnow()
        streak = stats.streak or 0
        if stats.last_active_date is None:
            streak = 1
        else:
            gap_days = (now.date() - stats.last_active_date.date()).days
            if gap_days == 1:
                streak += 1
            elif gap_days > 1:
                streak = 1
            else:
                streak = max(streak, 1)

        return await self.create_or_update_user_stats(user_id, {
            "streak": streak,
            "last_active_date": now,
        })

    # Topics and quizzes

    async def get_active_topics(self) -> List[Topic]:
        return await self._all(select(Topic).where(Topic.is_active.is_(True)).order_by(Topic.id))

    async def get_topic(self, topic_id: int) -> Optional[Topic]:
        return await self._get(Topic, topic_id)

    async def get_topic_by_name(self, name: str) -> Optional[Topic]:
        result = await self.session.execute(select(Topic).where(Topic.name == name))
        return result.scalars().first()

    async def create_topic(self, topic: TopicCreate) -> Topic:
        return await self._create(Topic, topic)

    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        return await self._get(Quiz, quiz_id)

    async def get_published_quizzes_by_topic(self, topic_id: int) -> List[Quiz]:
        """Published quizzes of a topic, beginner first, then by id."""
        level_rank = case(LEVEL_ORDER, value=Quiz.level, else_=len(LEVEL_ORDER))
        return await self._all(
            select(Quiz)
            .where(Quiz.topic_id == topic_id, Quiz.is_published.is_(True))
            .order_by(level_rank, Quiz.id)
        )

    async def count_published_quizzes(self) -> int:
        return await self.session.scalar(
            select(func.count(Quiz.id)).where(Quiz.is_published.is_(True))
        ) or 0

    async def create_quiz(self, quiz: QuizCreate) -> Quiz:
        return await self._create(Quiz, quiz)

    async def get_quiz_questions(self, quiz_id: int) -> List[QuizQuestion]:
        return await self._all(
            select(QuizQuestion)
            .where(QuizQuestion.quiz_id == quiz_id)
            .order_by(QuizQuestion.order_index, QuizQuestion.id)
        )

    async def create_quiz_question(self, question: QuizQuestionCreate) -> QuizQuestion:
        return await self._create(QuizQuestion, question)

    async def get_quiz_attempt(self, attempt_id: int) -> Optional[QuizAttempt]:
        return await self._get(QuizAttempt, attempt_id)

    async def get_quiz_attempts_by_user(self, user_id: int) -> List[QuizAttempt]:
        return await self._all(
            select(QuizAttempt)
            .where(QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id.desc())
        )

    async def create_quiz_attempt(self, attempt: QuizAttemptCreate) -> QuizAttempt:
        return await self._create(QuizAttempt, attempt)

    # Topic progress

    async def get_topic_progress(self, user_id: int, topic_id: int) -> Optional[TopicProgress]:
        result = await self.session.execute(
            select(TopicProgress).where(
                TopicProgress.user_id == user_id,
                TopicProgress.topic_id == topic_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_topic_progress_by_user(self, user_id: int) -> List[TopicProgress]:
        return await self._all(
            select(TopicProgress).where(TopicProgress.user_id == user_id).order_by(TopicProgress.topic_id)
        )

    async def save_topic_progress(self, user_id: int, topic_id: int, values: Values) -> TopicProgress:
        progress = await self.get_topic_progress(user_id, topic_id)
        values = {**_as_dict(values), "last_activity_at": utcnow()}
        if progress is None:
            return await self._create(TopicProgress, {**values, "user_id": user_id, "topic_id": topic_id})
        progress.update(values)
        await self.session.flush()
        return progress

    # Badges

    async def get_badges(self) -> List[Badge]:
        return await self._all(select(Badge).order_by(Badge.id))

    async def create_badge(self, badge: BadgeCreate) -> Badge:
        return await self._create(Badge, badge)

    async def get_user_badges(self, user_id: int) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(UserBadge, Badge)
            .join(Badge, UserBadge.badge_id == Badge.id)
            .where(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at, UserBadge.id)
        )
        return [
            {**badge.to_dict(), "earned_at": user_badge.earned_at}
            for user_badge, badge in result.all()
        ]

    async def get_earned_badge_ids(self, user_id: int) -> Sequence[int]:
        result = await self.session.execute(
            select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
        )
        return result.scalars().all()

    async def award_badge(self, user_id: int, badge_id: int) -> UserBadge:
        return await self._create(UserBadge, {"user_id": user_id, "badge_id": badge_id})

    # Leaderboard

    async def get_leaderboard_entry(self, user_id: int, topic_id: Optional[int]) -> Optional[LeaderboardEntry]:
        result = await self.session.execute(
            select(LeaderboardEntry).where(
                LeaderboardEntry.user_id == user_id,
                LeaderboardEntry.topic_id == topic_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_leaderboard_points(self, user_id: int, topic_id: int, points: int) -> LeaderboardEntry:
        """Add points to a user's topic entry and re-rank the topic."""
        entry = await self.get_leaderboard_entry(user_id, topic_id)
        if entry is None:
            entry = await self._create(LeaderboardEntry, {
                "user_id": user_id, "topic_id": topic_id, "total_points": points,
            })
        else:
            entry.total_points = (entry.total_points or 0) + points
            entry.last_updated = utcnow()
            await self.session.flush()

        await self.refresh_leaderboard_ranks(topic_id)
        return entry

    async def refresh_leaderboard_ranks(self, topic_id: int) -> None:
        entries = await self.get_leaderboard(topic_id)
        for position, entry in enumerate(entries, start=1):
            entry.rank = position
        await self.session.flush()

    async def get_leaderboard(self, topic_id: int, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        statement = (
            select(LeaderboardEntry)
            .where(LeaderboardEntry.topic_id == topic_id)
            .order_by(LeaderboardEntry.total_points.desc(), LeaderboardEntry.last_updated, LeaderboardEntry.id)
        )
        if limit:
            statement = statement.limit(limit)
        return await self._all(statement)


async def get_storage(session: AsyncSession = Depends(get_session)) -> DatabaseStorage:
    """FastAPI dependency that wraps the request session in a ``DatabaseStorage``."""
    return DatabaseStorage(session)
