"""
Database models for the EduCentral schema.

Users take tests (made of questions) through attempts that collect answers,
follow learning modules made of lessons, and take topic quizzes that feed
topic progress, badges and the leaderboard.
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text,
    UniqueConstraint,
)

from educentral.database.base import ModelBase, utcnow

QUESTION_TYPES = ("mcq", "short_answer", "text", "video_response", "video", "photo_upload", "photo")
ANSWER_TYPES = ("text", "file", "video", "photo")
ATTEMPT_STATUSES = ("in_progress", "completed", "abandoned")
USER_ROLES = ("student", "educator", "admin")
QUIZ_LEVELS = ("beginner", "intermediate", "advanced")
LESSON_TYPES = ("theory", "practice", "challenge")


class User(ModelBase):
    __tablename__ = "users"
    __private_columns__ = ("password",)

    id = Column(Integer, primary_key=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), unique=True)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")
    created_at = Column(DateTime, default=utcnow)


class Topic(ModelBase):
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(30))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Quiz(ModelBase):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    level = Column(String(20), nullable=False)
    total_questions = Column(Integer, default=10)
    time_limit = Column(Integer)
    passing_score = Column(Integer, default=70)
    points_per_question = Column(Integer, default=10)
    is_published = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)


class Test(ModelBase):
    __tablename__ = "tests"
    __test__ = False

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    subject = Column(String(100), nullable=False)
    duration = Column(Integer, nullable=False)
    difficulty = Column(String(20), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"))
    is_published = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class QuizQuestion(ModelBase):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text)
    difficulty = Column(String(20), default="medium")
    order_index = Column(Integer, nullable=False, default=0)


class Question(ModelBase):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    test_id = Column(Integer, ForeignKey("tests.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    question = Column(Text, nullable=False)
    options = Column(JSON)
    correct_answer = Column(Text)
    points = Column(Integer, default=1)
    time_limit = Column(Integer)
    ai_criteria = Column(JSON)
    order_index = Column(Integer, nullable=False, default=0)


class TestAttempt(ModelBase):
    __tablename__ = "test_attempts"
    __test__ = False

    id = Column(Integer, primary_key=True)
    test_id = Column(Integer, ForeignKey("tests.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    started_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime)
    total_score = Column(Float)
    max_score = Column(Float)
    time_spent = Column(Integer)
    ai_overall_rating = Column(Integer)
    status = Column(String(20), default="in_progress")


class Answer(ModelBase):
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    answer_type = Column(String(20), nullable=False)
    answer_data = Column(JSON)
    score = Column(Float)
    max_score = Column(Float)
    ai_assessment = Column(JSON)
    time_spent = Column(Integer)
    submitted_at = Column(DateTime, default=utcnow)


class LearningModule(ModelBase):
    __tablename__ = "learning_modules"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(50), nullable=False)
    difficulty = Column(String(20), nullable=False)
    total_lessons = Column(Integer, default=0)
    estimated_time = Column(Integer)
    xp_reward = Column(Integer, default=100)
    is_published = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)


class Lesson(ModelBase):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True)
    module_id = Column(Integer, ForeignKey("learning_modules.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text)
    lesson_type = Column(String(20), nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    xp_reward = Column(Integer, default=50)
    unlock_condition = Column(JSON)


class UserProgress(ModelBase):
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("learning_modules.id"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id"))
    is_completed = Column(Boolean, default=False)
    score = Column(Integer)
    time_spent = Column(Integer)
    completed_at = Column(DateTime)


class QuizAttempt(ModelBase):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    time_spent = Column(Integer)
    completed_at = Column(DateTime, default=utcnow)
    answers = Column(JSON)


class TopicProgress(ModelBase):
    __tablename__ = "topic_progress"
    __table_args__ = (UniqueConstraint("user_id", "topic_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False)
    current_level = Column(String(20), default="beginner")
    total_points = Column(Integer, default=0)
    quizzes_completed = Column(Integer, default=0)
    best_score = Column(Integer, default=0)
    last_activity_at = Column(DateTime, default=utcnow)


class Badge(ModelBase):
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(30))
    requirement = Column(JSON)
    points = Column(Integer, default=0)


class UserBadge(ModelBase):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    badge_id = Column(Integer, ForeignKey("badges.id"), nullable=False)
    earned_at = Column(DateTime, default=utcnow)


class LeaderboardEntry(ModelBase):
    __tablename__ = "leaderboard"
    __table_args__ = (UniqueConstraint("user_id", "topic_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    topic_id = Column(Integer, ForeignKey("topics.id"))
    total_points = Column(Integer, default=0)
    rank = Column(Integer)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)


class UserStats(ModelBase):
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    total_xp = Column(Integer, default=0)
    level = Column(Integer, default=1)
    streak = Column(Integer, default=0)
    last_active_date = Column(DateTime)
    badges = Column(JSON, default=list)
    achievements = Column(JSON, default=list)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


__all__ = [
    "User", "Topic", "Quiz", "Test", "QuizQuestion", "Question", "TestAttempt",
    "Answer", "LearningModule", "Lesson", "UserProgress", "QuizAttempt",
    "TopicProgress", "Badge", "UserBadge", "LeaderboardEntry", "UserStats",
    "QUESTION_TYPES", "ANSWER_TYPES", "ATTEMPT_STATUSES", "USER_ROLES",
    "QUIZ_LEVELS", "LESSON_TYPES",
]
