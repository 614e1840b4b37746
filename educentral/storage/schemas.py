"""
Insert and update schemas for the storage layer.

``*Create`` models carry the fields a caller may set when inserting a row;
ids and server-generated timestamps are left out. ``*Update`` models make
every field optional so they can be used for partial updates via
``model_dump(exclude_unset=True)``.

Request bodies may use either the snake_case field names or their camelCase
aliases (``testId``, ``timeSpent``); dumps always use the field names.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

QuestionType = Literal["mcq", "short_answer", "text", "video_response", "video", "photo_upload", "photo"]
AnswerType = Literal["text", "file", "video", "photo"]
AttemptStatus = Literal["in_progress", "completed", "abandoned"]
UserRole = Literal["student", "educator", "admin"]
QuizLevel = Literal["beginner", "intermediate", "advanced"]
LessonType = Literal["theory", "practice", "challenge"]


class SchemaBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserCreate(SchemaBase):
    username: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    password: str = Field(..., min_length=1, description="Already hashed password")
    role: UserRole = "student"


class TestCreate(SchemaBase):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    subject: str
    duration: int = Field(..., gt=0, description="Duration in minutes")
    difficulty: str
    created_by: Optional[int] = None
    is_published: bool = False


class TestUpdate(SchemaBase):
    title: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0)
    difficulty: Optional[str] = None
    is_published: Optional[bool] = None


class QuestionBody(SchemaBase):
    type: QuestionType
    question: str = Field(..., min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    points: int = Field(1, ge=0)
    time_limit: Optional[int] = Field(None, description="Time limit in seconds")
    ai_criteria: Optional[Dict[str, Any]] = None
    order_index: int = 0


class QuestionCreate(QuestionBody):
    test_id: int


class QuestionUpdate(SchemaBase):
    question: Optional[str] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    time_limit: Optional[int] = None
    ai_criteria: Optional[Dict[str, Any]] = None
    order_index: Optional[int] = None


class TestAttemptCreate(SchemaBase):
    test_id: int
    user_id: int


class TestAttemptUpdate(SchemaBase):
    completed_at: Optional[datetime] = None
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    time_spent: Optional[int] = None
    ai_overall_rating: Optional[int] = Field(None, ge=1, le=10)
    status: Optional[AttemptStatus] = None


class AnswerCreate(SchemaBase):
    attempt_id: int
    question_id: int
    answer_type: AnswerType
    answer_data: Optional[Dict[str, Any]] = None
    score: Optional[float] = None
    max_score: Optional[float] = None
    ai_assessment: Optional[Dict[str, Any]] = None
    time_spent: Optional[int] = None


class AnswerUpdate(SchemaBase):
    score: Optional[float] = None
    max_score: Optional[float] = None
    ai_assessment: Optional[Dict[str, Any]] = None


class LearningModuleCreate(SchemaBase):
    title: str
    description: Optional[str] = None
    category: str
    difficulty: str
    total_lessons: int = 0
    estimated_time: Optional[int] = None
    xp_reward: int = 100
    is_published: bool = False


class LearningModuleUpdate(SchemaBase):
    title: Optional[str] = None
    description: Optional[str] = None
    total_lessons: Optional[int] = None
    estimated_time: Optional[int] = None
    xp_reward: Optional[int] = None
    is_published: Optional[bool] = None


class LessonCreate(SchemaBase):
    module_id: int
    title: str
    content: Optional[str] = None
    lesson_type: LessonType
    order_index: int = 0
    xp_reward: int = 50
    unlock_condition: Optional[Dict[str, Any]] = None


class LessonUpdate(SchemaBase):
    title: Optional[str] = None
    content: Optional[str] = None
    order_index: Optional[int] = None
    xp_reward: Optional[int] = None
    unlock_condition: Optional[Dict[str, Any]] = None


class UserProgressCreate(SchemaBase):
    user_id: int
    module_id: int
    lesson_id: Optional[int] = None
    is_completed: bool = False
    score: Optional[int] = None
    time_spent: Optional[int] = None


class UserProgressUpdate(SchemaBase):
    is_completed: Optional[bool] = None
    score: Optional[int] = None
    time_spent: Optional[int] = None
    completed_at: Optional[datetime] = None


class UserStatsUpdate(SchemaBase):
    total_xp: Optional[int] = Field(None, ge=0)
    level: Optional[int] = Field(None, ge=1)
    streak: Optional[int] = Field(None, ge=0)
    last_active_date: Optional[datetime] = None
    badges: Optional[List[Any]] = None
    achievements: Optional[List[Any]] = None


class TopicCreate(SchemaBase):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True


class QuizCreate(SchemaBase):
    topic_id: int
    title: str
    description: Optional[str] = None
    level: QuizLevel
    total_questions: int = 10
    time_limit: Optional[int] = None
    passing_score: int = Field(70, ge=0, le=100)
    points_per_question: int = Field(10, ge=0)
    is_published: bool = False


class QuizQuestionCreate(SchemaBase):
    quiz_id: int
    question: str
    options: List[str]
    correct_answer: str
    explanation: Optional[str] = None
    difficulty: str = "medium"
    order_index: int = 0


class QuizAttemptCreate(SchemaBase):
    quiz_id: int
    user_id: int
    score: int = Field(..., ge=0, le=100)
    total_questions: int
    correct_answers: int
    time_spent: Optional[int] = None
    answers: Optional[List[Dict[str, Any]]] = None


class BadgeCreate(SchemaBase):
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    requirement: Dict[str, Any]
    points: int = 0
