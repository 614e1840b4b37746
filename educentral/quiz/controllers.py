"""
Quiz Controllers

Routes under ``/api/quiz``. Static paths are declared before ``/{quiz_id}``
so they are matched first.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from educentral.assessments.scoring import round_half_up
from educentral.common.error_handling import NotFoundError
from educentral.common.logger import app_logger
from educentral.gamification import service as gamification
from educentral.storage.repository import DatabaseStorage, get_storage
from educentral.storage.schemas import QuizAttemptCreate, SchemaBase

logger = app_logger.getChild("quiz.controllers")

router = APIRouter(prefix="/quiz")


class QuizSubmission(SchemaBase):
    """Answers to a quiz keyed by quiz question id."""

    answers: Dict[str, str] = Field(default_factory=dict, description="Question id to chosen option")
    user_id: int = Field(..., description="User submitting the quiz")
    time_spent: Optional[int] = Field(None, ge=0, description="Seconds spent on the quiz")


def score_quiz(questions, answers: Dict[str, str]) -> Dict[str, Any]:
    """
    Mark each question against the submitted answers.

    Returns:
        Dict with ``correct_answers``, ``score`` (rounded percentage) and the
        per-question ``details``
    """
    correct = 0
    details = []
    for question in questions:
        user_answer = answers.get(str(question.id), "")
        is_correct = user_answer == question.correct_answer
        if is_correct:
            correct += 1
        details.append({
            "questionId": question.id,
            "question": question.question,
            "userAnswer": user_answer,
            "correctAnswer": question.correct_answer,
            "isCorrect": is_correct,
            "explanation": question.explanation,
        })

    return {
        "correct_answers": correct,
        "score": round_half_up(correct / len(questions) * 100),
        "details": details,
    }


@router.get("/topics")
async def list_topics(storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    return [topic.to_dict() for topic in await storage.get_active_topics()]


@router.get("/topics/{topic_id}")
async def get_topic(topic_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    topic = await storage.get_topic(topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic.to_dict()


@router.get("/topics/{topic_id}/quizzes")
async def list_topic_quizzes(topic_id: int, storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    """Published quizzes of a topic, beginner level first."""
    return [quiz.to_dict() for quiz in await storage.get_published_quizzes_by_topic(topic_id)]


@router.get("/user-progress")
async def get_user_progress(
    user_id: Optional[int] = None,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    user_id = await gamification.resolve_user_id(storage, user_id)
    return await gamification.quiz_progress_summary(storage, user_id)


@router.get("/leaderboard/{topic_id}")
async def get_leaderboard(
    topic_id: int,
    limit: int = 10,
    storage: DatabaseStorage = Depends(get_storage)
) -> List[Dict[str, Any]]:
    """Top entries of a topic leaderboard, best first."""
    entries = await storage.get_leaderboard(topic_id, limit)
    return [entry.to_dict() for entry in entries]


@router.get("/attempts/{attempt_id}")
async def get_quiz_attempt(attempt_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    attempt = await storage.get_quiz_attempt(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt", attempt_id)
    return attempt.to_dict()


@router.get("/{quiz_id}")
async def get_quiz(quiz_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    quiz = await storage.get_quiz(quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)
    return quiz.to_dict()


@router.get("/{quiz_id}/questions")
async def list_quiz_questions(quiz_id: int, storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    return [question.to_dict() for question in await storage.get_quiz_questions(quiz_id)]


@router.post("/{quiz_id}/submit")
async def submit_quiz(
    quiz_id: int,
    submission: QuizSubmission,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Score a quiz, store the attempt and apply its rewards.

    Raises:
        NotFoundError: If the quiz is missing or has no questions, or the
            user does not exist
    """
    quiz = await storage.get_quiz(quiz_id)
    questions = await storage.get_quiz_questions(quiz_id) if quiz else []
    if quiz is None or not questions:
        raise NotFoundError("Quiz", quiz_id)
    if await storage.get_user(submission.user_id) is None:
        raise NotFoundError("User", submission.user_id)

    result = score_quiz(questions, submission.answers)
    total_points = result["correct_answers"] * (quiz.points_per_question or 0)
    passed = result["score"] >= (quiz.passing_score or 0)

    attempt = await storage.create_quiz_attempt(QuizAttemptCreate(
        quiz_id=quiz_id,
        user_id=submission.user_id,
        score=result["score"],
        total_questions=len(questions),
        correct_answers=result["correct_answers"],
        time_spent=submission.time_spent or 0,
        answers=result["details"],
    ))

    rewards = await gamification.record_quiz_result(
        storage, quiz, submission.user_id, result["score"], total_points, passed
    )
    logger.info(
        f"User {submission.user_id} scored {result['score']}% on quiz {quiz_id} "
        f"({result['correct_answers']}/{len(questions)})"
    )

    return {
        "attemptId": attempt.id,
        "score": result["score"],
        "correctAnswers": result["correct_answers"],
        "totalQuestions": len(questions),
        "totalPoints": total_points,
        "passed": passed,
        "newBadges": rewards["new_badges"],
        "xpAwarded": rewards["xp_awarded"],
    }
