"""
Assessment Controllers

Tests, their questions, and attempts at them. Multiple-choice answers are
marked locally; text, video and photo answers are graded by the OpenAI
assessment service and stored with the model's feedback.
"""

import base64
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile, status
from pydantic import Field

from educentral.ai import openai_service
from educentral.assessments.scoring import overall_rating, round_half_up
from educentral.common.error_handling import (
    ConflictError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.database.base import utcnow
from educentral.database.models import Question, TestAttempt
from educentral.gamification import service as gamification
from educentral.storage.repository import DatabaseStorage, attempt_percentage, get_storage
from educentral.storage.schemas import (
    AnswerCreate,
    QuestionBody,
    QuestionCreate,
    SchemaBase,
    TestAttemptCreate,
    TestCreate,
)

logger = app_logger.getChild("assessments.controllers")

router = APIRouter()


class AnswerSubmission(SchemaBase):
    question_id: int
    answer_data: Dict[str, Any] = Field(default_factory=dict)
    time_spent: Optional[int] = Field(None, ge=0)


class TextAnswerSubmission(SchemaBase):
    question_id: int
    answer: str = Field(..., min_length=1)
    time_spent: Optional[int] = Field(None, ge=0)


class AttemptCompletion(SchemaBase):
    time_spent: Optional[int] = Field(None, ge=0, description="Seconds spent on the whole test")


async def read_upload(upload: UploadFile, limit_bytes: int) -> bytes:
    """
    Read an uploaded file, refusing anything over ``limit_bytes``.

    Raises:
        ValidationError: If the file is empty
        PayloadTooLargeError: If the file exceeds the limit
    """
    data = await upload.read(limit_bytes + 1)
    if not data:
        raise ValidationError("Uploaded file is empty", details={"filename": upload.filename})
    if len(data) > limit_bytes:
        raise PayloadTooLargeError(limit_bytes, len(data))
    return data


async def open_attempt(storage: DatabaseStorage, attempt_id: int) -> TestAttempt:
    """The attempt, provided it exists and is still in progress."""
    attempt = await storage.get_test_attempt(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt", attempt_id)
    if attempt.status != "in_progress":
        raise ConflictError(f"Attempt is already {attempt.status}", details={"attempt_id": attempt_id})
    return attempt


async def attempt_question(storage: DatabaseStorage, attempt: TestAttempt, question_id: int) -> Question:
    """A question of the test the attempt belongs to."""
    question = await storage.get_question(question_id)
    if question is None:
        raise NotFoundError("Question", question_id)
    if question.test_id != attempt.test_id:
        raise ValidationError(
            "Question does not belong to this test",
            details={"question_id": question_id, "test_id": attempt.test_id}
        )
    return question


# Tests

@router.get("/tests")
async def list_tests(storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    return [test.to_dict() for test in await storage.get_published_tests()]


@router.get("/tests/{test_id}")
async def get_test(test_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    test = await storage.get_test_with_questions(test_id)
    if test is None:
        raise NotFoundError("Test", test_id)
    return test


@router.post("/tests", status_code=status.HTTP_201_CREATED)
async def create_test(test: TestCreate, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    if test.created_by is not None and await storage.get_user(test.created_by) is None:
        raise NotFoundError("User", test.created_by)
    created = await storage.create_test(test)
    logger.info(f"Created test {created.id}: {created.title}")
    return created.to_dict()


@router.post("/tests/{test_id}/questions", status_code=status.HTTP_201_CREATED)
async def add_question(
    test_id: int,
    question: QuestionBody,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    if await storage.get_test(test_id) is None:
        raise NotFoundError("Test", test_id)
    created = await storage.create_question(QuestionCreate(test_id=test_id, **question.model_dump()))
    return created.to_dict()


# Attempts

@router.post("/attempts", status_code=status.HTTP_201_CREATED)
async def start_attempt(attempt: TestAttemptCreate, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    if await storage.get_test(attempt.test_id) is None:
        raise NotFoundError("Test", attempt.test_id)
    if await storage.get_user(attempt.user_id) is None:
        raise NotFoundError("User", attempt.user_id)
    created = await storage.create_test_attempt(attempt)
    logger.info(f"User {attempt.user_id} started attempt {created.id} on test {attempt.test_id}")
    return created.to_dict()


@router.get("/attempts/{attempt_id}")
async def get_attempt(attempt_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    attempt = await storage.get_attempt_with_details(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt", attempt_id)
    return attempt


@router.post("/attempts/{attempt_id}/answers", status_code=status.HTTP_201_CREATED)
async def submit_answer(
    attempt_id: int,
    submission: AnswerSubmission,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Store a multiple-choice or plain answer.

    A multiple-choice answer earns the question's points when
    ``answer_data.answer`` equals the correct answer; anything else scores 0.
    """
    attempt = await open_attempt(storage, attempt_id)
    question = await attempt_question(storage, attempt, submission.question_id)

    points = question.points or 1
    score = 0
    if question.type == "mcq" and submission.answer_data.get("answer") == question.correct_answer:
        score = points

    answer = await storage.create_answer(AnswerCreate(
        attempt_id=attempt_id,
        question_id=question.id,
        answer_type="text",
        answer_data=submission.answer_data,
        score=score,
        max_score=points,
        time_spent=submission.time_spent,
    ))
    return answer.to_dict()


@router.post("/attempts/{attempt_id}/text", status_code=status.HTTP_201_CREATED)
async def submit_text_answer(
    attempt_id: int,
    submission: TextAnswerSubmission,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    attempt = await open_attempt(storage, attempt_id)
    question = await attempt_question(storage, attempt, submission.question_id)

    assessment = await openai_service.assess_text_response(
        submission.answer,
        question.question,
        question.correct_answer,
        question.points or 10,
    )

    answer = await storage.create_answer(AnswerCreate(
        attempt_id=attempt_id,
        question_id=question.id,
        answer_type="text",
        answer_data={"answer": submission.answer},
        score=assessment["score"],
        max_score=assessment["max_score"],
        ai_assessment={
            "feedback": assessment["feedback"],
            "keyPoints": assessment["key_points"],
            "type": "text",
        },
        time_spent=submission.time_spent,
    ))
    return answer.to_dict()


@router.post("/attempts/{attempt_id}/video", status_code=status.HTTP_201_CREATED)
async def submit_video_answer(
    attempt_id: int,
    video: UploadFile = File(...),
    question_id: int = Form(..., alias="questionId"),
    time_spent: Optional[int] = Form(None, alias="timeSpent"),
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Transcribe a recorded answer and grade the transcription.

    Raises:
        PayloadTooLargeError: If the recording exceeds ``MAX_UPLOAD_BYTES``
        AIServiceError: If transcription or grading fails
    """
    attempt = await open_attempt(storage, attempt_id)
    question = await attempt_question(storage, attempt, question_id)
    data = await read_upload(video, get_settings().MAX_UPLOAD_BYTES)

    transcription = await openai_service.transcribe_audio(data, video.filename or "answer.webm")
    assessment = await openai_service.assess_video_response(
        transcription,
        question.question,
        question.points or 10,
    )

    answer = await storage.create_answer(AnswerCreate(
        attempt_id=attempt_id,
        question_id=question.id,
        answer_type="video",
        answer_data={"transcription": transcription, "videoSize": len(data)},
        score=assessment["score"],
        max_score=assessment["max_score"],
        ai_assessment={
            "feedback": assessment["feedback"],
            "criteria": assessment["criteria"],
            "type": "video",
        },
        time_spent=time_spent,
    ))
    return answer.to_dict()


@router.post("/attempts/{attempt_id}/photo", status_code=status.HTTP_201_CREATED)
async def submit_photo_answer(
    attempt_id: int,
    photo: UploadFile = File(...),
    question_id: int = Form(..., alias="questionId"),
    time_spent: Optional[int] = Form(None, alias="timeSpent"),
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    attempt = await open_attempt(storage, attempt_id)
    question = await attempt_question(storage, attempt, question_id)
    data = await read_upload(photo, get_settings().MAX_UPLOAD_BYTES)

    assessment = await openai_service.assess_photo_submission(
        base64.b64encode(data).decode("ascii"),
        question.question,
        question.points or 10,
    )

    answer = await storage.create_answer(AnswerCreate(
        attempt_id=attempt_id,
        question_id=question.id,
        answer_type="photo",
        answer_data={"imageSize": len(data), "mimeType": photo.content_type},
        score=assessment["score"],
        max_score=assessment["max_score"],
        ai_assessment={
            "feedback": assessment["feedback"],
            "criteria": assessment["criteria"],
            "type": "photo",
        },
        time_spent=time_spent,
    ))
    return answer.to_dict()


@router.patch("/attempts/{attempt_id}/complete")
async def complete_attempt(
    attempt_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    completion: Optional[AttemptCompletion] = None,
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    """
    Close an attempt and total its answers.

    The overall AI rating is the summed average criterion ratings divided
    by the number of answers, 7 when no answer was rated. The rounded total
    score is
    credited to the user as XP. Connected admins are told about the
    completion once the response has been sent, after the commit.
    """
    attempt = await open_attempt(storage, attempt_id)
    answers = await storage.get_answers_by_attempt(attempt_id)

    updated = await storage.update_test_attempt(attempt_id, {
        "status": "completed",
        "completed_at": utcnow(),
        "total_score": sum(answer.score or 0 for answer in answers),
        "max_score": sum(answer.max_score or 0 for answer in answers),
        "time_spent": completion.time_spent if completion else None,
        "ai_overall_rating": overall_rating(answer.ai_assessment for answer in answers),
    })

    await gamification.award_xp(storage, attempt.user_id, round_half_up(updated.total_score))

    percentage = round_half_up(attempt_percentage(updated))
    logger.info(f"Attempt {attempt_id} completed with {percentage}%")

    dashboard = request.app.state.components.get("dashboard")
    if dashboard is not None:
        user = await storage.get_user(attempt.user_id)
        test = await storage.get_test(attempt.test_id)
        # The broadcast reads completedToday from its own session
        await storage.session.commit()
        background_tasks.add_task(
            dashboard.record_activity,
            user.username if user else str(attempt.user_id),
            f"Completed test: {test.title if test else attempt.test_id} (Score: {percentage}%)"
        )

    return updated.to_dict()


@router.get("/users/{user_id}/results")
async def get_user_results(user_id: int, storage: DatabaseStorage = Depends(get_storage)) -> List[Dict[str, Any]]:
    """Every attempt of a user with its test and answers, newest first."""
    results = []
    for attempt in await storage.get_attempts_by_user(user_id):
        details = await storage.get_attempt_with_details(attempt.id)
        if details is not None:
            results.append(details)
    return results
