"""
Enhanced Assessment Controllers

Multi-signal analysis of spoken answers. A recorded answer's transcript is
run through the HuggingFace emotion, sentiment and content models and the
results are combined into one weighted score with readable feedback.
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from educentral.ai import huggingface
from educentral.assessments.controllers import read_upload
from educentral.assessments.scoring import (
    DEFAULT_FACIAL_SCORE,
    average_criteria_rating,
    calculate_enhanced_score,
    generate_enhanced_feedback,
    round_half_up,
)
from educentral.common.error_handling import NotFoundError, ValidationError
from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.realtime.manager import now_iso
from educentral.storage.repository import DatabaseStorage, get_storage
from educentral.storage.schemas import SchemaBase

logger = app_logger.getChild("assessments.enhanced")

router = APIRouter(prefix="/enhanced-assessment")

DEFAULT_DURATION = 60.0
DEFAULT_QUESTION = "General assessment"
DEFAULT_FACIAL_CONFIDENCE = 0.7

STRONG_CRITERION = 8
WEAK_CRITERION = 5


class EmotionRequest(SchemaBase):
    text: Optional[str] = None


class SpeechRequest(SchemaBase):
    transcript: Optional[str] = None
    duration: Optional[float] = None


class ContentRequest(SchemaBase):
    question: Optional[str] = None
    answer: Optional[str] = None
    expected_answer: Optional[str] = None


def effective_duration(duration: Optional[float]) -> float:
    return duration if duration and duration > 0 else DEFAULT_DURATION


def parse_facial_data(raw: Optional[str]) -> Dict[str, Any]:
    """
    Decode the client's facial analysis form field.

    Raises:
        ValidationError: If the field is not a JSON object
    """
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("facialData must be valid JSON", cause=e)
    if not isinstance(data, dict):
        raise ValidationError("facialData must be a JSON object")
    return data


@router.post("/analyze-video")
async def analyze_video(
    video: Optional[UploadFile] = File(None),
    transcript: Optional[str] = Form(None),
    question: str = Form(DEFAULT_QUESTION),
    duration: Optional[float] = Form(None),
    facial_data: Optional[str] = Form(None, alias="facialData"),
    question_id: Optional[int] = Form(None, alias="questionId"),
) -> Dict[str, Any]:
    """
    Full analysis of a recorded answer.

    Emotion, speech and content are analysed from ``transcript``; the facial
    score is taken from the client-side ``facialData`` when supplied.
    """
    if video is None or not transcript:
        raise ValidationError("Video file and transcript are required")

    data = await read_upload(video, get_settings().MAX_VIDEO_UPLOAD_BYTES)
    facial = parse_facial_data(facial_data)
    seconds = effective_duration(duration)

    emotion_analysis = await huggingface.analyze_emotion_from_text(transcript)
    speech_analysis = await huggingface.analyze_speech_quality(transcript, seconds)
    content_assessment = await huggingface.assess_content_quality(question, transcript)

    facial_score = facial.get("facial_score") or DEFAULT_FACIAL_SCORE
    overall = calculate_enhanced_score(emotion_analysis, speech_analysis, content_assessment, facial_score)
    logger.info(f"Analysed video answer for question {question_id}: {overall}/100")

    return {
        "question_id": question_id,
        "overall_score": overall,
        "content_analysis": content_assessment,
        "emotion_analysis": emotion_analysis,
        "speech_analysis": speech_analysis,
        "facial_analysis": {
            "emotion": facial.get("emotion") or "neutral",
            "confidence": facial.get("confidence") or DEFAULT_FACIAL_CONFIDENCE,
            "facial_score": facial_score,
        },
        "video_metadata": {
            "duration": seconds,
            "file_size": len(data),
            "format": video.content_type,
        },
        "assessment_timestamp": now_iso(),
        "feedback": generate_enhanced_feedback(overall, emotion_analysis, speech_analysis, content_assessment),
    }


@router.post("/analyze-emotion")
async def analyze_emotion(request: EmotionRequest) -> Dict[str, Any]:
    if not request.text:
        raise ValidationError("Text is required for emotion analysis")
    return await huggingface.analyze_emotion_from_text(request.text)


@router.post("/analyze-speech")
async def analyze_speech(request: SpeechRequest) -> Dict[str, Any]:
    if not request.transcript:
        raise ValidationError("Transcript is required")
    return await huggingface.analyze_speech_quality(request.transcript, effective_duration(request.duration))


@router.post("/assess-content")
async def assess_content(request: ContentRequest) -> Dict[str, Any]:
    if not request.question or not request.answer:
        raise ValidationError("Question and answer are required")
    return await huggingface.assess_content_quality(request.question, request.answer, request.expected_answer)


def _percentage(answer: Dict[str, Any]) -> Optional[float]:
    if not answer.get("max_score"):
        return None
    return (answer.get("score") or 0) / answer["max_score"] * 100


def _criterion_label(name: str) -> str:
    return name.replace("_", " ")


def build_summary(attempt: Dict[str, Any]) -> Dict[str, Any]:
    """
    Performance summary of an attempt from its stored answers.

    Answers graded with criteria (video and photo) feed the delivery score
    and the strengths and weaknesses; every scored answer feeds the content
    score.
    """
    answers: List[Dict[str, Any]] = attempt.get("answers") or []

    percentages = [p for p in (_percentage(a) for a in answers) if p is not None]
    content_score = round_half_up(sum(percentages) / len(percentages)) if percentages else 0

    criteria_totals: Dict[str, List[float]] = {}
    delivery_ratings = []
    for answer in answers:
        criteria = (answer.get("ai_assessment") or {}).get("criteria")
        average = average_criteria_rating(criteria)
        if average is None:
            continue
        delivery_ratings.append(average)
        for name, rating in criteria.items():
            if isinstance(rating, (int, float)):
                criteria_totals.setdefault(name, []).append(float(rating))

    criteria_averages = {name: sum(values) / len(values) for name, values in criteria_totals.items()}
    strengths = [_criterion_label(n) for n, v in criteria_averages.items() if v >= STRONG_CRITERION]
    weaknesses = [_criterion_label(n) for n, v in criteria_averages.items() if v <= WEAK_CRITERION]

    delivery_score = None
    if delivery_ratings:
        delivery_score = round_half_up(sum(delivery_ratings) / len(delivery_ratings) * 10)

    total_score = content_score
    if attempt.get("max_score"):
        total_score = round_half_up((attempt.get("total_score") or 0) / attempt["max_score"] * 100)

    return {
        "attempt_id": attempt["id"],
        "status": attempt.get("status"),
        "overall_performance": {
            "total_score": total_score,
            "content_score": content_score,
            "delivery_score": delivery_score,
            "ai_overall_rating": attempt.get("ai_overall_rating"),
        },
        "detailed_analysis": {
            "strengths": strengths,
            "areas_for_improvement": weaknesses,
        },
        "question_breakdown": [
            {
                "question_id": answer["question_id"],
                "question_type": (answer.get("question") or {}).get("type"),
                "score": answer.get("score"),
                "max_score": answer.get("max_score"),
                "feedback": (answer.get("ai_assessment") or {}).get("feedback"),
            }
            for answer in answers
        ],
        "recommendations": [f"Work on your {weakness}" for weakness in weaknesses],
        "generated_at": now_iso(),
    }


@router.get("/summary/{attempt_id}")
async def get_summary(attempt_id: int, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    attempt = await storage.get_attempt_with_details(attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt", attempt_id)
    return build_summary(attempt)
