"""
Score aggregation for multi-signal assessments.

Four independently computed sub-scores (content quality, emotional
confidence, speech clarity and facial confidence, each on a 0-100 scale)
are combined into one overall score with fixed weights.
"""

import math
from typing import Any, Dict, Iterable, List, Optional

CONTENT_WEIGHT = 0.50
EMOTION_WEIGHT = 0.15
SPEECH_WEIGHT = 0.20
FACIAL_WEIGHT = 0.15

SCORE_WEIGHTS = {
    "content": CONTENT_WEIGHT,
    "emotion": EMOTION_WEIGHT,
    "speech": SPEECH_WEIGHT,
    "facial": FACIAL_WEIGHT,
}

MIN_SCORE = 0
MAX_SCORE = 100

# Used when no facial analysis accompanies a video response
DEFAULT_FACIAL_SCORE = 70

FEEDBACK_BANDS = (
    (90, "Exceptional performance! "),
    (80, "Strong performance with room for minor improvements. "),
    (70, "Good foundation with several areas for development. "),
)
LOW_BAND_FEEDBACK = "Significant room for improvement. "


def clamp_score(value: Any) -> float:
    """
    Coerce a sub-score into the 0-100 range.

    Non-numeric and non-finite values count as 0.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return float(MIN_SCORE)
    if math.isnan(number):
        return float(MIN_SCORE)
    return min(max(number, MIN_SCORE), MAX_SCORE)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (77.5 -> 78)."""
    # Float weighting leaves noise like 77.49999999999999
    return int(math.floor(round(value, 9) + 0.5))


def aggregate_scores(content: float, emotion: float, speech: float, facial: float) -> int:
    """
    Weighted overall score.

    Args:
        content: Content quality score
        emotion: Emotional confidence score
        speech: Speech clarity score
        facial: Facial confidence score

    Returns:
        Integer score in [0, 100]
    """
    weighted = (
        clamp_score(content) * CONTENT_WEIGHT
        + clamp_score(emotion) * EMOTION_WEIGHT
        + clamp_score(speech) * SPEECH_WEIGHT
        + clamp_score(facial) * FACIAL_WEIGHT
    )
    return int(min(max(round_half_up(weighted), MIN_SCORE), MAX_SCORE))


def calculate_enhanced_score(
    emotion_analysis: Dict[str, Any],
    speech_analysis: Dict[str, Any],
    content_assessment: Dict[str, Any],
    facial_score: Optional[float] = None,
) -> int:
    """
    Overall score from the raw analysis results of a video response.

    Emotion confidence and speech clarity are 0-1 values and are scaled to
    percentages before weighting.
    """
    emotion_score = float(emotion_analysis.get("confidence", 0) or 0) * 100
    speech_quality = speech_analysis.get("speech_quality") or {}
    speech_score = float(speech_quality.get("clarity", 0) or 0) * 100
    content_score = content_assessment.get("content_score", 0)
    if facial_score is None:
        facial_score = DEFAULT_FACIAL_SCORE
    return aggregate_scores(content_score, emotion_score, speech_score, facial_score)


def generate_enhanced_feedback(
    overall_score: int,
    emotion_analysis: Dict[str, Any],
    speech_analysis: Dict[str, Any],
    content_assessment: Dict[str, Any],
) -> str:
    """Readable multi-paragraph feedback for an analysed video response."""
    feedback = f"Overall Performance: {overall_score}/100\n\n"
    for threshold, text in FEEDBACK_BANDS:
        if overall_score >= threshold:
            feedback += text
            break
    else:
        feedback += LOW_BAND_FEEDBACK

    emotion = emotion_analysis.get("emotion", "neutral")
    confidence = float(emotion_analysis.get("confidence", 0) or 0)
    tone = (speech_analysis.get("tone_analysis") or {}).get("tone", "neutral")
    clarity = float((speech_analysis.get("speech_quality") or {}).get("clarity", 0) or 0)

    feedback += f"\n\nContent Quality: {content_assessment.get('feedback', '')}\n"
    feedback += f"Emotional Presentation: You appeared {emotion} with {round_half_up(confidence * 100)}% confidence.\n"
    feedback += f"Speech Delivery: Your tone was {tone} with {round_half_up(clarity * 100)}% clarity.\n"

    suggestions: List[str] = list(content_assessment.get("suggestions") or [])
    if suggestions:
        feedback += "\nKey Suggestions:\n" + "\n".join(f"• {s}" for s in suggestions)

    return feedback


def average_criteria_rating(criteria: Optional[Dict[str, Any]]) -> Optional[float]:
    """Mean of the numeric criterion ratings, or None when there are none."""
    if not criteria:
        return None
    ratings = [float(v) for v in criteria.values() if isinstance(v, (int, float)) and not isinstance(v, bool)]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def overall_rating(assessments: Iterable[Optional[Dict[str, Any]]], default: int = 7) -> int:
    """
    Attempt-level 1-10 rating from the stored AI assessments of its answers.

    The average criterion rating of each rated answer is summed and divided
    by the number of answers, so unrated answers (multiple choice, text)
    pull the rating down. Falls back to ``default`` when nothing was rated.
    """
    assessments = list(assessments)
    total = 0.0
    for assessment in assessments:
        if not assessment:
            continue
        average = average_criteria_rating(assessment.get("criteria"))
        if average is not None:
            total += average
    if not total:
        return default
    return int(min(max(round_half_up(total / max(len(assessments), 1)), 1), 10))
