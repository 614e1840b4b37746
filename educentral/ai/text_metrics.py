"""
Lexical heuristics used alongside the hosted models.

All functions are pure and work on lower-cased whitespace-separated words.
"""

from typing import List

from educentral.assessments.scoring import round_half_up

TECHNICAL_TERMS = (
    "algorithm", "complexity", "implementation", "optimization", "data structure",
    "function", "method", "class", "object", "variable", "loop", "condition",
    "database", "query", "server", "client", "api", "framework", "library",
)
TECHNICAL_TERMS_FOR_FULL_DEPTH = 5

COMPLETE_ANSWER_LENGTH = 100
SHORT_ANSWER_LENGTH = 50
MAX_SUGGESTIONS = 3

SLOW_WPM = 120
FAST_WPM = 180
DEFAULT_DURATION_SECONDS = 60.0

CLEAR_SPEECH_LENGTH = 50
CLEAR_SPEECH = 0.8
UNCLEAR_SPEECH = 0.6

RELEVANCE_WEIGHT = 0.3
COMPLETENESS_WEIGHT = 0.3
ACCURACY_WEIGHT = 0.4


def _words(text: str) -> List[str]:
    return text.lower().split()


def relevance_score(question: str, answer: str) -> float:
    """
    Share of the question's keywords (words longer than three letters) that
    the answer mentions, in [0, 1].
    """
    keywords = [w for w in _words(question) if len(w) > 3]
    if not keywords:
        return 0.0
    answer_words = _words(answer)
    matches = sum(
        1 for keyword in keywords
        if any(keyword in word or word in keyword for word in answer_words)
    )
    return min(matches / len(keywords), 1.0)


def completeness_score(answer: str) -> float:
    return min(len(answer) / COMPLETE_ANSWER_LENGTH, 1.0)


def jaccard_similarity(first: str, second: str) -> float:
    """Word-set Jaccard similarity of two texts."""
    a, b = set(_words(first)), set(_words(second))
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def technical_depth(answer: str) -> float:
    """Density of technical vocabulary, saturating at five matching words."""
    count = sum(
        1 for word in _words(answer)
        if any(term in word for term in TECHNICAL_TERMS)
    )
    return min(count / TECHNICAL_TERMS_FOR_FULL_DEPTH, 1.0)


def content_score(relevance: float, completeness: float, accuracy: float) -> int:
    return round_half_up(
        (relevance * RELEVANCE_WEIGHT + completeness * COMPLETENESS_WEIGHT + accuracy * ACCURACY_WEIGHT) * 100
    )


def generate_suggestions(score: int, answer: str) -> List[str]:
    """Up to three improvement hints for a content score and its answer."""
    if score < 60:
        suggestions = [
            "Provide more detailed explanations",
            "Include specific examples or use cases",
            "Address all parts of the question",
        ]
    elif score < 80:
        suggestions = [
            "Add more technical depth to your answer",
            "Include relevant examples",
            "Improve the structure and flow",
        ]
    else:
        suggestions = [
            "Excellent answer! Consider adding edge cases",
            "Great work on clarity and completeness",
        ]

    if len(answer) < SHORT_ANSWER_LENGTH:
        suggestions.append("Expand your answer with more details")

    if "example" not in answer and "for instance" not in answer:
        suggestions.append("Include practical examples to illustrate your points")

    return suggestions[:MAX_SUGGESTIONS]


def words_per_minute(transcript: str, duration_seconds: float) -> int:
    if not duration_seconds or duration_seconds <= 0:
        duration_seconds = DEFAULT_DURATION_SECONDS
    return round(len(transcript.split()) / duration_seconds * 60)


def speech_pace(wpm: int) -> str:
    if wpm < SLOW_WPM:
        return "slow"
    if wpm > FAST_WPM:
        return "fast"
    return "normal"


def speech_clarity(transcript: str) -> float:
    return CLEAR_SPEECH if len(transcript) > CLEAR_SPEECH_LENGTH else UNCLEAR_SPEECH


def tone_from_sentiment(sentiment: str) -> str:
    sentiment = sentiment.lower()
    if sentiment == "positive":
        return "confident"
    if sentiment == "negative":
        return "uncertain"
    return "neutral"
