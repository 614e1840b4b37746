"""
OpenAI Assessment Service

Grades open-ended answers with the OpenAI API:
- video responses (from their Whisper transcription)
- photo submissions (vision model on the base64 image)
- text responses
- tutor chat completions

Every assessment asks the model for a JSON object, then clamps the numbers
it returns into the ranges the rest of the service relies on.
"""

import json
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, AsyncOpenAI, InternalServerError, OpenAIError

from educentral.common.error_handling import AIServiceError, ErrorCode, retry
from educentral.common.logger import app_logger, log_execution_time
from educentral.config import get_settings

logger = app_logger.getChild("ai.openai")

PROVIDER = "openai"

SYSTEM_PROMPT = "You are an expert educational assessor. Respond only with valid JSON."
NO_FEEDBACK = "No feedback available"

MIN_CRITERION = 1
MAX_CRITERION = 10
DEFAULT_CRITERION = 5

VIDEO_CRITERIA = ("speech_clarity", "content_accuracy", "use_of_examples", "presentation_quality")
PHOTO_CRITERIA = ("diagram_accuracy", "proper_labeling", "clarity", "completeness")

TUTOR_SYSTEM_PROMPT = """You are an expert AI programming tutor for EduCentral, specializing in:
- Data Structures and Algorithms (DSA)
- Programming languages (Python, Java, JavaScript)
- Software engineering concepts
- System design principles
- Code optimization and best practices

Your teaching style:
- Be encouraging and supportive
- Provide clear, step-by-step explanations
- Use examples and analogies when helpful
- Ask follow-up questions to gauge understanding
- Suggest practice problems when appropriate
- Keep responses concise but thorough
- Always focus on helping students learn and improve

If asked about non-programming topics, politely redirect to programming education."""

TUTOR_HISTORY_TURNS = 5
TUTOR_MAX_TOKENS = 500
TUTOR_TEMPERATURE = 0.7
TUTOR_FALLBACK_REPLY = "I'm sorry, I couldn't generate a response. Please try again."

_client: Optional[AsyncOpenAI] = None
_client_key: Optional[str] = None


def get_openai_client() -> AsyncOpenAI:
    """
    Get the shared OpenAI client, rebuilding it when the API key changes.

    Raises:
        AIServiceError: If no API key is configured
    """
    global _client, _client_key

    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        raise AIServiceError(
            "OpenAI API key not configured. Please add your OPENAI_API_KEY to the environment variables.",
            provider=PROVIDER,
            code=ErrorCode.AI_NOT_CONFIGURED,
            status_code=500,
        )

    if _client is None or _client_key != settings.OPENAI_API_KEY:
        # Transient failures are retried by @retry below
        _client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.AI_TIMEOUT,
            max_retries=0,
        )
        _client_key = settings.OPENAI_API_KEY
    return _client


def clamp(value: Any, low: float, high: float, default: float) -> float:
    """Clamp a model-supplied number, using ``default`` for missing or zero values."""
    try:
        number = float(value) if value else default
    except (TypeError, ValueError):
        number = default
    return min(high, max(low, number))


def _criteria(result: Dict[str, Any], names) -> Dict[str, float]:
    return {
        name: clamp(result.get(name), MIN_CRITERION, MAX_CRITERION, DEFAULT_CRITERION)
        for name in names
    }


@retry(max_retries=2, retry_delay=0.5, retry_exceptions=(APIConnectionError, InternalServerError))
async def _create_json_completion(content: Any) -> Dict[str, Any]:
    settings = get_settings()
    response = await get_openai_client().chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        response_format={"type": "json_object"},
    )
    return json.loads(response.choices[0].message.content or "{}")


def _provider_failure(action: str, error: Exception) -> AIServiceError:
    logger.error(f"Failed to {action}: {error}")
    return AIServiceError(f"Failed to {action}: {error}", provider=PROVIDER, cause=error)


@log_execution_time(logger)
async def assess_video_response(transcription: str, question: str, max_score: float = 10) -> Dict[str, Any]:
    """
    Grade a spoken answer from its transcription.

    Args:
        transcription: Text of the recorded answer
        question: Question being answered
        max_score: Points available for the question

    Returns:
        Dict with ``score``, ``max_score``, ``feedback`` and the four
        presentation ``criteria`` rated 1-10

    Raises:
        AIServiceError: If the provider call or its JSON fails
    """
    prompt = f"""
    You are an expert educational assessor. Evaluate this student's video response to the given question.

    Question: {question}
    Student's Response (transcription): {transcription}
    Maximum Score: {max_score}

    Assess the response based on these criteria (each out of 10):
    1. Speech Clarity - How clear and articulate was the student
    2. Content Accuracy - How accurate and correct was the content
    3. Use of Examples - How well did the student use examples
    4. Presentation Quality - Overall quality of presentation

    Provide your assessment in JSON format with:
    - overall_score (out of maxScore)
    - feedback (detailed feedback for improvement)
    - speech_clarity (1-10)
    - content_accuracy (1-10)
    - use_of_examples (1-10)
    - presentation_quality (1-10)
    """
    try:
        result = await _create_json_completion(prompt)
    except AIServiceError:
        raise
    except (OpenAIError, ValueError) as e:
        raise _provider_failure("assess video response", e) from e

    return {
        "score": clamp(result.get("overall_score"), 0, max_score, 0),
        "max_score": max_score,
        "feedback": result.get("feedback") or NO_FEEDBACK,
        "criteria": _criteria(result, VIDEO_CRITERIA),
    }


@log_execution_time(logger)
async def assess_photo_submission(base64_image: str, question: str, max_score: float = 10) -> Dict[str, Any]:
    """
    Grade a photographed answer such as a hand-drawn diagram.

    Args:
        base64_image: JPEG image encoded as base64
        question: Question being answered
        max_score: Points available for the question

    Returns:
        Dict with ``score``, ``max_score``, ``feedback`` and the four
        drawing ``criteria`` rated 1-10
    """
    prompt = f"""
    You are an expert educational assessor. Evaluate this student's photo submission for the given question.

    Question: {question}
    Maximum Score: {max_score}

    Assess the photo based on these criteria (each out of 10):
    1. Diagram Accuracy - How accurate is the diagram/content
    2. Proper Labeling - Are labels clear and correct
    3. Clarity - How clear and legible is the submission
    4. Completeness - How complete is the answer

    Provide your assessment in JSON format with:
    - overall_score (out of maxScore)
    - feedback (detailed feedback for improvement)
    - diagram_accuracy (1-10)
    - proper_labeling (1-10)
    - clarity (1-10)
    - completeness (1-10)
    """
    content = [
        {"type": "text", "text": prompt},
        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{base64_image}"}},
    ]
    try:
        result = await _create_json_completion(content)
    except AIServiceError:
        raise
    except (OpenAIError, ValueError) as e:
        raise _provider_failure("assess photo submission", e) from e

    return {
        "score": clamp(result.get("overall_score"), 0, max_score, 0),
        "max_score": max_score,
        "feedback": result.get("feedback") or NO_FEEDBACK,
        "criteria": _criteria(result, PHOTO_CRITERIA),
    }


@log_execution_time(logger)
async def assess_text_response(
    answer: str,
    question: str,
    correct_answer: Optional[str] = None,
    max_score: float = 10,
) -> Dict[str, Any]:
    """Grade a written answer, optionally against a reference answer."""
    reference = f"Correct Answer: {correct_answer}" if correct_answer else ""
    prompt = f"""
    You are an expert educational assessor. Evaluate this student's text response.

    Question: {question}
    Student's Answer: {answer}
    {reference}
    Maximum Score: {max_score}

    Provide your assessment in JSON format with:
    - score (out of maxScore)
    - feedback (detailed feedback for improvement)
    - key_points (array of key points the student mentioned correctly)
    """
    try:
        result = await _create_json_completion(prompt)
    except AIServiceError:
        raise
    except (OpenAIError, ValueError) as e:
        raise _provider_failure("assess text response", e) from e

    key_points = result.get("key_points") or []
    if not isinstance(key_points, list):
        key_points = [str(key_points)]

    return {
        "score": clamp(result.get("score"), 0, max_score, 0),
        "max_score": max_score,
        "feedback": result.get("feedback") or NO_FEEDBACK,
        "key_points": key_points,
    }


@log_execution_time(logger)
async def transcribe_audio(audio: bytes, filename: str = "audio.webm") -> str:
    """Transcribe recorded audio with Whisper."""
    try:
        transcription = await get_openai_client().audio.transcriptions.create(
            file=(filename, audio),
            model=get_settings().OPENAI_TRANSCRIPTION_MODEL,
        )
    except AIServiceError:
        raise
    except OpenAIError as e:
        raise _provider_failure("transcribe audio", e) from e
    return transcription.text


def _tutor_failure(error: OpenAIError) -> AIServiceError:
    code = getattr(error, "code", None)
    if code == "insufficient_quota":
        return AIServiceError(
            "OpenAI API quota exceeded. Please check your OpenAI account billing.",
            provider=PROVIDER, code=ErrorCode.AI_QUOTA_EXCEEDED, status_code=429, cause=error,
        )
    if code == "invalid_api_key":
        return AIServiceError(
            "Invalid OpenAI API key. Please check your OPENAI_API_KEY configuration.",
            provider=PROVIDER, code=ErrorCode.AI_NOT_CONFIGURED, status_code=401, cause=error,
        )
    return AIServiceError(
        "Failed to get AI response. Please ensure OpenAI API key is properly configured.",
        provider=PROVIDER, status_code=500, cause=error,
    )


async def tutor_reply(message: str, history: Optional[List[Dict[str, Any]]] = None) -> str:
    """
    Answer a student's message in the context of their recent conversation.

    Only the last few turns of ``history`` are sent. Turns whose ``sender``
    is ``"user"`` are replayed as user messages, everything else as the
    assistant.
    """
    messages = [{"role": "system", "content": TUTOR_SYSTEM_PROMPT}]
    for turn in (history or [])[-TUTOR_HISTORY_TURNS:]:
        messages.append({
            "role": "user" if turn.get("sender") == "user" else "assistant",
            "content": turn.get("content", ""),
        })
    messages.append({"role": "user", "content": message})

    try:
        response = await get_openai_client().chat.completions.create(
            model=get_settings().OPENAI_MODEL,
            messages=messages,
            max_tokens=TUTOR_MAX_TOKENS,
            temperature=TUTOR_TEMPERATURE,
        )
    except OpenAIError as e:
        logger.error(f"AI Tutor error: {e}")
        raise _tutor_failure(e) from e

    if not response.choices:
        return TUTOR_FALLBACK_REPLY
    return response.choices[0].message.content or TUTOR_FALLBACK_REPLY


async def list_chat_models() -> List[Dict[str, Any]]:
    """GPT models visible to the configured key."""
    try:
        page = await get_openai_client().models.list()
    except OpenAIError as e:
        raise _provider_failure("fetch available models", e) from e
    return [
        {"id": model.id, "created": model.created, "object": model.object}
        for model in page.data
        if "gpt" in model.id
    ]


async def ping() -> Optional[str]:
    """Send a minimal completion to prove the key and model work."""
    response = await get_openai_client().chat.completions.create(
        model=get_settings().OPENAI_MODEL,
        messages=[{"role": "user", "content": "Hello"}],
        max_tokens=5,
    )
    if not response.choices:
        return None
    return response.choices[0].message.content
