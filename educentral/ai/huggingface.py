"""
HuggingFace Inference Service

Calls hosted HuggingFace models over the Inference REST API to analyse
spoken and written answers:
- emotion classification of a transcript
- sentiment and delivery of a speech transcript
- content quality of an answer (question answering + lexical heuristics)

The analysis functions never raise on provider failure. They log the error
and return a neutral fallback result so a video assessment can still be
scored.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from educentral.ai import text_metrics
from educentral.assessments.scoring import round_half_up
from educentral.common.error_handling import AIServiceError
from educentral.common.logger import app_logger, log_execution_time
from educentral.config import get_settings

logger = app_logger.getChild("ai.huggingface")

PROVIDER = "huggingface"

# HTTP statuses worth retrying: model cold start and rate limiting
RETRY_STATUSES = {429, 503}

FALLBACK_EMOTION = {
    "emotion": "neutral",
    "confidence": 0.5,
    "facial_score": 50,
    "emotions": [{"label": "neutral", "score": 0.5}],
}

FALLBACK_CONTENT = {
    "content_score": 70,
    "accuracy": 70,
    "completeness": 70,
    "relevance": 70,
    "technical_depth": 60,
    "feedback": "Unable to perform detailed analysis. Please ensure your answer is clear and comprehensive.",
    "suggestions": ["Provide more specific details", "Include examples", "Structure your answer clearly"],
}

FEEDBACK_MAX_NEW_TOKENS = 150
FEEDBACK_TEMPERATURE = 0.7


class HuggingFaceClient:
    """Thin async client for the HuggingFace Inference API."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 2,
    ):
        """
        Initialize the client.

        Args:
            base_url: Inference API models URL, e.g. https://api-inference.huggingface.co/models
            api_key: Optional access token sent as a Bearer header
            timeout: Total request timeout in seconds
            max_retries: Retries for timeouts and retryable statuses
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self._session: Optional[aiohttp.ClientSession] = None
        self._initialize_lock = asyncio.Lock()

    async def _ensure_initialized(self) -> None:
        """Ensure an HTTP session exists."""
        if self._session is not None and not self._session.closed:
            return

        async with self._initialize_lock:
            if self._session is not None and not self._session.closed:
                return

            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def query(self, model: str, payload: Dict[str, Any]) -> Any:
        """
        Run one inference request.

        Args:
            model: Model repository id
            payload: JSON body, usually ``{"inputs": ...}``

        Returns:
            Decoded JSON response

        Raises:
            AIServiceError: If every attempt fails
        """
        await self._ensure_initialized()
        url = f"{self.base_url}/{model}"

        for attempt in range(self.max_retries + 1):
            last_attempt = attempt == self.max_retries
            try:
                async with self._session.post(url, json=payload) as response:
                    if response.status == 200:
                        return await response.json()

                    error_text = await response.text()
                    logger.error(f"Inference error for {model}: {response.status}, {error_text}")
                    if response.status not in RETRY_STATUSES or last_attempt:
                        raise AIServiceError(
                            f"Inference request to {model} failed with status {response.status}",
                            provider=PROVIDER,
                            details={"model": model, "status": response.status},
                        )
            except asyncio.TimeoutError as e:
                if last_attempt:
                    raise AIServiceError(f"Inference request to {model} timed out", provider=PROVIDER, cause=e)
            except aiohttp.ClientError as e:
                if last_attempt:
                    raise AIServiceError(f"Inference request to {model} failed: {e}", provider=PROVIDER, cause=e)

            wait_time = 2 ** attempt
            logger.info(f"Retrying {model} in {wait_time}s, attempt {attempt + 1}/{self.max_retries}")
            await asyncio.sleep(wait_time)

    async def text_classification(self, model: str, text: str) -> List[Dict[str, Any]]:
        """
        Labels with scores, highest score first.

        Raises:
            AIServiceError: If the request fails or the labels are malformed
        """
        data = await self.query(model, {"inputs": text})
        # Single inputs come back wrapped in an outer list
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]
        if not isinstance(data, list):
            raise _malformed(model, data)
        if not data:
            raise AIServiceError(f"Empty classification from {model}", provider=PROVIDER)
        if not all(isinstance(item, dict) and isinstance(item.get("label"), str)
                   and _is_number(item.get("score")) for item in data):
            raise _malformed(model, data)
        labels = [{"label": item["label"], "score": float(item["score"])} for item in data]
        return sorted(labels, key=lambda item: item["score"], reverse=True)

    async def question_answering(self, model: str, question: str, context: str) -> Dict[str, Any]:
        data = await self.query(model, {"inputs": {"question": question, "context": context}})
        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or not _is_number(data.get("score", 0)):
            raise _malformed(model, data)
        return data

    async def text_generation(self, model: str, prompt: str, **parameters: Any) -> str:
        data = await self.query(model, {"inputs": prompt, "parameters": parameters})
        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or not isinstance(data.get("generated_text", ""), str):
            raise _malformed(model, data)
        return data.get("generated_text", "")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _malformed(model: str, data: Any) -> AIServiceError:
    return AIServiceError(
        f"Unexpected response shape from {model}",
        provider=PROVIDER,
        details={"model": model, "response_type": type(data).__name__},
    )


_client: Optional[HuggingFaceClient] = None


def get_huggingface_client() -> HuggingFaceClient:
    """Get the shared client, creating it from the current settings."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = HuggingFaceClient(
            base_url=settings.HUGGINGFACE_API_URL,
            api_key=settings.HUGGINGFACE_API_KEY,
            timeout=settings.AI_TIMEOUT,
            max_retries=settings.AI_MAX_RETRIES,
        )
    return _client


async def close_huggingface_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None


@log_execution_time(logger)
async def analyze_emotion_from_text(text: str) -> Dict[str, Any]:
    """
    Classify the dominant emotion of a transcript.

    Returns:
        Dict with ``emotion``, ``confidence`` (0-1), ``facial_score``
        (confidence as a percentage) and every label in ``emotions``
    """
    try:
        labels = await get_huggingface_client().text_classification(
            get_settings().HF_EMOTION_MODEL, text
        )
    except AIServiceError as e:
        logger.warning(f"Error analyzing emotion, using neutral fallback: {e}")
        return {**FALLBACK_EMOTION, "emotions": list(FALLBACK_EMOTION["emotions"])}

    top = labels[0]
    return {
        "emotion": top["label"].lower(),
        "confidence": top["score"],
        "facial_score": top["score"] * 100,
        "emotions": [{"label": item["label"].lower(), "score": item["score"]} for item in labels],
    }


@log_execution_time(logger)
async def analyze_speech_quality(transcript: str, duration: float) -> Dict[str, Any]:
    """
    Sentiment, tone and delivery of a spoken answer.

    Args:
        transcript: Text of the recording
        duration: Recording length in seconds, used for the speaking pace

    Returns:
        Dict with ``transcript``, ``sentiment``, ``confidence``,
        ``tone_analysis`` and ``speech_quality``
    """
    try:
        labels = await get_huggingface_client().text_classification(
            get_settings().HF_SENTIMENT_MODEL, transcript
        )
    except AIServiceError as e:
        logger.warning(f"Error analyzing speech quality, using neutral fallback: {e}")
        return {
            "transcript": transcript,
            "sentiment": "neutral",
            "confidence": 0.5,
            "tone_analysis": {"tone": "neutral", "confidence": 0.5},
            "speech_quality": {"clarity": 0.5, "pace": "normal", "volume": "normal"},
        }

    sentiment = labels[0]["label"].lower()
    confidence = labels[0]["score"]
    wpm = text_metrics.words_per_minute(transcript, duration)
    return {
        "transcript": transcript,
        "sentiment": sentiment,
        "confidence": confidence,
        "tone_analysis": {
            "tone": text_metrics.tone_from_sentiment(sentiment),
            "confidence": confidence,
        },
        "speech_quality": {
            "clarity": text_metrics.speech_clarity(transcript),
            "pace": text_metrics.speech_pace(wpm),
            # Volume cannot be judged from a transcript
            "volume": "normal",
        },
    }


async def generate_feedback(question: str, answer: str, score: int) -> str:
    """Model-written feedback, or a templated sentence when generation fails."""
    fallback = f"Your answer scores {score}/100. Focus on providing more specific details and clear explanations."
    prompt = f"""
Question: "{question}"
Answer: "{answer}"
Score: {score}/100

Provide constructive feedback on this answer focusing on:
1. Content accuracy and relevance
2. Clarity and structure
3. Areas for improvement
4. Positive aspects

Feedback:"""
    try:
        generated = await get_huggingface_client().text_generation(
            get_settings().HF_FEEDBACK_MODEL,
            prompt,
            max_new_tokens=FEEDBACK_MAX_NEW_TOKENS,
            temperature=FEEDBACK_TEMPERATURE,
        )
    except AIServiceError as e:
        logger.warning(f"Error generating feedback: {e}")
        return fallback
    return generated.replace(prompt, "").strip() or fallback


@log_execution_time(logger)
async def assess_content_quality(question: str, answer: str, expected_answer: Optional[str] = None) -> Dict[str, Any]:
    """
    Score how well an answer addresses its question.

    Accuracy is the word overlap with ``expected_answer`` when one is given,
    otherwise the question-answering model's confidence.

    Returns:
        Dict with ``content_score`` and ``accuracy``, ``completeness``,
        ``relevance``, ``technical_depth`` percentages plus ``feedback`` and
        ``suggestions``
    """
    try:
        qa_result = await get_huggingface_client().question_answering(
            get_settings().HF_QA_MODEL,
            question=f'How well does this answer address the question: "{question}"?',
            context=answer,
        )
    except AIServiceError as e:
        logger.warning(f"Error assessing content quality, using fallback: {e}")
        return {**FALLBACK_CONTENT, "suggestions": list(FALLBACK_CONTENT["suggestions"])}

    relevance = text_metrics.relevance_score(question, answer)
    completeness = text_metrics.completeness_score(answer)
    if expected_answer:
        accuracy = text_metrics.jaccard_similarity(answer, expected_answer)
    else:
        accuracy = float(qa_result.get("score", 0) or 0)

    score = text_metrics.content_score(relevance, completeness, accuracy)
    return {
        "content_score": score,
        "accuracy": round_half_up(accuracy * 100),
        "completeness": round_half_up(completeness * 100),
        "relevance": round_half_up(relevance * 100),
        "technical_depth": round_half_up(text_metrics.technical_depth(answer) * 100),
        "feedback": await generate_feedback(question, answer, score),
        "suggestions": text_metrics.generate_suggestions(score, answer),
    }
