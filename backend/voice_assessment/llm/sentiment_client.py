"""
Per-answer sentiment analysis over an OpenAI-compatible chat endpoint.

Sends the question and the user's answer, asks for a JSON object and
validates it into a SentimentResult.
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp
from pydantic import ValidationError

from voice_assessment.config import Settings, settings as default_settings
from voice_assessment.errors import AnalysisError
from voice_assessment.languages import LANGUAGES
from voice_assessment.models import SentimentResult

logger = logging.getLogger(__name__)

SENTIMENT_PROMPT = """You are a multilingual mental health sentiment analyzer. Analyze the following response to a mental health assessment question.

The user is communicating in {language_name}. Understand and analyze their response in that language.

Question: {question}

Response: "{response}"

Analyze the emotional sentiment of this response. Consider:
- Overall emotional tone (positive, neutral, or negative) - MUST BE IN ENGLISH
- Confidence score (0-1) where 1 is very confident about the sentiment
- Key emotional keywords or phrases (identify them in the original language)
- A brief summary of the emotional state expressed (provide in {language_name})

Reply with a single JSON object with exactly these keys:
"sentiment" ("positive", "neutral" or "negative"), "score" (number 0-1),
"keywords" (array of strings), "summary" (string).

Be compassionate and understanding in your analysis. Look for both explicit and implicit emotional cues. Consider cultural context when interpreting emotional expressions."""


class SentimentClient:
    """
    Scores one answer at a time.

    Features:
    - JSON-mode chat completion (temperature 0 for stable labels)
    - Strict schema validation of the model's reply
    - Every failure surfaces as AnalysisError
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.api_key = settings.groq_api_key
        self.model = settings.sentiment_model
        self.base_url = f"{settings.groq_base_url.rstrip('/')}/chat/completions"
        self.timeout = aiohttp.ClientTimeout(total=settings.http_timeout_s, connect=5)

    def build_messages(self, response_text: str, question_text: str, language: str) -> list[dict]:
        language_name = LANGUAGES[language].name if language in LANGUAGES else "English"
        prompt = SENTIMENT_PROMPT.format(
            language_name=language_name,
            question=question_text,
            response=response_text,
        )
        return [{"role": "user", "content": prompt}]

    async def analyze(self, response_text: str, question_text: str, language: str) -> SentimentResult:
        """
        Analyze the sentiment of one answer.

        Args:
            response_text: What the user said
            question_text: The question being answered
            language: Short language code

        Returns:
            Validated SentimentResult
        """
        if not self.api_key:
            raise AnalysisError("GROQ_API_KEY is not set")
        if not response_text:
            raise AnalysisError("No response provided")

        payload = {
            "model": self.model,
            "messages": self.build_messages(response_text, question_text, language),
            "temperature": 0,
            "max_tokens": 300,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.base_url, headers=headers, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"Sentiment API error {response.status}: {error_text}")
                        raise AnalysisError(f"Sentiment API error: {response.status}")

                    data = await response.json(content_type=None)

        except aiohttp.ClientError as e:
            raise AnalysisError(f"Sentiment request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise AnalysisError("Sentiment request timed out") from e
        except json.JSONDecodeError as e:
            raise AnalysisError(f"Invalid JSON from sentiment API: {e}") from e

        return self.parse_completion(data)

    @staticmethod
    def parse_completion(data: dict) -> SentimentResult:
        """Extract and validate the JSON object from a chat completion body."""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AnalysisError(f"Unexpected completion payload: {e}") from e

        try:
            parsed = json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            raise AnalysisError(f"Model did not return JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise AnalysisError("Model returned JSON that is not an object")

        if isinstance(parsed.get("sentiment"), str):
            parsed["sentiment"] = parsed["sentiment"].strip().lower()
        parsed.pop("is_fallback", None)

        try:
            result = SentimentResult.model_validate(parsed)
        except ValidationError as e:
            raise AnalysisError(f"Sentiment reply failed validation: {e.error_count()} errors") from e

        logger.debug(f"Sentiment: {result.sentiment} ({result.score:.2f})")
        return result
