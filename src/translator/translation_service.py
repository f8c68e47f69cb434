"""Translation backend (Gemini) and the retrying request layer in front of it."""

import logging
from typing import Awaitable, Callable, Optional

import openai
from openai import AsyncOpenAI

from common.config import settings
from common.llm_utils import clean_title_output
from common.retry_utils import RetryPolicy, call_with_retry, fixed_backoff
from common.utils import StringUtils
from translator.errors import (
    BackendReportedError,
    EmptyTranslationError,
    RateLimitExceededError,
    TranslationError,
    TranslationFailedError,
    TranslationTransportError,
)

logger = logging.getLogger(__name__)

# prompt -> translated text
TranslationBackend = Callable[[str], Awaitable[str]]

VIETNAMESE_STYLE_GUIDE = """- Use "mình" for I/me when talking about self, "mọi người" for fans, never use "ạ" "nhé"
- Use proper Vietnamese address terms for members: "cậu" (same age), "chị" (older), "em" (younger)
- Keep tone intimate, natural, gentle like an idol writing diary for fans
- Preserve HTML tags exactly, only translate text between tags
- Keep original content structure and emotional flow
- Maintain the diary-like, personal writing style
- Preserve nicknames and song titles exactly as they appear in original
- Keep focus on Nogizaka46 context and member relationships"""

DEFAULT_STYLE_GUIDE = """- Keep tone friendly, feminine, and youthful
- Use natural conversational {target_language}
- Preserve HTML tags exactly, only translate text between tags
- Keep original personality and structure"""


def build_translation_prompt(
    text: str, source_language: str, target_language: str
) -> str:
    """
    Build the instruction prompt for one chunk of blog content.

    Args:
        text: Chunk to translate (HTML fragment)
        source_language: Source language name (e.g., 'Japanese')
        target_language: Target language name (e.g., 'Vietnamese')

    Returns:
        Prompt embedding the chunk and both language names
    """
    if target_language.lower() == "vietnamese":
        return (
            f"Translate from {source_language} to {target_language} "
            f"with Nogizaka46 idol blog style:\n\n"
            f"{VIETNAMESE_STYLE_GUIDE}\n\n"
            f"Text to translate: {text}\n\n"
            f"IMPORTANT INSTRUCTIONS:\n"
            f"- Translate ONLY the text above to {target_language}\n"
            f"- Do NOT include the original {source_language} text\n"
            f"- Do NOT include any explanations or additional text\n"
            f"- Return ONLY the {target_language} translation"
        )

    style_guide = DEFAULT_STYLE_GUIDE.format(target_language=target_language)
    return (
        f"Translate from {source_language} to {target_language} with idol blog style:\n"
        f"{style_guide}\n\n"
        f"Text: {text}\n\n"
        f"Output ONLY the translated content in {target_language}. "
        f"No explanations, no additional text."
    )


def build_title_prompt(title: str, source_language: str, target_language: str) -> str:
    """Build the instruction prompt for a blog title."""
    return (
        f"Translate this {source_language} title to {target_language} "
        f"with Nogizaka46 idol blog style:\n\n"
        f"- Keep tone intimate, natural, gentle like an idol writing diary for fans\n"
        f"- Preserve nicknames and song titles exactly as they appear in original\n\n"
        f"Title to translate: {title}\n\n"
        f"CRITICAL: Return ONLY the {target_language} title. "
        f"Do NOT include the original {source_language} title. "
        f"Do NOT include any explanations or additional text."
    )


def _extract_backend_message(error: openai.APIStatusError) -> str:
    """Pull the human-readable message out of an API error body."""
    body = error.body
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
    return error.message


class GeminiBackend:
    """
    Sends one prompt to Gemini and returns the reply text.

    Uses the OpenAI SDK against Gemini's OpenAI-compatible endpoint. SDK
    retries are disabled; retrying is the request layer's job.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or settings.gemini_model
        self.temperature = (
            temperature if temperature is not None else settings.gemini_temperature
        )
        self.client = client
        api_key = api_key or settings.gemini_api_key

        if self.client is None and api_key:
            self.client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url or settings.gemini_base_url,
                timeout=timeout or settings.gemini_timeout,
                max_retries=0,  # Retries are handled by TranslationClient
            )
            logger.info(f"Initialized Gemini client with model: {self.model}")
        elif self.client is None:
            logger.warning(
                "Gemini API key is not configured - translation features will not work"
            )

    async def __call__(self, prompt: str) -> str:
        if self.client is None:
            raise BackendReportedError("Gemini API key is not configured")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except openai.RateLimitError as e:
            raise RateLimitExceededError(_extract_backend_message(e)) from e
        except openai.InternalServerError as e:
            raise TranslationTransportError(
                f"Backend returned {e.status_code}: {_extract_backend_message(e)}"
            ) from e
        except openai.APIStatusError as e:
            raise BackendReportedError(
                _extract_backend_message(e), status_code=e.status_code
            ) from e
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise TranslationTransportError(str(e) or type(e).__name__) from e

        if not response.choices:
            raise EmptyTranslationError("Backend returned no choices")

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise EmptyTranslationError(
                f"Backend returned no text "
                f"(finish_reason={response.choices[0].finish_reason})"
            )
        return content


def default_translation_retry_policy() -> RetryPolicy:
    """Fixed-delay retry policy built from the settings."""
    return RetryPolicy(
        max_attempts=settings.get_translation_max_attempts(),
        backoff=fixed_backoff(settings.translation_retry_delay),
    )


class TranslationClient:
    """
    Request layer in front of a translation backend.

    Every request is retried per ``retry_policy``. Once the budget is spent,
    rate-limit errors surface as :class:`RateLimitExceededError` and other
    transient failures as :class:`TranslationFailedError`; errors reported by
    the backend are never retried.
    """

    def __init__(
        self,
        backend: TranslationBackend,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.backend = backend
        self.retry_policy = retry_policy or default_translation_retry_policy()

    async def request(self, prompt: str) -> str:
        """
        Send one prompt, retrying transient failures.

        Returns:
            Raw reply text from the backend

        Raises:
            RateLimitExceededError: Rate limit still hit after the last attempt
            BackendReportedError: Backend answered with an error
            TranslationFailedError: Transport/empty-reply failures exhausted the budget
        """
        try:
            return await call_with_retry(
                self.backend,
                prompt,
                policy=self.retry_policy,
                operation="translation request",
            )
        except (RateLimitExceededError, BackendReportedError):
            raise
        except TranslationFailedError:
            raise
        except Exception as e:
            if isinstance(e, TranslationError) or self.retry_policy.retry_on(e):
                logger.debug(
                    f"Prompt of failed request: {StringUtils.truncate_for_logging(prompt, 300, 150)}"
                )
                raise TranslationFailedError(f"Failed to translate chunk: {e}") from e
            raise

    async def translate_title(
        self, title: str, source_language: str, target_language: str
    ) -> str:
        """
        Translate a blog title in a single request.

        Returns:
            Cleaned title, or "" for an empty title
        """
        if not title or not title.strip():
            return ""
        prompt = build_title_prompt(title.strip(), source_language, target_language)
        reply = await self.request(prompt)
        return clean_title_output(reply)
