"""
Revi Audit — GeminiService: AI report text generation

Turns a submission's ``[{question, answer}]`` list into a written report by
sending the report instructions as the system instruction and the answers,
serialised as indented JSON, as the user content.

Model fallback chain:
    <explicit model, if requested> -> primary -> fallback -> stable

Each model is called with exponential-backoff retry on rate-limit and
transient server errors.  An empty response counts as a failed model and
moves on to the next one in the chain.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import google.generativeai as genai
import structlog
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.config import get_settings
from app.errors import ReportGenerationError

logger = structlog.get_logger("audit.gemini_service")


def _is_retryable_api_error(exc: BaseException) -> bool:
    """Return True if the exception signals a retryable Gemini API error.

    We retry on HTTP 429 (rate limit) and 500/503 (server-side transient)
    errors.  The google-generativeai SDK wraps these as various exception
    types, so we inspect both the type name and string representation.
    """
    exc_str = str(exc).lower()
    exc_type = type(exc).__name__.lower()

    if "429" in exc_str or "resource_exhausted" in exc_str:
        return True
    if "500" in exc_str or "503" in exc_str or "internal" in exc_str:
        return True
    if "resourceexhausted" in exc_type or "serviceunavailable" in exc_type:
        return True

    return False


def serialise_answers(user_answers: Sequence[dict[str, str]]) -> str:
    return json.dumps(list(user_answers), indent=2, ensure_ascii=False)


class GeminiService:
    """Report writer backed by the Gemini model chain."""

    RETRY_ATTEMPTS = 5

    def __init__(self) -> None:
        settings = get_settings()

        genai.configure(api_key=settings.GEMINI_API_KEY)

        self._model_chain: list[str] = [
            settings.GEMINI_MODEL_PRIMARY,
            settings.GEMINI_MODEL_FALLBACK,
            settings.GEMINI_MODEL_STABLE,
        ]

        self._safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_ONLY_HIGH,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
        }

        self._generation_config = genai.GenerationConfig(
            max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
        )
        self._retry_wait = wait_exponential(multiplier=1, min=1, max=60, exp_base=2)

        logger.info("gemini_service_initialised", model_chain=self._model_chain)

    def model_chain(self, model: str | None = None) -> list[str]:
        """Return the models to try, in order, without duplicates."""
        chain = [model] if model else []
        for name in self._model_chain:
            if name and name not in chain:
                chain.append(name)
        return chain

    # ══════════════════════════════════════════════════════════════════
    # Public API
    # ══════════════════════════════════════════════════════════════════

    async def generate_report(
        self,
        instructions: str,
        user_answers: Sequence[dict[str, str]],
        model: str | None = None,
    ) -> str:
        """Generate report text for one submission.

        Parameters
        ----------
        instructions:
            Full report prompt, sent as the system instruction.
        user_answers:
            ``[{"question": ..., "answer": ...}]`` in display order.
        model:
            Optional model identifier tried before the configured chain.

        Returns
        -------
        str
            The generated report (Markdown).

        Raises
        ------
        ReportGenerationError
            When every model in the chain fails.
        """
        content = serialise_answers(user_answers)
        chain = self.model_chain(model)
        log = logger.bind(answers=len(user_answers), model_chain=chain)
        log.info("report_generation_start")

        last_exception: Exception | None = None
        for model_name in chain:
            try:
                text = await self._call_gemini_with_retry(model_name, instructions, content)
                log.info("report_generation_complete", model=model_name, chars=len(text))
                return text
            except Exception as exc:
                last_exception = exc
                log.warning("model_fallback", failed_model=model_name, error=str(exc))
                continue

        log.error("report_generation_failed", last_error=str(last_exception))
        raise ReportGenerationError(
            f"All models in chain exhausted. Last error: {last_exception}"
        )

    # ══════════════════════════════════════════════════════════════════
    # Model calls
    # ══════════════════════════════════════════════════════════════════

    async def _call_gemini_with_retry(
        self,
        model_name: str,
        instructions: str,
        content: str,
    ) -> str:
        """Call one Gemini model with tenacity retry on transient errors.

        Raises
        ------
        Exception
            If all retry attempts are exhausted or a non-retryable error
            occurs.
        """
        model = genai.GenerativeModel(model_name, system_instruction=instructions)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable_api_error),
                stop=stop_after_attempt(self.RETRY_ATTEMPTS),
                wait=self._retry_wait,
                reraise=True,
            ):
                with attempt:
                    logger.debug(
                        "gemini_call_attempt",
                        model=model_name,
                        attempt_number=attempt.retry_state.attempt_number,
                    )
                    response = await model.generate_content_async(
                        content,
                        safety_settings=self._safety_settings,
                        generation_config=self._generation_config,
                    )

                    if not response.candidates:
                        raise ValueError(
                            f"Gemini returned no candidates for model "
                            f"{model_name}. Prompt feedback: "
                            f"{response.prompt_feedback}"
                        )

                    text = response.text
                    if not text or not text.strip():
                        raise ValueError(
                            f"Gemini returned empty text for model {model_name}"
                        )

                    self._log_usage(model_name, response)
                    return text

        except RetryError as retry_err:
            logger.error(
                "gemini_retry_exhausted",
                model=model_name,
                attempts=self.RETRY_ATTEMPTS,
                last_error=str(retry_err.last_attempt.exception()),
            )
            raise retry_err.last_attempt.exception() from retry_err

    @staticmethod
    def _log_usage(model_name: str, response: Any) -> None:
        usage = getattr(response, "usage_metadata", None)
        if usage is None:
            return
        logger.info(
            "gemini_token_usage",
            model=model_name,
            input_tokens=getattr(usage, "prompt_token_count", None),
            output_tokens=getattr(usage, "candidates_token_count", None),
            total_tokens=getattr(usage, "total_token_count", None),
        )


_gemini_service: GeminiService | None = None


def get_gemini_service() -> GeminiService:
    global _gemini_service
    if _gemini_service is None:
        _gemini_service = GeminiService()
    return _gemini_service
