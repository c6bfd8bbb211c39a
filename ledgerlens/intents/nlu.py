"""
External NLU Client

DESIGN DECISION: The language model is a fallback CLASSIFIER, not an
oracle. It is only consulted when the rule tables have nothing
convincing to say, and its answer is only a label plus a confidence.

BOUNDARIES:
- CAN: map a free-text query onto the intent taxonomy
- CAN: extract entities (category, person, timeframe, amount)
- CANNOT: block a query. Every call is bounded by a timeout and a
  small number of attempts, and any failure comes back as None
- CANNOT: raise into the resolver. NLUError and its subclasses never
  leave this module
"""

import asyncio
import json
from typing import Any, Optional, Protocol, Sequence

import google.generativeai as genai
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledgerlens.audit import AuditLogger
from ledgerlens.config import GeminiSettings, get_settings
from ledgerlens.models.intent import IntentCategory, NLUResponse


class NLUError(Exception):
    """Base class for external NLU failures."""


class NLUUnavailableError(NLUError):
    """The service could not be reached, timed out, or returned an error."""


class NLUResponseError(NLUError):
    """The service answered, but not with a usable classification."""


class NLUClient(Protocol):
    """What the resolver needs from an external classifier."""

    async def classify(
        self,
        query: str,
        taxonomy: Sequence[IntentCategory],
        context: Optional[dict[str, Any]] = None,
    ) -> Optional[NLUResponse]:
        ...


def build_prompt(
    query: str,
    taxonomy: Sequence[IntentCategory],
    context: Optional[dict[str, Any]] = None,
) -> str:
    """Prompt asking for a single JSON classification."""
    intents = [intent.value for intent in taxonomy]
    intents.extend(["filter_[category]", "clarify", "greeting", "unknown"])

    context_lines = []
    for key, value in (context or {}).items():
        context_lines.append(f"- {key}: {value}")
    context_block = "\n".join(context_lines) or "- none"

    return f"""You are an intent classifier for a shared-expense finance assistant.

Classify the user's question into exactly one of these intents:
{', '.join(intents)}

Conversation context:
{context_block}

User question: "{query}"

Respond with ONLY a JSON object in this exact format:
{{"intent": "intent_name", "confidence": 0.8, "entities": {{"category": null, "person": null, "timeframe": null, "amount": null}}, "needs_clarification": false, "suggested_query": null}}

Use "clarify" with needs_clarification true when the question is too vague.
Be conservative - if unsure, lower the confidence."""


def parse_response(text: str) -> NLUResponse:
    """
    Extract the JSON classification from a model reply.

    Raises NLUResponseError when no valid object can be found.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise NLUResponseError("No JSON object in NLU reply")

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise NLUResponseError(f"Malformed JSON in NLU reply: {e}") from e

    if not isinstance(data, dict):
        raise NLUResponseError("NLU reply is not a JSON object")

    # Drop null entities so callers only see what was extracted
    entities = data.get("entities") or {}
    if isinstance(entities, dict):
        data["entities"] = {k: v for k, v in entities.items() if v is not None}

    try:
        return NLUResponse.model_validate(data)
    except ValidationError as e:
        raise NLUResponseError(f"Invalid NLU classification: {e.error_count()} error(s)") from e


class GeminiNLUClient:
    """
    NLU collaborator backed by Gemini.

    Each attempt is bounded by asyncio.wait_for, and so is the whole
    retry loop. Service errors and timeouts are retried with exponential
    backoff; malformed replies are not.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        model: Any = None,
    ):
        """
        Args:
            settings: Gemini settings; defaults to the environment
            audit_logger: Where failures are reported
            model: Anything with an async generate_content_async(prompt).
                   Built from settings when omitted.
        """
        self._settings = settings or get_settings().gemini
        self._audit = audit_logger or AuditLogger()
        self._model = model if model is not None else self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    async def _generate(self, prompt: str) -> str:
        """One bounded attempt."""
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise NLUUnavailableError(
                f"NLU call timed out after {self._settings.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise NLUUnavailableError(f"NLU call failed: {e}") from e

        try:
            return response.text.strip()
        except (AttributeError, ValueError) as e:
            # Blocked or empty candidates have no text
            raise NLUResponseError(f"NLU reply has no text: {e}") from e

    async def _classify(self, prompt: str) -> NLUResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_wait_min,
                max=self._settings.retry_wait_max,
            ),
            retry=retry_if_exception_type(NLUUnavailableError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                text = await self._generate(prompt)
        return parse_response(text)

    async def classify(
        self,
        query: str,
        taxonomy: Sequence[IntentCategory],
        context: Optional[dict[str, Any]] = None,
    ) -> Optional[NLUResponse]:
        """
        Classify a query, or return None if the service could not help.
        """
        prompt = build_prompt(query, taxonomy, context)
        total = self._settings.total_timeout_seconds
        try:
            return await asyncio.wait_for(self._classify(prompt), timeout=total)
        except asyncio.TimeoutError:
            self._audit.log_external_service_error(
                service="gemini-nlu",
                error_message=f"NLU classification exceeded {total}s across all attempts",
            )
            return None
        except NLUError as e:
            self._audit.log_external_service_error(
                service="gemini-nlu",
                error_message=str(e),
            )
            return None
