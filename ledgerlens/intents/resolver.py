"""
Intent Resolver

Maps a free-text query onto the conversational intent taxonomy.

DESIGN DECISION: Rules first, model second. The pattern tables answer
almost every query deterministically and instantly. The external NLU is
only consulted when the rules have nothing convincing to say, and its
answer is only used when it is confident. If it is slow, wrong or
missing, the rule result stands.

Resolution order:
1. Ambiguity gate (short or vague queries get a clarifying question)
2. Rule scoring over every intent
3. Confident rule match is returned as-is
4. Weak rule match escalates to the NLU, if one is configured
5. Otherwise the best rule match, flagged for clarification when weak
6. Otherwise unknown
"""

import asyncio
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ledgerlens.audit import AuditLogger
from ledgerlens.config import IntentSettings, get_settings
from ledgerlens.intents.nlu import NLUClient
from ledgerlens.intents.patterns import (
    AMBIGUOUS_TRIGGERS,
    CLARIFICATIONS,
    INTENT_PATTERNS,
    KEYWORD_WEIGHT,
    PARTIAL_WEIGHT,
    SEMANTIC_WEIGHT,
)
from ledgerlens.models.intent import (
    Clarification,
    Intent,
    IntentCategory,
    IntentPatterns,
    IntentSource,
)


class IntentScore(BaseModel):
    """Rule score of a single intent for a single query."""
    model_config = ConfigDict(frozen=True)

    intent: IntentCategory
    score: float = 0.0
    matched_keyword: Optional[str] = None


def normalize_query(query: str) -> str:
    return query.strip().lower()


def _clarify(query: str, clarification: Clarification) -> Intent:
    return Intent(
        category=IntentCategory.UNKNOWN,
        confidence=1.0,
        needs_clarification=True,
        matched_keyword=clarification.trigger,
        clarification=clarification,
        original_query=query,
    )


def check_ambiguity(query: str) -> Optional[Intent]:
    """
    Return a clarification intent if the query is too vague to answer.

    A query of at most two words containing a registry trigger is vague
    ("spending", "my expenses"), as is a query that is nothing but an
    ambiguous word, optionally followed by "?".
    """
    normalized = normalize_query(query)
    words = normalized.split()

    if len(words) <= 2:
        for trigger, clarification in CLARIFICATIONS.items():
            if trigger in normalized:
                return _clarify(query, clarification)

    for word in AMBIGUOUS_TRIGGERS:
        if normalized in (word, f"{word}?"):
            clarification = CLARIFICATIONS.get(word)
            if clarification is not None:
                return _clarify(query, clarification)

    return None


def _score(normalized: str, words: list[str], intent: IntentCategory, patterns: IntentPatterns) -> IntentScore:
    score = 0.0
    matched_keyword = None

    for keyword in patterns.keywords:
        if keyword in normalized:
            score = max(score, KEYWORD_WEIGHT)
            matched_keyword = keyword

    for phrase in patterns.semantic:
        if phrase in normalized:
            score = max(score, SEMANTIC_WEIGHT)

    for keyword in patterns.keywords:
        for word in words:
            if word in keyword or keyword in word:
                score = max(score, PARTIAL_WEIGHT)

    return IntentScore(intent=intent, score=score, matched_keyword=matched_keyword)


def score_intents(query: str) -> list[IntentScore]:
    """Score every intent, in taxonomy order."""
    normalized = normalize_query(query)
    words = normalized.split()
    return [
        _score(normalized, words, intent, patterns)
        for intent, patterns in INTENT_PATTERNS.items()
    ]


def best_match(scores: list[IntentScore]) -> Optional[IntentScore]:
    """Highest score; the first declared intent wins ties. None if nothing scored."""
    best = None
    for candidate in scores:
        if candidate.score > 0 and (best is None or candidate.score > best.score):
            best = candidate
    return best


class IntentResolver:
    """
    Resolves queries to intents.

    Usage:
        resolver = IntentResolver()
        intent = await resolver.resolve("who owes whom?")
    """

    def __init__(
        self,
        nlu_client: Optional[NLUClient] = None,
        settings: Optional[IntentSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            nlu_client: External classifier for weak rule matches.
                        None means rules only.
            settings: Score cut-offs; defaults to the environment
            audit_logger: Where NLU escalations are recorded
        """
        self._nlu = nlu_client
        self._settings = settings or get_settings().intent
        self._audit = audit_logger or AuditLogger()

    @property
    def has_nlu(self) -> bool:
        return self._nlu is not None

    async def _ask_nlu(
        self,
        query: str,
        rule_score: float,
        context: Optional[dict[str, Any]],
        correlation_id: Optional[UUID],
    ) -> Optional[Intent]:
        timeout = self._settings.nlu_timeout_seconds
        try:
            response = await asyncio.wait_for(
                self._nlu.classify(query, IntentCategory.scored(), context),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self._audit.log_error(
                error_type="nlu_timeout",
                error_message=f"NLU client did not answer within {timeout}s",
                details={"client": type(self._nlu).__name__, "timeout_seconds": timeout},
                correlation_id=correlation_id,
            )
            return None
        except Exception as e:
            # Clients other than GeminiNLUClient may not contain their errors
            self._audit.log_error(
                error_type="nlu_client",
                error_message=str(e),
                details={"client": type(self._nlu).__name__},
                correlation_id=correlation_id,
            )
            return None

        self._audit.log_nlu_consulted(
            rule_score=rule_score,
            nlu_intent=response.intent if response else None,
            nlu_confidence=response.confidence if response else None,
            correlation_id=correlation_id,
        )

        if response is None:
            return None

        if response.confidence <= self._settings.nlu_min_confidence:
            self._audit.log_nlu_rejected(
                nlu_intent=response.intent,
                nlu_confidence=response.confidence,
                minimum=self._settings.nlu_min_confidence,
                correlation_id=correlation_id,
            )
            return None

        category = IntentCategory.parse(response.intent)
        return Intent(
            category=category,
            confidence=response.confidence,
            needs_clarification=(
                response.needs_clarification or category is IntentCategory.UNKNOWN
            ),
            source=IntentSource.EXTERNAL_NLU,
            entities=response.entities,
            suggested_query=response.suggested_query,
            original_query=query,
        )

    async def resolve(
        self,
        query: str,
        context: Optional[dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Intent:
        """
        Resolve a query to an intent. Never raises on a classification miss.
        """
        clarification = check_ambiguity(query)
        if clarification is not None:
            return clarification

        best = best_match(score_intents(query))
        best_score = best.score if best else 0.0

        if best is not None and best_score >= self._settings.high_confidence:
            return Intent(
                category=best.intent,
                confidence=best_score,
                needs_clarification=False,
                matched_keyword=best.matched_keyword,
                original_query=query,
            )

        if best_score < self._settings.low_confidence and self._nlu is not None:
            nlu_intent = await self._ask_nlu(query, best_score, context, correlation_id)
            if nlu_intent is not None:
                return nlu_intent

        if best is not None:
            return Intent(
                category=best.intent,
                confidence=best_score,
                needs_clarification=best_score < self._settings.low_confidence,
                matched_keyword=best.matched_keyword,
                original_query=query,
            )

        return Intent(
            category=IntentCategory.UNKNOWN,
            confidence=0.0,
            needs_clarification=True,
            original_query=query,
        )
