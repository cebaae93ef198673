"""
LLM Analyzer
Calls an OpenAI-compatible chat endpoint (OpenRouter by default) with a fixed
prompt contract and parses the structured JSON answer.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    RateLimitError,
)
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.llm import (
    AIAnalysisRequest,
    LLMAnalysisResult,
    LLMError,
    LLMErrorType,
    StructuredAnalysis,
)

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an anti-corruption analyst specialised in Romanian public procurement.

Context:
- Romania has one of the highest procurement corruption risks in the EU
- 25% of state-funded contracts have a single bidder (EU average: 14%)
- The annual public procurement market is roughly EUR 13 billion

Scientifically validated red flags:
1. single_bidder - only one bidder in a competitive market
2. price_anomaly - price deviates more than 30% from the estimate or the market
3. narrow_specs - requirements tailored to favour one supplier
4. contract_splitting - artificially small contracts that avoid legal thresholds
5. repeated_winner - same winner for the same buyer over and over
6. last_minute_change - tender documentation changed close to the deadline
7. direct_award - direct award without a clear legal justification
8. award_delay - abnormal time between tender and award

Analyse the contract provided by the user and return ONLY a valid JSON object
(no extra text, no markdown) with exactly this structure:

{
  "risk_score": 0-100,
  "red_flags": [
    {
      "type": "single_bidder" | "price_anomaly" | "narrow_specs" | "contract_splitting" | "repeated_winner" | "last_minute_change" | "direct_award" | "award_delay",
      "severity": "low" | "medium" | "high" | "critical",
      "confidence": 0.0-1.0,
      "explanation": "Detailed explanation in Romanian for citizens"
    }
  ],
  "summary": "2-3 sentence summary in Romanian",
  "recommendations": ["Concrete follow-ups for journalists and NGOs"],
  "similar_contracts_comparison": "How the contract compares with the similar contracts, if any were given"
}

Rules:
- Be objective and evidence based
- Higher confidence means stronger evidence
- Compare with the similar contracts and the buyer history when provided"""


class LLMAnalyzer:
    """
    Structured contract analysis through a remote model.

    analyze() never raises: every failure is logged and reported as
    analysis=None so callers can fall back to rules only.
    No retries are attempted here.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ):
        """
        Initialize analyzer.

        Args:
            api_key: OpenRouter API key (defaults to OPENROUTER_API_KEY from settings)
            model: Model identifier (defaults to LLM_MODEL from settings)
            client: Pre-built AsyncOpenAI-compatible client (mainly for tests)
            timeout: Per-call timeout in seconds
            temperature: Sampling temperature
            max_tokens: Output token budget
        """
        self.api_key = api_key or settings.OPENROUTER_API_KEY
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS

        self.client = client
        if self.client is None and self.api_key:
            self.client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=settings.LLM_BASE_URL,
                timeout=self.timeout,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": settings.APP_URL,
                    "X-Title": settings.APP_NAME,
                },
            )
        if self.client is None:
            logger.warning("OPENROUTER_API_KEY not set. AI analysis is disabled.")

    def is_configured(self) -> bool:
        """Check if the analyzer can reach a model"""
        return self.client is not None

    def _parse_error(self, error: Exception) -> LLMError:
        """Map a transport exception onto an LLMError"""
        if isinstance(error, LLMError):
            return error
        if isinstance(error, (APITimeoutError, asyncio.TimeoutError)):
            return LLMError(f"LLM call timed out after {self.timeout}s", LLMErrorType.TIMEOUT)
        if isinstance(error, RateLimitError):
            return LLMError(f"Rate limit exceeded: {error}", LLMErrorType.RATE_LIMIT, 429)
        if isinstance(error, AuthenticationError):
            return LLMError(f"Authentication failed: {error}", LLMErrorType.AUTHENTICATION, 401)
        if isinstance(error, BadRequestError):
            return LLMError(f"Invalid request: {error}", LLMErrorType.INVALID_REQUEST, 400)
        if isinstance(error, APIStatusError):
            error_type = LLMErrorType.SERVER_ERROR if error.status_code >= 500 else LLMErrorType.UNKNOWN
            return LLMError(f"LLM API error: {error}", error_type, error.status_code)
        if isinstance(error, (APIConnectionError, ConnectionError)):
            return LLMError(f"Network error: {error}", LLMErrorType.NETWORK)
        return LLMError(f"Unknown error: {error}", LLMErrorType.UNKNOWN)

    @staticmethod
    def strip_code_fences(content: str) -> str:
        """Remove markdown code fences the model may wrap its JSON in"""
        text = content.strip()
        if text.startswith("```"):
            # Drop the opening fence with any info string (json, JSON, javascript, ...)
            first_newline = text.find("\n")
            text = text[first_newline + 1:] if first_newline != -1 else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        return text.strip()

    def parse_response(self, content: Optional[str]) -> StructuredAnalysis:
        """
        Parse and validate the model output.

        Raises:
            LLMError: If content is empty, not JSON, or does not match the schema
        """
        if not content or not content.strip():
            raise LLMError("Empty response content", LLMErrorType.EMPTY_RESPONSE)
        try:
            return StructuredAnalysis.model_validate(json.loads(self.strip_code_fences(content)))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise LLMError(f"Failed to parse AI response: {e}", LLMErrorType.MALFORMED_RESPONSE)

    async def _complete(self, request: AIAnalysisRequest) -> Any:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": request.model_dump_json(indent=2)},
        ]
        return await asyncio.wait_for(
            self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            ),
            timeout=self.timeout,
        )

    async def analyze(self, request: AIAnalysisRequest) -> LLMAnalysisResult:
        """
        Run structured analysis for one contract.

        Args:
            request: Contract subset plus optional comparison context

        Returns:
            LLMAnalysisResult, with analysis=None on any failure
        """
        contract_id = request.contract.contract_id
        if not self.is_configured():
            logger.warning(f"No LLM API key, skipping AI analysis for {contract_id}")
            return LLMAnalysisResult(model=self.model)

        try:
            completion = await self._complete(request)

            choices = getattr(completion, "choices", None)
            if not choices:
                raise LLMError("No choices in LLM response", LLMErrorType.EMPTY_RESPONSE)

            analysis = self.parse_response(choices[0].message.content)

            tokens_used = 0
            if getattr(completion, "usage", None):
                tokens_used = completion.usage.total_tokens or 0

            logger.info(f"AI analysis complete for {contract_id}. Tokens used: {tokens_used}")
            return LLMAnalysisResult(analysis=analysis, tokens_used=tokens_used, model=self.model)

        except Exception as e:
            parsed_error = self._parse_error(e)
            logger.error(
                f"AI analysis failed for {contract_id} "
                f"({parsed_error.error_type.value}): {parsed_error.message[:300]}"
            )
            return LLMAnalysisResult(model=self.model)
