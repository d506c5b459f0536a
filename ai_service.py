"""
AI Relay - AI Service
Cached, rate-limited, pooled and breaker-protected calls to the GitHub AI completion endpoint.
"""

import asyncio
import hashlib
import json
import logging
import re
import time
from typing import Optional

from openai import AsyncOpenAI

import logger as log
from config import (
    AI_API_URL, AI_MODEL, AI_MAX_TOKENS, AI_TEMPERATURE, API_TIMEOUT,
    GITHUB_TOKEN, ENABLE_CACHING, ENABLE_RATE_LIMIT, PERFORMANCE
)
from constants import (
    AI_BREAKER, AI_FALLBACK, AI_RESPONSE_CACHE_TTL, API_CALL_LIMIT, API_CALL_WINDOW,
    CACHE_KEY_LENGTH, DEFAULT_FREQUENCY_PENALTY, DEFAULT_PRESENCE_PENALTY,
    DEFAULT_SYSTEM_MESSAGE, DEFAULT_TOP_P, FALLBACK_AI_RESPONSE,
    MAX_CACHEABLE_RESPONSE_CHARS, MAX_PROMPT_LENGTH
)
from connection_pool import ConnectionPool
from error_recovery import ErrorRecovery
from errors import (
    AIServiceError, AuthError, InvalidResponseError, RateLimitExceeded,
    UnknownError, ValidationError, classify_error, counts_as_breaker_failure
)
from prometheus_metrics import metrics_manager
from rate_limiter import RateLimiter
from response_cache import ResponseCache
from stats import stats_manager

logger = logging.getLogger("ai_service")


# Patterns that have no business in a chat prompt
_MALICIOUS_PATTERNS = [
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"vbscript\s*:", re.IGNORECASE),
    re.compile(r"\bdata:[a-z]+/[a-z0-9.+-]+[;,]", re.IGNORECASE),
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"<[^>]*\bon\w+\s*=", re.IGNORECASE),
]


CODE_SYSTEM_MESSAGE = """You are an expert programmer and mentor. When generating code:

🎯 ALWAYS provide:
1. Clean, well-commented code with proper formatting
2. Brief explanation of what the code does
3. Key concepts or patterns used
4. Potential improvements or alternatives

Format your response like this:
## 🚀 Code Solution

```{language}
// Your code here with comments
```

## 💡 Explanation
[Brief explanation]

## 🔧 Key Points
• [Key point 1]
• [Key point 2]

Keep it engaging and educational!"""

EXPLAIN_SYSTEM_MESSAGE = """You are a friendly code teacher and mentor. When explaining code:

🎓 ALWAYS provide:
1. Clear, step-by-step breakdown of the code
2. The purpose and logic behind it
3. Important concepts or patterns
4. Best practices or potential issues

Format your response like this:
## 📝 What This Code Does
[Overall purpose]

## 🔧 Step-by-Step Breakdown
1. **[Part 1]**: [Explanation]

## ⚠️ Things to Note
[Warnings, best practices, or improvements]

Make it educational and fun!"""

REVIEW_SYSTEM_MESSAGE = """You are a senior developer conducting a friendly code review. When reviewing code:

🔍 ALWAYS provide:
1. Overall assessment with positive feedback first
2. Specific areas for improvement
3. Security and performance considerations
4. Actionable suggestions with examples

Format your response like this:
## ✅ What's Working Well
## 🚀 Areas for Improvement
## 🛡️ Security & Best Practices
## 📊 Overall Rating: [X/10]

Keep it constructive and motivating!"""


def validate_prompt(text, max_length: int = MAX_PROMPT_LENGTH, check_patterns: bool = True) -> str:
    """Trim and validate user input before it goes anywhere near the network.

    Raises:
        ValidationError: wrong type, empty, too long, or injection patterns
    """
    if not isinstance(text, str):
        raise ValidationError("Invalid input type")

    cleaned = text.strip()
    if not cleaned:
        raise ValidationError("Input cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"Input too long. Maximum {max_length} characters allowed.")

    if check_patterns:
        for pattern in _MALICIOUS_PATTERNS:
            if pattern.search(cleaned):
                raise ValidationError("Input contains potentially malicious content")

    return cleaned


class AIService:
    """Facade over the completion endpoint.

    Every call goes: caller rate limit -> fingerprint -> cache -> pool slot
    -> outbound rate limit -> circuit breaker -> HTTP call. Failures are
    raised as typed AIServiceError subclasses; nothing is retried here.
    """

    def __init__(
        self,
        client,
        cache: ResponseCache,
        rate_limiter: RateLimiter,
        pool: ConnectionPool,
        recovery: ErrorRecovery,
        model: str = AI_MODEL,
        max_tokens: int = AI_MAX_TOKENS,
        temperature: float = AI_TEMPERATURE,
        timeout: Optional[float] = API_TIMEOUT,
        enable_caching: bool = ENABLE_CACHING,
        enable_rate_limit: bool = ENABLE_RATE_LIMIT,
        stats=stats_manager,
        metrics=metrics_manager,
    ):
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.pool = pool
        self.recovery = recovery
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.enable_caching = enable_caching
        self.enable_rate_limit = enable_rate_limit
        self.stats = stats
        self.metrics = metrics

        if AI_BREAKER not in recovery.circuit_breakers:
            recovery.create_circuit_breaker(AI_BREAKER, failure_predicate=counts_as_breaker_failure)

    @classmethod
    def from_config(cls, performance: Optional[dict] = None, client=None) -> "AIService":
        """Build the service and its collaborators from configuration."""
        performance = performance or PERFORMANCE

        recovery = ErrorRecovery()
        recovery.create_circuit_breaker(
            AI_BREAKER,
            failure_predicate=counts_as_breaker_failure,
            **performance["circuit_breaker"],
        )
        recovery.register_fallback_strategy(AI_FALLBACK, lambda error, context: FALLBACK_AI_RESPONSE)

        if client is None:
            # The SDK's own retries are off: retries are the caller's decision
            client = AsyncOpenAI(
                base_url=AI_API_URL,
                api_key=GITHUB_TOKEN,
                timeout=API_TIMEOUT,
                max_retries=0,
            )

        log.info(f"AI service: model={AI_MODEL} url={AI_API_URL} timeout={API_TIMEOUT}s", "ai")
        return cls(
            client=client,
            cache=ResponseCache(**performance["cache"]),
            rate_limiter=RateLimiter(**performance["rate_limit"]),
            pool=ConnectionPool(**performance["connection_pool"]),
            recovery=recovery,
        )

    # --- Public API ---

    async def generate_response(self, prompt: str, system_message: str = DEFAULT_SYSTEM_MESSAGE,
                                use_cache: bool = True, caller_id=None,
                                enforce_rate_limit: bool = True) -> str:
        """Generate a reply for ``prompt``. Raises AIServiceError on failure.

        ``enforce_rate_limit=False`` skips the per-caller check so a retry of
        an already admitted request doesn't spend a second token. The outbound
        API budget still applies.
        """
        try:
            prompt = validate_prompt(prompt)
        except ValidationError as error:
            self._report_validation(error, caller_id)
            raise
        return await self._generate(prompt, system_message, use_cache, caller_id, enforce_rate_limit)

    async def generate_code_response(self, prompt: str, language: str = "javascript",
                                     caller_id=None, enforce_rate_limit: bool = True) -> str:
        return await self.generate_response(
            prompt, CODE_SYSTEM_MESSAGE.replace("{language}", language), caller_id=caller_id,
            enforce_rate_limit=enforce_rate_limit,
        )

    async def generate_explanation(self, code: str, language: str = "javascript",
                                   caller_id=None, enforce_rate_limit: bool = True) -> str:
        code = self._validate_code(code, caller_id)
        prompt = f"Please explain this {language} code:\n\n```{language}\n{code}\n```"
        return await self._generate(prompt, EXPLAIN_SYSTEM_MESSAGE, True, caller_id, enforce_rate_limit)

    async def generate_review(self, code: str, language: str = "javascript",
                              caller_id=None, enforce_rate_limit: bool = True) -> str:
        code = self._validate_code(code, caller_id)
        prompt = f"Please review this {language} code:\n\n```{language}\n{code}\n```"
        return await self._generate(prompt, REVIEW_SYSTEM_MESSAGE, True, caller_id, enforce_rate_limit)

    def create_cache_key(self, prompt: str, system_message: str) -> str:
        """Deterministic fingerprint of everything that shapes the reply."""
        payload = {
            "prompt": prompt,
            "system_message": system_message,
            "model": self.model,
            "options": {
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "top_p": DEFAULT_TOP_P,
                "frequency_penalty": DEFAULT_FREQUENCY_PENALTY,
                "presence_penalty": DEFAULT_PRESENCE_PENALTY,
            },
        }
        normalized = json.dumps(payload, ensure_ascii=True, sort_keys=True)
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:CACHE_KEY_LENGTH]

    def get_stats(self) -> dict:
        """Read-only snapshot of every resilience component."""
        return {
            "cache": self.cache.get_stats(),
            "rate_limiter": self.rate_limiter.get_stats(),
            "pool": self.pool.get_stats(),
            "circuit_breakers": self.recovery.get_stats()["circuit_breakers"],
            "performance": self.stats.get_summary(),
        }

    async def close(self):
        """Release the HTTP client."""
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()

    # --- Internals ---

    def _validate_code(self, code: str, caller_id) -> str:
        # Code legitimately contains <script> tags and the like
        try:
            return validate_prompt(code, check_patterns=False)
        except ValidationError as error:
            self._report_validation(error, caller_id)
            raise

    async def _generate(self, prompt: str, system_message: str, use_cache: bool, caller_id,
                        enforce_rate_limit: bool = True) -> str:
        started = time.monotonic()

        try:
            if self.enable_rate_limit and enforce_rate_limit:
                key = f"ai_request:{caller_id if caller_id is not None else 'global'}"
                if not self.rate_limiter.check_limit(key):
                    self.metrics.record_rate_limit_hit("user")
                    raise RateLimitExceeded("Rate limit exceeded. Please try again in a minute.")

            cache_key = self.create_cache_key(prompt, system_message)
            use_cache = use_cache and self.enable_caching
            if use_cache:
                cached = self.cache.get(cache_key)
                self.metrics.record_cache_lookup(hit=cached is not None)
                if cached is not None:
                    self.stats.record_cache_hit()
                    self.metrics.record_ai_request("cached")
                    log.debug(f"Cache hit for AI request {cache_key}", "ai")
                    return cached
                self.stats.record_cache_miss()

            served_fallback = False
            fallback = self.recovery.fallback_for(AI_FALLBACK)

            def _fallback():
                nonlocal served_fallback
                served_fallback = True
                return fallback()

            async with self.pool.slot():
                self._update_pool_metrics()
                if self.enable_rate_limit and not self.rate_limiter.check_limit(
                        "api:chat_completions", API_CALL_LIMIT, API_CALL_WINDOW):
                    self.metrics.record_rate_limit_hit("api")
                    raise RateLimitExceeded("Outbound AI call budget exhausted")

                result = await self.recovery.execute_with_circuit_breaker(
                    AI_BREAKER,
                    lambda: self._complete(prompt, system_message),
                    _fallback if fallback is not None else None,
                )
        except Exception as error:
            classified = classify_error(error)
            self._report_failure(classified, error)
            if classified is error:
                raise
            raise classified from error
        finally:
            self._update_pool_metrics()

        if served_fallback:
            self.metrics.record_ai_request("fallback")
            return result

        if use_cache and len(result) < MAX_CACHEABLE_RESPONSE_CHARS:
            self.cache.set(cache_key, result, AI_RESPONSE_CACHE_TTL)
            self.metrics.update_cache_size(len(self.cache))

        elapsed = time.monotonic() - started
        self.stats.record_command("ai_generation", elapsed * 1000)
        self.metrics.record_ai_request("success", elapsed)
        return result

    async def _complete(self, prompt: str, system_message: str) -> str:
        """One HTTP completion call; every failure leaves here already classified."""
        self.stats.record_api_call()
        request = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            top_p=DEFAULT_TOP_P,
            frequency_penalty=DEFAULT_FREQUENCY_PENALTY,
            presence_penalty=DEFAULT_PRESENCE_PENALTY,
        )
        try:
            if self.timeout is None:
                response = await request
            else:
                response = await asyncio.wait_for(request, timeout=self.timeout)
        except AIServiceError:
            raise
        except Exception as error:
            raise classify_error(error) from error

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError) as error:
            raise InvalidResponseError("Invalid response format from AI API") from error

        if not content or not content.strip():
            raise InvalidResponseError("AI API returned an empty completion")
        return content.strip()

    def _update_pool_metrics(self):
        self.metrics.update_pool(self.pool.active, self.pool.queued)

    def _report_validation(self, error: ValidationError, caller_id):
        self.stats.record_error("ai_generation")
        self.metrics.record_error(error.category)
        log.security("VALIDATION_ERROR", user_id=caller_id, error=str(error))

    def _report_failure(self, classified: AIServiceError, original: BaseException):
        self.stats.record_error("ai_generation")
        self.metrics.record_error(classified.category)
        self.metrics.record_ai_request(classified.category)

        status = f" status={classified.status}" if classified.status else ""
        if isinstance(classified, UnknownError):
            log.error(f"Unexpected AI error: {original}", "ai")
            logger.error("Unclassified AI request failure", exc_info=original)
        elif isinstance(classified, AuthError):
            log.error(f"AI endpoint rejected credentials{status}. Check GITHUB_TOKEN and model access.", "ai")
        elif isinstance(classified, RateLimitExceeded):
            log.debug(f"AI request rate limited: {classified}", "ai")
        else:
            log.warn(f"AI request failed [{classified.category}]{status}: {classified}", "ai")
