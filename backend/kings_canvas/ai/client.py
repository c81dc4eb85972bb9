from __future__ import annotations

import random
import time
from dataclasses import dataclass
from functools import partial
from typing import Any

import anyio
from openai import OpenAI

from ..observability.logging import get_logger
from ..settings import Settings, get_settings

log = get_logger("ai")


class AiError(RuntimeError):
    pass


class AiNotConfigured(AiError):
    pass


class AiUpstreamError(AiError):
    pass


class AiParseError(AiError):
    pass


_RETRYABLE_STATUS = (408, 409, 425, 429, 500, 502, 503, 504)


def _status_code(exc: Exception) -> int | None:
    for attr in ("status_code", "status", "http_status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    v = getattr(getattr(exc, "response", None), "status_code", None)
    return v if isinstance(v, int) else None


def _is_retryable(exc: Exception) -> bool:
    if _status_code(exc) in _RETRYABLE_STATUS:
        return True
    msg = (str(exc) or "").lower()
    return any(k in msg for k in ("timeout", "timed out", "temporarily unavailable", "connection", "rate limit"))


def _is_model_access_error(exc: Exception) -> bool:
    msg = (str(exc) or "").lower()
    return "model_not_found" in msg or "not have access to model" in msg


@dataclass
class CircuitBreaker:
    """
    Opens briefly after repeated retryable upstream failures so a struggling
    provider isn't stampeded. Spaced-out failures decay the counter.
    """

    threshold: int = 5
    open_for_s: float = 15.0
    decay_after_s: float = 60.0
    failures: int = 0
    last_failure_at: float = 0.0
    open_until: float = 0.0

    def check(self, now: float | None = None) -> None:
        now = time.time() if now is None else now
        if self.open_until and now < self.open_until:
            raise AiUpstreamError("ai_temporarily_unavailable")

    def record_success(self) -> None:
        self.failures = 0
        self.last_failure_at = 0.0
        self.open_until = 0.0

    def record_failure(self, exc: Exception, now: float | None = None) -> None:
        if not _is_retryable(exc):
            return
        now = time.time() if now is None else now
        if self.last_failure_at and (now - self.last_failure_at) > self.decay_after_s:
            self.failures = 0
        self.last_failure_at = now
        self.failures += 1
        if self.failures >= self.threshold:
            self.open_until = now + self.open_for_s


_BREAKER = CircuitBreaker()


@dataclass(frozen=True)
class AiMeta:
    purpose: str
    model: str
    attempts: int


def _models_to_try(purpose: str, settings: Settings) -> list[str]:
    out: list[str] = []
    for m in (settings.openai_model_for(purpose), settings.openai_model, "gpt-4o-mini"):
        m = str(m or "").strip()
        if m and m not in out:
            out.append(m)
    return out


def _client(settings: Settings, *, timeout_s: int = 60) -> Any:
    if not settings.openai_api_key:
        raise AiNotConfigured("OPENAI_API_KEY not configured")
    headers: dict[str, str] = {}
    if settings.openai_project_id and str(settings.openai_project_id).strip():
        headers["OpenAI-Project"] = str(settings.openai_project_id).strip()
    if settings.openai_organization_id and str(settings.openai_organization_id).strip():
        headers["OpenAI-Organization"] = str(settings.openai_organization_id).strip()
    # Retries happen in call_text.
    return OpenAI(
        api_key=settings.openai_api_key,
        max_retries=0,
        timeout=max(5, int(timeout_s or 60)),
        default_headers=headers or None,
    )


def _create_completion(client: Any, *, model: str, messages: list[dict[str, str]], max_tokens: int, temperature: float):
    try:
        return client.chat.completions.create(
            model=model,
            messages=messages,
            max_completion_tokens=max_tokens,
            temperature=temperature,
        )
    except Exception as e:
        msg = (str(e) or "").lower()
        if "unsupported parameter" in msg and "max_completion_tokens" in msg:
            return client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        raise


def call_text(
    *,
    purpose: str,
    messages: list[dict[str, str]],
    max_tokens: int = 1200,
    temperature: float = 0.4,
    retries: int = 2,
    timeout_s: int | None = None,
    settings: Settings | None = None,
    breaker: CircuitBreaker | None = None,
) -> tuple[str, AiMeta]:
    """
    Blocking chat completion with model fallback, jittered retries and the
    circuit breaker. An empty completion is returned as "" rather than retried.
    """
    settings = settings or get_settings()
    breaker = breaker or _BREAKER
    if not settings.openai_api_key:
        raise AiNotConfigured("OPENAI_API_KEY not configured")
    breaker.check()

    max_tokens = int(min(int(max_tokens), int(settings.openai_max_output_tokens_cap or max_tokens)))
    client = _client(settings, timeout_s=timeout_s or settings.openai_timeout_seconds)

    last_err: Exception | None = None
    models = _models_to_try(purpose, settings)
    for model in models:
        for attempt in range(1, max(1, int(retries) + 1) + 1):
            try:
                completion = _create_completion(
                    client, model=model, messages=messages, max_tokens=max_tokens, temperature=temperature
                )
                out = (completion.choices[0].message.content or "").strip()
                breaker.record_success()
                log.info("ai_call_ok", purpose=purpose, model=model, attempts=attempt)
                return out, AiMeta(purpose=purpose, model=model, attempts=attempt)
            except Exception as e:
                last_err = e
                breaker.record_failure(e)
                if _is_model_access_error(e):
                    log.warning("ai_model_unavailable", purpose=purpose, model=model, error=str(e))
                    break
                log.warning(
                    "ai_text_failed",
                    purpose=purpose,
                    model=model,
                    attempt=attempt,
                    error=str(e),
                    status_code=_status_code(e),
                )
                if not _is_retryable(e):
                    break
                time.sleep(min(2.5, 0.3 * (2 ** (attempt - 1)) + random.random() * 0.15))

    if last_err is not None and _is_model_access_error(last_err):
        raise AiNotConfigured(
            f"No configured OpenAI model is available for purpose '{purpose}'. "
            "Check OPENAI_MODEL / OPENAI_MODEL_OPPORTUNITIES."
        ) from last_err
    raise AiUpstreamError(str(last_err) if last_err else "ai_text_failed") from last_err


_SYSTEM_PROMPT = (
    "You generate structured opportunity suggestions for university students. "
    "Reply with JSON only."
)


class OpenAICompletionClient:
    """Async completion collaborator backed by OpenAI chat completions."""

    def __init__(
        self,
        *,
        purpose: str = "simulate_opportunities",
        max_tokens: int = 1200,
        temperature: float = 0.4,
        retries: int = 2,
        settings: Settings | None = None,
    ):
        self.purpose = purpose
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.retries = retries
        self._settings = settings

    async def complete(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        fn = partial(
            call_text,
            purpose=self.purpose,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            retries=self.retries,
            settings=self._settings,
        )
        out, _meta = await anyio.to_thread.run_sync(fn)
        return out
