# -*- coding: utf-8 -*-
"""ai_text.py

텍스트 생성 프로바이더 디스패치

- openai   : openai SDK (chat.completions)
- deepseek : openai SDK + base_url (OpenAI 호환 API)
- gemini   : REST generateContent
- anthropic: REST /v1/messages

프로바이더마다 응답 모양이 달라서 여기서 TextResult 하나로 맞춥니다
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import openai
import requests
from openai import OpenAI

from autopost_config import AppConfig

SYSTEM_PROMPT = "You are a professional content writer."

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEEPSEEK_API_BASE = "https://api.deepseek.com/v1"

# 1K 토큰당 대략 비용(USD), 모르는 모델은 DEFAULT_COST_RATE
COST_RATES: Dict[str, float] = {
    "gpt-4": 0.03,
    "gpt-4-turbo": 0.01,
    "gpt-4o": 0.005,
    "gpt-4o-mini": 0.0006,
    "gpt-3.5-turbo": 0.002,
    "deepseek-chat": 0.001,
}
DEFAULT_COST_RATE = 0.002


class ProviderError(RuntimeError):
    pass


class RateLimitExceeded(ProviderError):
    pass


class RetryableHTTPError(ProviderError):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class TextResult:
    text: str
    provider: str
    model: str
    tokens: int = 0
    cost: float = 0.0


# -----------------------------
# Rate limit (분당 요청 수)
# -----------------------------

class RateLimiter:
    DEFAULT_LIMITS = {
        "openai": 60,
        "gemini": 100,
        "anthropic": 50,
        "deepseek": 50,
        "dalle": 60,
        "stable_diffusion": 150,
    }

    def __init__(self, limits: Optional[Dict[str, int]] = None, window_sec: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.limits = dict(self.DEFAULT_LIMITS)
        if limits:
            self.limits.update(limits)
        self.window_sec = window_sec
        self.clock = clock
        self._usage: Dict[str, Dict[str, float]] = {}

    def check_limit(self, provider: str) -> None:
        now = self.clock()
        usage = self._usage.get(provider)
        if usage is None or now >= usage["reset_at"]:
            usage = {"count": 0, "reset_at": now + self.window_sec}
            self._usage[provider] = usage

        limit = self.limits.get(provider)
        if limit is not None and usage["count"] >= limit:
            raise RateLimitExceeded(f"Rate limit exceeded for {provider} ({limit} requests/min)")
        usage["count"] += 1

    def reset(self) -> None:
        self._usage.clear()


RATE_LIMITER = RateLimiter()


# -----------------------------
# Retry helpers
# -----------------------------

def _is_insufficient_quota_error(e: Exception) -> bool:
    s = ((repr(e) or "") + " " + (str(e) or "")).lower()
    return ("insufficient_quota" in s) or ("exceeded your current quota" in s) or ("check your plan and billing" in s)


def _is_retryable(e: Exception) -> bool:
    if _is_insufficient_quota_error(e):
        return False
    if isinstance(e, RetryableHTTPError):
        return True
    if isinstance(e, (requests.Timeout, requests.ConnectionError)):
        return True
    if isinstance(e, openai.RateLimitError):
        return True
    if isinstance(e, openai.APIStatusError):
        return e.status_code >= 500
    if isinstance(e, (openai.APIConnectionError, openai.APITimeoutError)):
        return True
    return False


def call_with_retry(fn: Callable[[], Any], max_retries: int, debug: bool = False, label: str = "AI") -> Any:
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if attempt >= max_retries or not _is_retryable(e):
                raise
            sleep_s = (2 ** attempt) + random.random()
            if debug:
                print(f"[{label.upper()}] retry in {sleep_s:.2f}s | {repr(e)}")
            time.sleep(sleep_s)
    raise ProviderError(f"{label}: retries exhausted")


def _error_message(data: Any) -> str:
    err = data.get("error") if isinstance(data, dict) else None
    if not err:
        return ""
    if isinstance(err, dict):
        return str(err.get("message") or err.get("type") or "Unknown API error")
    return str(err)


def post_json(url: str, headers: Dict[str, str], payload: Dict[str, Any], timeout: int) -> Dict[str, Any]:
    r = requests.post(url, headers={**headers, "Content-Type": "application/json"}, json=payload, timeout=timeout)
    if r.status_code == 429 or r.status_code >= 500:
        raise RetryableHTTPError(f"HTTP {r.status_code} body={r.text[:300]}", r.status_code)
    try:
        data = r.json()
    except ValueError:
        raise ProviderError(f"Invalid JSON response (HTTP {r.status_code}) body={r.text[:300]}")

    msg = _error_message(data)
    if msg:
        raise ProviderError(msg)
    if r.status_code not in (200, 201):
        raise ProviderError(f"HTTP {r.status_code} body={r.text[:300]}")
    if not isinstance(data, dict):
        raise ProviderError("Unexpected response shape")
    return data


def estimate_cost(tokens: int, model: str) -> float:
    rate = COST_RATES.get(model, DEFAULT_COST_RATE)
    return round((max(0, int(tokens or 0)) / 1000.0) * rate, 6)


# -----------------------------
# Provider handlers
# -----------------------------

def _opt(opts: Dict[str, Any], key: str, default: Any) -> Any:
    v = opts.get(key)
    return default if v is None else v


def _openai_compatible_chat(cfg: AppConfig, prompt: str, opts: Dict[str, Any], provider: str,
                            base_url: Optional[str]) -> TextResult:
    p = cfg.providers
    model = _opt(opts, "model", p.model(provider))
    kwargs: Dict[str, Any] = {"api_key": p.api_key(provider), "timeout": p.timeout_sec, "max_retries": 0}
    if base_url:
        kwargs["base_url"] = base_url
    client = OpenAI(**kwargs)

    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": _opt(opts, "system", SYSTEM_PROMPT)},
            {"role": "user", "content": prompt},
        ],
        temperature=_opt(opts, "temperature", p.temperature),
        max_tokens=_opt(opts, "max_tokens", p.max_tokens),
    )

    text = ""
    if getattr(resp, "choices", None):
        msg = resp.choices[0].message
        text = str(getattr(msg, "content", "") or "")
    usage = getattr(resp, "usage", None)
    tokens = int(getattr(usage, "total_tokens", 0) or 0) if usage is not None else 0
    return TextResult(text=text, provider=provider, model=model, tokens=tokens, cost=estimate_cost(tokens, model))


def _openai_text(cfg: AppConfig, prompt: str, opts: Dict[str, Any]) -> TextResult:
    return _openai_compatible_chat(cfg, prompt, opts, "openai", None)


def _deepseek_text(cfg: AppConfig, prompt: str, opts: Dict[str, Any]) -> TextResult:
    return _openai_compatible_chat(cfg, prompt, opts, "deepseek", DEEPSEEK_API_BASE)


def _gemini_text(cfg: AppConfig, prompt: str, opts: Dict[str, Any]) -> TextResult:
    p = cfg.providers
    model = _opt(opts, "model", p.gemini_model)
    url = f"{GEMINI_API_BASE}/models/{model}:generateContent"
    payload = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": _opt(opts, "temperature", p.temperature),
            "topK": _opt(opts, "top_k", 40),
            "topP": _opt(opts, "top_p", 0.95),
            "maxOutputTokens": _opt(opts, "max_tokens", p.max_tokens),
        },
    }
    data = post_json(url, {"x-goog-api-key": p.gemini_api_key}, payload, p.timeout_sec)

    text = ""
    candidates = data.get("candidates") or []
    if candidates:
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        text = "".join(str(x.get("text") or "") for x in parts if isinstance(x, dict))
    tokens = int((data.get("usageMetadata") or {}).get("totalTokenCount") or 0)
    return TextResult(text=text, provider="gemini", model=model, tokens=tokens, cost=estimate_cost(tokens, model))


def _anthropic_text(cfg: AppConfig, prompt: str, opts: Dict[str, Any]) -> TextResult:
    p = cfg.providers
    model = _opt(opts, "model", p.anthropic_model)
    headers = {"x-api-key": p.anthropic_api_key, "anthropic-version": p.anthropic_version}
    payload = {
        "model": model,
        "system": _opt(opts, "system", SYSTEM_PROMPT),
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": _opt(opts, "max_tokens", p.max_tokens),
        "temperature": _opt(opts, "temperature", p.temperature),
    }
    data = post_json(ANTHROPIC_API_URL, headers, payload, p.timeout_sec)

    blocks = data.get("content") or []
    text = "".join(str(b.get("text") or "") for b in blocks if isinstance(b, dict) and b.get("type", "text") == "text")
    usage = data.get("usage") or {}
    tokens = int(usage.get("input_tokens") or 0) + int(usage.get("output_tokens") or 0)
    return TextResult(text=text, provider="anthropic", model=model, tokens=tokens, cost=estimate_cost(tokens, model))


TEXT_PROVIDERS: Dict[str, Callable[[AppConfig, str, Dict[str, Any]], TextResult]] = {
    "openai": _openai_text,
    "gemini": _gemini_text,
    "anthropic": _anthropic_text,
    "deepseek": _deepseek_text,
}


def generate_text(cfg: AppConfig, prompt: str, provider: Optional[str] = None, **opts: Any) -> TextResult:
    name = (provider or cfg.providers.text_provider or "").strip().lower()
    handler = TEXT_PROVIDERS.get(name)
    if handler is None:
        raise ProviderError(f"Unsupported AI provider: {name}")
    if not cfg.providers.api_key(name):
        raise ProviderError(f"API key not configured for provider: {name}")

    RATE_LIMITER.check_limit(name)
    result = call_with_retry(lambda: handler(cfg, prompt, opts), cfg.providers.max_retries, cfg.run.debug, name)

    if not (result.text or "").strip():
        raise ProviderError(f"Empty response from {name} ({result.model})")
    if cfg.run.debug:
        print(f"[AI] {name} model={result.model} tokens={result.tokens} cost=${result.cost:.4f}")
    return result
