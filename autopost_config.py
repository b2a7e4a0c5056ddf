# -*- coding: utf-8 -*-
"""autopost_config.py

AI 자동 글 생성/업데이트 스크립트 공통 설정

필수 환경변수(Secrets)
- WP_BASE_URL
- WP_USER
- WP_APP_PASS

AI 키 (사용하는 프로바이더만)
- OPENAI_API_KEY (openai 텍스트 + dalle 이미지)
- GEMINI_API_KEY
- ANTHROPIC_API_KEY
- DEEPSEEK_API_KEY
- STABILITY_API_KEY (stable_diffusion 이미지)

프로바이더 선택
- TEXT_PROVIDER=gemini|openai|anthropic|deepseek (기본 gemini)
- IMAGE_PROVIDER=stable_diffusion|dalle (기본 stable_diffusion)
- SEO_PROVIDER (기본 gemini, SEO 재작성용)

기타
- WP_STATUS=draft|publish|pending|private (기본 draft)
- POST_TYPE=post|page|docs|product (기본 post)
- GENERATE_IMAGES=1, OPTIMIZE_SEO=1, SEO_TARGET=yoast|rankmath
- BATCH_SIZE=5, BATCH_DELAY_SEC=2
- UPDATE_FREQUENCY=daily|weekly|monthly, UPDATE_BATCH_SIZE=10, SEO_THRESHOLD=70
- SQLITE_PATH (기본 data/ai_autopost.sqlite3)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

TEXT_PROVIDER_NAMES = ("openai", "gemini", "anthropic", "deepseek")
IMAGE_PROVIDER_NAMES = ("dalle", "stable_diffusion")
SEO_TARGETS = ("yoast", "rankmath")
POST_STATUSES = ("draft", "publish", "pending", "private")
POST_TYPES = ("post", "page", "docs", "product")
UPDATE_FREQUENCIES = ("daily", "weekly", "monthly")
CONTENT_LENGTHS = ("short", "medium", "long")


# -----------------------------
# Env helpers
# -----------------------------

def _env(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or "").strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except Exception:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    v = _env(name, "1" if default else "0").lower()
    return v in ("1", "true", "yes", "y", "on")


def _parse_int_list(csv: str) -> List[int]:
    out: List[int] = []
    for x in (csv or "").split(","):
        x = x.strip()
        if not x:
            continue
        try:
            out.append(int(x))
        except Exception:
            pass
    return out


def _parse_str_list(csv: str) -> List[str]:
    out: List[str] = []
    for x in (csv or "").split(","):
        x = x.strip()
        if x:
            out.append(x)
    return out


def _pick(value: str, allowed: tuple, default: str) -> str:
    v = (value or "").strip().lower()
    return v if v in allowed else default


# -----------------------------
# Config
# -----------------------------

@dataclass
class WordPressConfig:
    base_url: str
    user: str
    app_pass: str
    status: str = "draft"
    post_type: str = "post"
    category_ids: List[int] = field(default_factory=list)
    tag_ids: List[int] = field(default_factory=list)


@dataclass
class ProviderConfig:
    text_provider: str = "gemini"
    image_provider: str = "stable_diffusion"
    seo_provider: str = "gemini"

    openai_api_key: str = ""
    openai_model: str = "gpt-4-turbo"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-pro"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-opus-20240229"
    anthropic_version: str = "2023-06-01"
    deepseek_api_key: str = ""
    deepseek_model: str = "deepseek-chat"
    stability_api_key: str = ""

    image_size: str = "1024x1024"
    temperature: float = 0.7
    max_tokens: int = 2048
    max_retries: int = 3
    timeout_sec: int = 30

    def api_key(self, provider: str) -> str:
        return {
            "openai": self.openai_api_key,
            "dalle": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "anthropic": self.anthropic_api_key,
            "deepseek": self.deepseek_api_key,
            "stable_diffusion": self.stability_api_key,
        }.get(provider, "")

    def model(self, provider: str) -> str:
        return {
            "openai": self.openai_model,
            "gemini": self.gemini_model,
            "anthropic": self.anthropic_model,
            "deepseek": self.deepseek_model,
        }.get(provider, "")


@dataclass
class ContentConfig:
    tone: str = "professional"
    length: str = "medium"  # short|medium|long
    language: str = "en"
    generate_images: bool = True
    image_style: str = "professional"
    image_count: int = 1
    optimize_seo: bool = True
    seo_target: str = "yoast"  # yoast|rankmath
    keywords: List[str] = field(default_factory=list)


@dataclass
class BulkConfig:
    batch_size: int = 5
    batch_delay_sec: float = 2.0


@dataclass
class UpdateConfig:
    frequency: str = "daily"  # daily|weekly|monthly
    batch_size: int = 10
    seo_threshold: int = 70
    update_images: bool = True


@dataclass
class RunConfig:
    dry_run: bool = False
    debug: bool = False


@dataclass
class AppConfig:
    wp: WordPressConfig
    providers: ProviderConfig
    content: ContentConfig
    bulk: BulkConfig
    update: UpdateConfig
    run: RunConfig
    sqlite_path: str = "data/ai_autopost.sqlite3"


def load_cfg() -> AppConfig:
    return AppConfig(
        wp=WordPressConfig(
            base_url=_env("WP_BASE_URL").rstrip("/"),
            user=_env("WP_USER"),
            app_pass=_env("WP_APP_PASS"),
            status=_pick(_env("WP_STATUS", "draft"), POST_STATUSES, "draft"),
            post_type=_pick(_env("POST_TYPE", "post"), POST_TYPES, "post"),
            category_ids=_parse_int_list(_env("WP_CATEGORY_IDS", "")),
            tag_ids=_parse_int_list(_env("WP_TAG_IDS", "")),
        ),
        providers=ProviderConfig(
            # 이름 검증은 validate_cfg에서 (오타를 조용히 기본값으로 바꾸지 않음)
            text_provider=(_env("TEXT_PROVIDER", "gemini") or "gemini").lower(),
            image_provider=(_env("IMAGE_PROVIDER", "stable_diffusion") or "stable_diffusion").lower(),
            seo_provider=(_env("SEO_PROVIDER", "gemini") or "gemini").lower(),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_model=_env("OPENAI_MODEL", "gpt-4-turbo") or "gpt-4-turbo",
            gemini_api_key=_env("GEMINI_API_KEY"),
            gemini_model=_env("GEMINI_MODEL", "gemini-1.5-pro") or "gemini-1.5-pro",
            anthropic_api_key=_env("ANTHROPIC_API_KEY"),
            anthropic_model=_env("ANTHROPIC_MODEL", "claude-3-opus-20240229") or "claude-3-opus-20240229",
            anthropic_version=_env("ANTHROPIC_VERSION", "2023-06-01") or "2023-06-01",
            deepseek_api_key=_env("DEEPSEEK_API_KEY"),
            deepseek_model=_env("DEEPSEEK_MODEL", "deepseek-chat") or "deepseek-chat",
            stability_api_key=_env("STABILITY_API_KEY"),
            image_size=_env("IMAGE_SIZE", "1024x1024") or "1024x1024",
            temperature=_env_float("AI_TEMPERATURE", 0.7),
            max_tokens=_env_int("AI_MAX_TOKENS", 2048),
            max_retries=_env_int("AI_MAX_RETRIES", 3),
            timeout_sec=_env_int("AI_TIMEOUT_SEC", 30),
        ),
        content=ContentConfig(
            tone=_env("CONTENT_TONE", "professional") or "professional",
            length=_pick(_env("CONTENT_LENGTH", "medium"), CONTENT_LENGTHS, "medium"),
            language=_env("CONTENT_LANGUAGE", "en") or "en",
            generate_images=_env_bool("GENERATE_IMAGES", True),
            image_style=_env("IMAGE_STYLE", "professional") or "professional",
            image_count=max(1, _env_int("IMAGE_COUNT", 1)),
            optimize_seo=_env_bool("OPTIMIZE_SEO", True),
            seo_target=(_env("SEO_TARGET", "yoast") or "yoast").lower(),
            keywords=_parse_str_list(_env("KEYWORDS", "")),
        ),
        bulk=BulkConfig(
            batch_size=max(1, _env_int("BATCH_SIZE", 5)),
            batch_delay_sec=max(0.0, _env_float("BATCH_DELAY_SEC", 2.0)),
        ),
        update=UpdateConfig(
            frequency=_pick(_env("UPDATE_FREQUENCY", "daily"), UPDATE_FREQUENCIES, "daily"),
            batch_size=max(1, _env_int("UPDATE_BATCH_SIZE", 10)),
            seo_threshold=_env_int("SEO_THRESHOLD", 70),
            update_images=_env_bool("UPDATE_IMAGES", True),
        ),
        run=RunConfig(
            dry_run=_env_bool("DRY_RUN", False),
            debug=_env_bool("DEBUG", False),
        ),
        sqlite_path=_env("SQLITE_PATH", "data/ai_autopost.sqlite3") or "data/ai_autopost.sqlite3",
    )


def validate_cfg(cfg: AppConfig, require_wp: bool = True) -> None:
    missing = []
    if require_wp:
        if not cfg.wp.base_url:
            missing.append("WP_BASE_URL")
        if not cfg.wp.user:
            missing.append("WP_USER")
        if not cfg.wp.app_pass:
            missing.append("WP_APP_PASS")
    if cfg.providers.text_provider not in TEXT_PROVIDER_NAMES:
        missing.append(f"TEXT_PROVIDER (unsupported: {cfg.providers.text_provider})")
    if cfg.providers.seo_provider not in TEXT_PROVIDER_NAMES:
        missing.append(f"SEO_PROVIDER (unsupported: {cfg.providers.seo_provider})")
    if cfg.providers.image_provider not in IMAGE_PROVIDER_NAMES:
        missing.append(f"IMAGE_PROVIDER (unsupported: {cfg.providers.image_provider})")
    if cfg.content.seo_target not in SEO_TARGETS:
        missing.append(f"SEO_TARGET (unsupported: {cfg.content.seo_target})")
    if not cfg.providers.api_key(cfg.providers.text_provider):
        missing.append(f"API key for {cfg.providers.text_provider}")
    if missing:
        raise RuntimeError("필수 설정 누락:\n- " + "\n- ".join(missing))


def print_safe_cfg(cfg: AppConfig) -> None:
    def ok(v: str) -> str:
        return f"OK(len={len(v)})" if v else "EMPTY"

    p = cfg.providers
    print("[CFG] WP_BASE_URL:", "OK" if cfg.wp.base_url else "EMPTY")
    print("[CFG] WP_USER:", ok(cfg.wp.user))
    print("[CFG] WP_APP_PASS:", ok(cfg.wp.app_pass))
    print("[CFG] WP_STATUS:", cfg.wp.status, "| POST_TYPE:", cfg.wp.post_type)
    print("[CFG] WP_CATEGORY_IDS:", cfg.wp.category_ids, "| WP_TAG_IDS:", cfg.wp.tag_ids)
    print("[CFG] TEXT_PROVIDER:", p.text_provider, "| MODEL:", p.model(p.text_provider), "| KEY:", ok(p.api_key(p.text_provider)))
    print("[CFG] IMAGE_PROVIDER:", p.image_provider, "| KEY:", ok(p.api_key(p.image_provider)))
    print("[CFG] SEO_PROVIDER:", p.seo_provider, "| SEO_TARGET:", cfg.content.seo_target)
    print("[CFG] GENERATE_IMAGES:", cfg.content.generate_images, "| OPTIMIZE_SEO:", cfg.content.optimize_seo)
    print("[CFG] BATCH_SIZE:", cfg.bulk.batch_size, "| BATCH_DELAY_SEC:", cfg.bulk.batch_delay_sec)
    print("[CFG] UPDATE_FREQUENCY:", cfg.update.frequency, "| UPDATE_BATCH_SIZE:", cfg.update.batch_size, "| SEO_THRESHOLD:", cfg.update.seo_threshold)
    print("[CFG] SQLITE_PATH:", cfg.sqlite_path)
    print("[CFG] DRY_RUN:", cfg.run.dry_run, "| DEBUG:", cfg.run.debug)
