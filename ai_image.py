# -*- coding: utf-8 -*-
"""ai_image.py

이미지 생성 프로바이더 디스패치

- dalle            : openai SDK images.generate (url 또는 b64_json)
- stable_diffusion : Stability REST text-to-image (artifacts[].base64)

결과는 항상 바이트(GeneratedImage)로 맞춰서 WP 미디어 업로드에 바로 씁니다
외부 URL을 본문에 직접 박으면 만료/핫링크 차단으로 엑박이 뜨기 때문
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import requests
from openai import OpenAI

from ai_text import RATE_LIMITER, ProviderError, call_with_retry, post_json
from autopost_config import AppConfig

STABILITY_API_URL = "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"

STABILITY_STYLE_PRESETS = (
    "3d-model", "analog-film", "anime", "cinematic", "comic-book", "digital-art", "enhance",
    "fantasy-art", "isometric", "line-art", "low-poly", "modeling-compound", "neon-punk",
    "origami", "photographic", "pixel-art", "tile-texture",
)


@dataclass
class GeneratedImage:
    content: bytes
    content_type: str
    provider: str


def image_prompt(topic: str, style: str = "professional") -> str:
    s = re.sub(r"\s+", " ", (style or "professional").strip())
    return f"Create {s} image for: {(topic or '').strip()}. No text, no watermark."


# -----------------------------
# Download helpers
# -----------------------------

def guess_ext_and_type(content_type: str) -> Tuple[str, str]:
    c = (content_type or "").split(";")[0].strip().lower()
    if c in ("image/jpeg", "image/jpg"):
        return ".jpg", "image/jpeg"
    if c == "image/png":
        return ".png", "image/png"
    if c == "image/webp":
        return ".webp", "image/webp"
    if c == "image/gif":
        return ".gif", "image/gif"
    return ".jpg", "image/jpeg"


def sniff_image_type(b: bytes) -> str:
    if not b or len(b) < 12:
        return ""
    if b[:3] == b"\xFF\xD8\xFF":
        return "image/jpeg"
    if b[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if b[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if b[:4] == b"RIFF" and b[8:12] == b"WEBP":
        return "image/webp"
    return ""


def download_image_bytes(url: str, timeout_sec: int = 40) -> Tuple[bytes, str]:
    """이미지 URL을 받아 (bytes, content-type) 반환

    차단 페이지(HTML)를 이미지로 착각해 업로드하지 않도록 content-type과
    매직바이트를 같이 확인합니다
    """
    headers = {
        "User-Agent": "Mozilla/5.0 (compatible; ai-autopost-bot/1.0)",
        "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
    }
    r = requests.get(url, headers=headers, timeout=(5, max(5, timeout_sec)), allow_redirects=True)
    if r.status_code != 200 or not r.content:
        raise RuntimeError(f"image download failed: {r.status_code}")

    ctype = (r.headers.get("Content-Type", "") or "").split(";")[0].strip().lower()
    b = r.content
    sniffed = sniff_image_type(b)
    if sniffed:
        return b, sniffed
    if ctype.startswith("image/") and len(b) > 1024:
        return b, ctype

    head = b[:200].decode("utf-8", errors="ignore").strip().replace("\n", " ")[:200]
    raise RuntimeError(f"downloaded content is not an image (ctype={ctype or 'unknown'} head={head!r})")


# -----------------------------
# Providers
# -----------------------------

def _dalle_images(cfg: AppConfig, prompt: str, count: int, style: str) -> List[GeneratedImage]:
    p = cfg.providers
    client = OpenAI(api_key=p.openai_api_key, timeout=max(60, p.timeout_sec), max_retries=0)

    out: List[GeneratedImage] = []
    # dall-e-3는 요청당 n=1만 허용
    for _ in range(count):
        resp = client.images.generate(model="dall-e-3", prompt=prompt, n=1, size=p.image_size)
        data0 = resp.data[0] if getattr(resp, "data", None) else None
        if data0 is None:
            continue

        b64 = getattr(data0, "b64_json", None)
        img_url = getattr(data0, "url", None)
        if b64:
            raw = base64.b64decode(b64)
            out.append(GeneratedImage(raw, sniff_image_type(raw) or "image/png", "dalle"))
        elif img_url and str(img_url).startswith("http"):
            raw, ctype = download_image_bytes(str(img_url))
            out.append(GeneratedImage(raw, ctype, "dalle"))
    return out


def _stability_style(style: str) -> str:
    s = (style or "").strip().lower()
    return s if s in STABILITY_STYLE_PRESETS else "photographic"


def _stable_diffusion_images(cfg: AppConfig, prompt: str, count: int, style: str) -> List[GeneratedImage]:
    p = cfg.providers
    headers = {"Authorization": f"Bearer {p.stability_api_key}", "Accept": "application/json"}
    payload = {
        "text_prompts": [{"text": prompt}],
        "samples": count,
        "style_preset": _stability_style(style),
        "width": 1024,
        "height": 1024,
    }
    data = post_json(STABILITY_API_URL, headers, payload, max(60, p.timeout_sec))

    out: List[GeneratedImage] = []
    for art in data.get("artifacts") or []:
        b64 = (art or {}).get("base64")
        if not b64:
            continue
        if str(art.get("finishReason") or "SUCCESS").upper() == "CONTENT_FILTERED":
            continue
        raw = base64.b64decode(b64)
        out.append(GeneratedImage(raw, sniff_image_type(raw) or "image/png", "stable_diffusion"))
    return out


IMAGE_PROVIDERS: Dict[str, Callable[[AppConfig, str, int, str], List[GeneratedImage]]] = {
    "dalle": _dalle_images,
    "stable_diffusion": _stable_diffusion_images,
}


def generate_images(cfg: AppConfig, prompt: str, provider: Optional[str] = None, count: int = 1,
                    style: str = "professional") -> List[GeneratedImage]:
    name = (provider or cfg.providers.image_provider or "").strip().lower()
    handler = IMAGE_PROVIDERS.get(name)
    if handler is None:
        raise ProviderError(f"Unsupported image provider: {name}")
    if not cfg.providers.api_key(name):
        raise ProviderError(f"API key not configured for provider: {name}")

    count = max(1, int(count or 1))
    RATE_LIMITER.check_limit(name)
    images: List[GeneratedImage] = call_with_retry(
        lambda: handler(cfg, prompt, count, style), cfg.providers.max_retries, cfg.run.debug, name
    )
    if not images:
        raise ProviderError(f"No image returned from {name}")
    if cfg.run.debug:
        print(f"[IMG] {name} generated={len(images)}")
    return images
