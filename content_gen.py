# -*- coding: utf-8 -*-
"""content_gen.py

토픽 하나 -> 글 한 편 (프롬프트 구성, 응답 정리, 이미지/SEO 체이닝)

흐름
1) build_prompt  : 글 종류(post/product/docs/page), 톤, 길이, 키워드, 기존 본문(업데이트 시)
2) generate_text : 선택한 프로바이더 호출
3) parse_generated: JSON 응답 우선, 안 되면 첫 줄 제목 + 나머지 본문
4) 이미지 생성(실패해도 글은 계속), SEO 점수/재작성
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from ai_image import GeneratedImage, generate_images, image_prompt
from ai_text import generate_text
from autopost_config import AppConfig
from seo_score import SeoReport, analyze, optimize_for_seo

LENGTH_WORDS = {"short": 500, "medium": 1000, "long": 2000}

TYPE_LABELS = {
    "post": "blog article",
    "page": "website page",
    "docs": "documentation page",
    "product": "WooCommerce product description",
}

_BULLET_RE = re.compile(r"^\s*[-*]\s+")


@dataclass
class GeneratedContent:
    title: str
    content: str
    excerpt: str = ""
    meta_description: str = ""
    keywords: List[str] = field(default_factory=list)
    short_description: str = ""
    price: str = ""
    features: List[str] = field(default_factory=list)
    images: List[GeneratedImage] = field(default_factory=list)
    seo: Optional[SeoReport] = None
    provider: str = ""
    model: str = ""
    tokens: int = 0
    cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "meta_description": self.meta_description,
            "keywords": self.keywords,
            "short_description": self.short_description,
            "price": self.price,
            "features": self.features,
            "images": len(self.images),
            "seo_score": self.seo.score if self.seo else None,
            "provider": self.provider,
            "model": self.model,
            "tokens": self.tokens,
            "cost": self.cost,
        }


# -----------------------------
# Prompt
# -----------------------------

def build_prompt(topic: str, params: Dict[str, Any]) -> str:
    ptype = (params.get("type") or "post").lower()
    label = TYPE_LABELS.get(ptype, "blog article")
    words = LENGTH_WORDS.get(params.get("length") or "medium", 1000)
    tone = params.get("tone") or "professional"
    language = params.get("language") or "en"
    keywords = [k for k in (params.get("keywords") or []) if str(k).strip()]
    existing = (params.get("existing_content") or "").strip()

    lines = [
        f"Write a {label} about: {topic.strip()}",
        f"Tone: {tone}",
        f"Target length: about {words} words.",
        f"Language: {language}",
        "Structure the body with <h2> subheadings and short <p> paragraphs. Make it engaging and easy to read.",
    ]
    if keywords:
        lines.append("Target keywords (use the first one as focus keyword): " + ", ".join(keywords))
    if existing:
        lines.append(
            "This is a refresh of existing content. Keep the facts and intent, "
            "improve structure, freshness and SEO. Existing content:\n" + existing[:6000]
        )

    schema: Dict[str, Any] = {
        "title": "...",
        "meta_description": "120-160 characters",
        "excerpt": "1-2 sentences",
        "keywords": ["..."],
        "content": "<h2>...</h2><p>...</p>",
    }
    if ptype == "product":
        schema.update({"short_description": "...", "price": "e.g. 29.99", "features": ["..."]})

    lines.append("Respond with a single JSON object only, no code fences, with these keys:")
    lines.append(json.dumps(schema, ensure_ascii=False))
    return "\n".join(lines)


# -----------------------------
# Response parsing
# -----------------------------

def strip_code_fences(s: str) -> str:
    t = (s or "").strip()
    m = re.match(r"^```[a-zA-Z0-9_-]*\s*\n(.*?)\n?```\s*$", t, flags=re.S)
    return m.group(1).strip() if m else t


def _try_json(raw: str) -> Optional[Dict[str, Any]]:
    t = strip_code_fences(raw)
    for cand in (t, t[t.find("{"): t.rfind("}") + 1] if "{" in t and "}" in t else ""):
        if not cand:
            continue
        try:
            data = json.loads(cand)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _as_list(v: Any) -> List[str]:
    if isinstance(v, (list, tuple)):
        return [str(x).strip() for x in v if str(x).strip()]
    if isinstance(v, str):
        return [x.strip() for x in v.split(",") if x.strip()]
    return []


def _clean_title(s: str) -> str:
    t = re.sub(r"^\s*#+\s*", "", s or "")
    t = re.sub(r"^\s*(title|제목)\s*:\s*", "", t, flags=re.I)
    t = t.strip().strip("*").strip().strip('"').strip()
    return re.sub(r"\s+", " ", t)


def _has_html(s: str) -> bool:
    return bool(re.search(r"<(p|h[1-6]|ul|ol|div|table|blockquote)\b", s or "", flags=re.I))


def _split_long_paragraph(text: str, max_words: int = 100) -> List[str]:
    if len(text.split()) <= max_words:
        return [text]
    sentences = [s for s in re.split(r"(?<=[.!?])\s+", text) if s.strip()]
    return [" ".join(sentences[i:i + 3]) for i in range(0, len(sentences), 3)]


def _split_html_paragraphs(t: str) -> str:
    soup = BeautifulSoup(t, "html.parser")
    changed = False
    for p in soup.find_all("p"):
        para = re.sub(r"\s+", " ", p.get_text(" ")).strip()
        chunks = _split_long_paragraph(para)
        if len(chunks) < 2:
            continue
        for chunk in chunks:
            new_p = soup.new_tag("p")
            new_p.string = chunk
            p.insert_before(new_p)
        p.decompose()
        changed = True
    # 안 바뀌었으면 원문 그대로 (파서가 속성/공백을 바꾸지 않게)
    return str(soup) if changed else t


def autop(text: str) -> str:
    """일반 텍스트/마크다운 느낌의 본문을 <p>/<h2> HTML로 바꿉니다

    100단어 넘는 문단은 3문장씩 나눕니다 (이미 HTML이면 <p>만 손봄)
    """
    t = strip_code_fences(text)
    if _has_html(t):
        return _split_html_paragraphs(t)

    out: List[str] = []
    for block in re.split(r"\n\s*\n", t.replace("\r", "")):
        block = block.strip()
        if not block:
            continue
        m = re.match(r"^(#{1,6})\s+(.*)$", block)
        if m and "\n" not in block:
            level = 2 if len(m.group(1)) <= 2 else 3
            out.append(f"<h{level}>{html.escape(m.group(2).strip())}</h{level}>")
            continue
        if all(_BULLET_RE.match(ln) for ln in block.splitlines()):
            items = "".join("<li>%s</li>" % html.escape(_BULLET_RE.sub("", ln)) for ln in block.splitlines())
            out.append(f"<ul>{items}</ul>")
            continue
        para = re.sub(r"\s*\n\s*", " ", block)
        for chunk in _split_long_paragraph(para):
            out.append(f"<p>{html.escape(chunk)}</p>")
    return "\n".join(out)


def parse_generated(raw: str, topic: str) -> GeneratedContent:
    data = _try_json(raw)
    if data is not None:
        title = _clean_title(str(data.get("title") or "")) or topic.strip()
        price = data.get("price")
        return GeneratedContent(
            title=title,
            content=autop(str(data.get("content") or "")),
            excerpt=str(data.get("excerpt") or "").strip(),
            meta_description=str(data.get("meta_description") or "").strip(),
            keywords=_as_list(data.get("keywords")),
            short_description=str(data.get("short_description") or "").strip(),
            price="" if price is None else str(price).strip(),
            features=_as_list(data.get("features")),
        )

    # JSON이 아니면 첫 줄 제목 + 나머지 본문
    lines = strip_code_fences(raw).splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)
    title = _clean_title(lines[0]) if lines else ""
    body = "\n".join(lines[1:]).strip()
    if not body:
        body = "\n".join(lines).strip()
        title = ""
    return GeneratedContent(title=title or topic.strip(), content=autop(body))


# -----------------------------
# Pipeline
# -----------------------------

def generate_content(cfg: AppConfig, topic: str, params: Optional[Dict[str, Any]] = None) -> GeneratedContent:
    params = dict(params or {})
    ptype = (params.get("type") or cfg.wp.post_type or "post").lower()
    keywords = _as_list(params.get("keywords")) or list(cfg.content.keywords)

    prompt = build_prompt(topic, {
        "type": ptype,
        "tone": params.get("tone") or cfg.content.tone,
        "length": params.get("length") or cfg.content.length,
        "language": params.get("language") or cfg.content.language,
        "keywords": keywords,
        "existing_content": params.get("existing_content") or "",
    })

    result = generate_text(cfg, prompt, provider=params.get("provider"))
    content = parse_generated(result.text, topic)
    content.provider, content.model = result.provider, result.model
    content.tokens, content.cost = result.tokens, result.cost
    if not content.keywords:
        content.keywords = keywords

    want_images = params.get("generate_images")
    if want_images is None:
        want_images = cfg.content.generate_images
    if want_images:
        style = params.get("image_style") or cfg.content.image_style
        count = params.get("image_count") or (3 if ptype == "product" else cfg.content.image_count)
        try:
            content.images = generate_images(
                cfg, image_prompt(topic, style), provider=params.get("image_provider"), count=count, style=style
            )
        except Exception as e:
            # 이미지 실패는 글 생성 실패로 보지 않음
            print(f"[IMG] generation failed (content kept): {repr(e)}")

    want_seo = params.get("optimize_seo")
    if want_seo is None:
        want_seo = cfg.content.optimize_seo
    if want_seo:
        target = params.get("seo_target") or cfg.content.seo_target
        body, report = optimize_for_seo(
            cfg, content.content, content.title, target, content.keywords, content.meta_description
        )
        if body != content.content:
            content.content = autop(body)
            if content.content != body:
                report = analyze(content.content, content.title, content.keywords, content.meta_description)
        content.seo = report

    return content
