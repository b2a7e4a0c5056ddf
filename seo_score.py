# -*- coding: utf-8 -*-
"""seo_score.py

SEO 점수 계산 + AI 재작성

Yoast / Rank Math 분석기는 WP PHP 안에서만 돌아서 REST로는 못 부릅니다
그래서 두 플러그인이 공통으로 보는 항목(포커스 키워드, 길이, 소제목,
가독성, 링크, 메타 설명)을 여기서 직접 채점합니다

- yoast    : 빨간불(실패 항목)이 하나라도 있으면 개선 대상
- rankmath : 점수 80 미만이면 개선 대상
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from ai_text import generate_text
from autopost_config import SEO_TARGETS, AppConfig

RANKMATH_PASS_SCORE = 80

MIN_WORDS = 300
MIN_DENSITY = 0.5
MAX_DENSITY = 3.0
MIN_READABILITY = 50.0
MAX_PARAGRAPH_WORDS = 150
META_DESC_MIN = 120
META_DESC_MAX = 160

# (check id, weight)
WEIGHTS = {
    "keyword_in_title": 15,
    "keyword_in_intro": 10,
    "keyword_density": 15,
    "content_length": 15,
    "subheadings": 10,
    "readability": 15,
    "paragraph_length": 10,
    "links": 5,
    "meta_description": 5,
}


@dataclass
class SeoReport:
    score: int
    problems: List[str] = field(default_factory=list)
    readability: float = 0.0
    word_count: int = 0
    keyword_density: float = 0.0


# -----------------------------
# Text metrics
# -----------------------------

_WORD_RE = re.compile(r"[A-Za-zÀ-ɏ'\-]+|[0-9]+|[ㄱ-힣一-鿿]+")


def html_to_text(content: str) -> str:
    soup = BeautifulSoup(content or "", "html.parser")
    t = soup.get_text(" ")
    t = html.unescape(t)
    return re.sub(r"\s+", " ", t).strip()


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text or ""))


def count_syllables(text: str) -> int:
    t = re.sub(r"[^a-z]", " ", (text or "").lower())
    total = 0
    for w in t.split():
        total += max(1, len(re.findall(r"[aeiouy]{1,2}", w)))
    return total


def readability_score(content: str) -> float:
    """Flesch reading ease (영문 기준, 문장/단어/음절 수로 계산)"""
    text = html_to_text(content)
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    words = len(re.findall(r"[A-Za-z'\-]+", text))
    if not sentences or not words:
        return 0.0
    syllables = count_syllables(text)
    return round(206.835 - 1.015 * (words / len(sentences)) - 84.6 * (syllables / words), 2)


def keyword_density(text: str, keyword: str) -> float:
    words = count_words(text)
    kw = (keyword or "").strip().lower()
    if not words or not kw:
        return 0.0
    hits = len(re.findall(r"(?<!\w)" + re.escape(kw) + r"(?!\w)", text.lower()))
    kw_words = max(1, count_words(kw))
    return round(hits * kw_words * 100.0 / words, 2)


def _contains(haystack: str, keyword: str) -> bool:
    return bool(keyword) and keyword.strip().lower() in (haystack or "").lower()


# -----------------------------
# Analysis
# -----------------------------

def analyze(content: str, title: str = "", keywords: Optional[List[str]] = None,
            meta_description: str = "") -> SeoReport:
    soup = BeautifulSoup(content or "", "html.parser")
    text = html_to_text(content)
    words = count_words(text)
    focus = next((k.strip() for k in (keywords or []) if k and k.strip()), "")

    failed: List[Tuple[str, str]] = []

    density = keyword_density(text, focus) if focus else 0.0
    if focus:
        if not _contains(title, focus):
            failed.append(("keyword_in_title", f"Focus keyword '{focus}' does not appear in the title."))

        paragraphs = [p.get_text(" ").strip() for p in soup.find_all("p") if p.get_text(" ").strip()]
        intro = paragraphs[0] if paragraphs else text[:400]
        if not _contains(intro, focus):
            failed.append(("keyword_in_intro", f"Focus keyword '{focus}' does not appear in the first paragraph."))

        if density < MIN_DENSITY or density > MAX_DENSITY:
            failed.append((
                "keyword_density",
                f"Keyword density is {density}%, aim for {MIN_DENSITY}-{MAX_DENSITY}%.",
            ))

    if words < MIN_WORDS:
        failed.append(("content_length", f"The text contains {words} words, at least {MIN_WORDS} are recommended."))

    if not soup.find_all(["h2", "h3"]):
        failed.append(("subheadings", "No subheadings (h2/h3) are used to structure the text."))

    readability = readability_score(content)
    if readability < MIN_READABILITY:
        failed.append((
            "readability",
            f"Flesch reading ease is {readability}, use shorter sentences and simpler words.",
        ))

    long_paras = [p for p in soup.find_all("p") if count_words(p.get_text(" ")) > MAX_PARAGRAPH_WORDS]
    if long_paras:
        failed.append((
            "paragraph_length",
            f"{len(long_paras)} paragraph(s) are longer than {MAX_PARAGRAPH_WORDS} words.",
        ))

    if not soup.find_all("a", href=True):
        failed.append(("links", "No internal or outbound links are present."))

    desc_len = len((meta_description or "").strip())
    if desc_len and not (META_DESC_MIN <= desc_len <= META_DESC_MAX):
        failed.append((
            "meta_description",
            f"Meta description is {desc_len} characters, aim for {META_DESC_MIN}-{META_DESC_MAX}.",
        ))

    lost = sum(WEIGHTS[k] for k, _ in failed)
    return SeoReport(
        score=max(0, 100 - lost),
        problems=[msg for _, msg in failed],
        readability=readability,
        word_count=words,
        keyword_density=density,
    )


def needs_improvement(report: SeoReport, target: str = "yoast") -> bool:
    if target == "rankmath":
        return report.score < RANKMATH_PASS_SCORE
    return bool(report.problems)


def build_improvement_prompt(content: str, improvements: List[str], keywords: List[str]) -> str:
    return (
        "Improve this content for SEO while maintaining its meaning and tone. "
        "Focus on these improvements:\n%s\n\n"
        "Target keywords: %s\n\n"
        "Return only the improved article body as HTML (use <h2>, <p>, <ul>), "
        "without the title and without code fences.\n\n"
        "Original content:\n%s"
    ) % ("\n".join(improvements), ", ".join(keywords or []), content)


def optimize_for_seo(cfg: AppConfig, content: str, title: str = "", target: str = "yoast",
                     keywords: Optional[List[str]] = None, meta_description: str = "") -> Tuple[str, SeoReport]:
    """본문을 채점하고 필요하면 AI로 재작성한 본문을 돌려줍니다

    지원하지 않는 target이면 그대로, 재작성 실패해도 원문을 그대로 돌려줍니다
    (SEO 단계 때문에 글 발행 자체가 멈추면 안 됨)
    """
    keywords = [k for k in (keywords or []) if k and k.strip()]
    report = analyze(content, title, keywords, meta_description)
    if target not in SEO_TARGETS:
        return content, report

    if not needs_improvement(report, target):
        print(f"[SEO] {target} score={report.score} ok (no rewrite)")
        return content, report

    try:
        prompt = build_improvement_prompt(content, report.problems, keywords)
        result = generate_text(cfg, prompt, provider=cfg.providers.seo_provider, temperature=0.5)
        improved = result.text.strip()
    except Exception as e:
        print(f"[SEO] {target} optimization failed: {repr(e)}")
        return content, report

    # 점수는 재작성된 본문 기준
    new_report = analyze(improved, title, keywords, meta_description)
    print(f"[SEO] {target} score={report.score} -> {new_report.score} rewritten by {result.provider}")
    return improved, new_report
