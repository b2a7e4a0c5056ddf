# -*- coding: utf-8 -*-
"""bulk_topics_to_wp.py

토픽 목록 -> AI 글 생성 -> WordPress 글(또는 WooCommerce 상품) 일괄 등록

토픽 입력 (합쳐서 사용, 중복 제거)
- --topic "..." (여러 번 가능)
- --topics-file topics.txt (한 줄에 하나)
- TOPICS 환경변수 (한 줄에 하나)
- --rss URL (피드 제목을 토픽으로)

옵션
- --type post|page|docs|product
- --status draft|publish|pending|private
- --out results.json
- --dry-run : 생성만 하고 WP 발행 생략
- --debug

배치
- BATCH_SIZE 개씩 처리, 배치 사이에만 BATCH_DELAY_SEC 대기
- 토픽 하나가 실패해도 나머지는 계속 진행 (결과에 error 기록)
"""

from __future__ import annotations

import json
import os
import re
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import feedparser
import requests

from ai_image import guess_ext_and_type
from autopost_config import POST_STATUSES, POST_TYPES, AppConfig, load_cfg, print_safe_cfg, validate_cfg
from content_gen import GeneratedContent, generate_content
from gen_history import init_db, is_duplicate_topic, log_event, record_generation, save_content_state
from wp_rest import (
    slugify,
    wc_create_product,
    wp_create_post,
    wp_find_post_by_slug,
    wp_get_or_create_tag_id,
    wp_upload_media_bytes,
)

MAX_AUTO_TAGS = 5


@dataclass
class BulkResult:
    success: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -----------------------------
# Topic sources
# -----------------------------

def clean_topics(topics: List[str]) -> List[str]:
    out: List[str] = []
    seen = set()
    for t in topics or []:
        s = re.sub(r"\s+", " ", str(t or "")).strip()
        if not s or s.lower() in seen:
            continue
        seen.add(s.lower())
        out.append(s)
    return out


def read_topics_file(path: str) -> List[str]:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"topics file not found: {path}")
    lines = p.read_text(encoding="utf-8").splitlines()
    return [x for x in lines if x.strip() and not x.strip().startswith("#")]


def fetch_rss_topics(url: str, limit: int = 20, timeout: int = 20) -> List[str]:
    r = requests.get(url, timeout=timeout, headers={"User-Agent": "ai-autopost-bot/1.0"})
    if r.status_code != 200:
        raise RuntimeError(f"RSS fetch failed: {r.status_code} url={url}")
    parsed = feedparser.parse(r.content)
    out: List[str] = []
    for e in parsed.entries[: max(1, limit)]:
        t = (getattr(e, "title", "") or "").strip()
        if t:
            out.append(t)
    return out


def collect_topics(args: Dict[str, Any]) -> List[str]:
    topics: List[str] = list(args.get("topics") or [])
    if args.get("topics_file"):
        topics.extend(read_topics_file(args["topics_file"]))
    env_topics = os.getenv("TOPICS", "") or ""
    topics.extend(env_topics.splitlines())
    for url in args.get("rss") or []:
        try:
            items = fetch_rss_topics(url)
            print(f"[RSS] {url} -> {len(items)} topics")
            topics.extend(items)
        except Exception as e:
            print(f"[RSS] failed: {url} | {repr(e)}")
    return clean_topics(topics)


# -----------------------------
# Single topic
# -----------------------------

def _upload_images(cfg: AppConfig, content: GeneratedContent, slug: str) -> List[int]:
    media_ids: List[int] = []
    for i, img in enumerate(content.images, start=1):
        ext, ctype = guess_ext_and_type(img.content_type)
        filename = f"{slug or 'ai-image'}-{i}{ext}"
        try:
            mid, url = wp_upload_media_bytes(cfg.wp, img.content, filename, ctype)
            media_ids.append(mid)
            print(f"[IMG] uploaded: {mid} {url}")
        except Exception as e:
            print(f"[IMG] upload failed ({filename}): {repr(e)}")
    return media_ids


def _tag_ids(cfg: AppConfig, keywords: List[str]) -> List[int]:
    ids: List[int] = []
    for name in keywords[:MAX_AUTO_TAGS]:
        try:
            tid = wp_get_or_create_tag_id(cfg.wp, name)
        except Exception as e:
            if cfg.run.debug:
                print(f"[TAG] failed: {name} | {repr(e)}")
            continue
        if tid:
            ids.append(tid)
    return ids


def handle_single_topic(cfg: AppConfig, topic: str, settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    settings = dict(settings or {})
    post_type = (settings.get("type") or cfg.wp.post_type or "post").lower()
    status = settings.get("status") or cfg.wp.status

    content = generate_content(cfg, topic, {**settings, "type": post_type})
    seo_score = content.seo.score if content.seo else None

    if cfg.run.dry_run:
        print(f"[DRY_RUN] 발행 생략: {content.title} | images={len(content.images)} seo={seo_score}")
        if cfg.run.debug:
            print(content.content[:1500])
        return {"post_id": 0, "permalink": "", "title": content.title, "seo_score": seo_score}

    slug = slugify(topic)
    media_ids = _upload_images(cfg, content, slug)

    if post_type == "product":
        post_id, link = wc_create_product(cfg.wp, content, status=status, image_ids=media_ids)
    else:
        tag_ids = _tag_ids(cfg, content.keywords) if post_type == "post" else []
        post_id, link = wp_create_post(
            cfg.wp,
            content.title,
            content.content,
            status=status,
            post_type=post_type,
            excerpt=content.excerpt,
            slug=slug,
            featured_media=media_ids[0] if media_ids else 0,
            tag_ids=tag_ids,
        )
    print("OK(created):", post_id, link)

    save_content_state(
        cfg.sqlite_path, post_id, post_type=post_type, topic=topic,
        keywords=content.keywords, auto_update=True, seo_score=seo_score,
    )
    record_generation(
        cfg.sqlite_path, post_id, post_type, "success", topic,
        {"provider": content.provider, "model": content.model, "tokens": content.tokens,
         "cost": content.cost, "seo_score": seo_score},
    )
    return {"post_id": post_id, "permalink": link, "title": content.title, "seo_score": seo_score}


def _is_duplicate(cfg: AppConfig, topic: str, post_type: str) -> bool:
    if is_duplicate_topic(cfg.sqlite_path, topic):
        return True
    if cfg.run.dry_run or post_type == "product":
        return False
    try:
        return wp_find_post_by_slug(cfg.wp, slugify(topic), post_type) is not None
    except Exception as e:
        if cfg.run.debug:
            print(f"[BULK] slug lookup failed: {repr(e)}")
        return False


# -----------------------------
# Bulk
# -----------------------------

def process_bulk_generation(cfg: AppConfig, topics: List[str], settings: Optional[Dict[str, Any]] = None) -> BulkResult:
    settings = dict(settings or {})
    post_type = (settings.get("type") or cfg.wp.post_type or "post").lower()
    topics = clean_topics(topics)
    result = BulkResult()

    init_db(cfg.sqlite_path)
    size = max(1, int(cfg.bulk.batch_size))
    batches = [topics[i:i + size] for i in range(0, len(topics), size)]
    print(f"[BULK] topics={len(topics)} batches={len(batches)} batch_size={size} type={post_type}")

    for bi, batch in enumerate(batches):
        for topic in batch:
            try:
                if _is_duplicate(cfg, topic, post_type):
                    result.skipped.append({"topic": topic, "reason": "duplicate_content"})
                    print(f"[BULK] skip duplicate: {topic}")
                    continue
                out = handle_single_topic(cfg, topic, settings)
                result.success.append({"topic": topic, **out})
            except Exception as e:
                result.failed.append({"topic": topic, "error": str(e)})
                log_event(cfg.sqlite_path, "error", "generation_failed", str(e), {"topic": topic, "type": post_type})
                if not cfg.run.dry_run:
                    record_generation(cfg.sqlite_path, 0, post_type, "failed", topic, {"error": str(e)})

        if bi < len(batches) - 1 and cfg.bulk.batch_delay_sec > 0:
            time.sleep(cfg.bulk.batch_delay_sec)

    log_event(
        cfg.sqlite_path,
        "info",
        "bulk_generation_complete",
        f"success={len(result.success)} failed={len(result.failed)} skipped={len(result.skipped)}",
        {"total": len(topics), "type": post_type},
    )
    return result


# -----------------------------
# Main
# -----------------------------

def parse_args(argv: List[str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "dry_run": False, "debug": False, "topics": [], "topics_file": "", "rss": [],
        "type": "", "status": "", "out": "",
    }
    i = 0
    while i < len(argv):
        a = argv[i]
        if a == "--dry-run":
            out["dry_run"] = True
            i += 1
            continue
        if a == "--debug":
            out["debug"] = True
            i += 1
            continue
        if a in ("--topic", "--rss") and i + 1 < len(argv):
            out["topics" if a == "--topic" else "rss"].append(argv[i + 1])
            i += 2
            continue
        if a in ("--topics-file", "--type", "--status", "--out") and i + 1 < len(argv):
            out[a[2:].replace("-", "_")] = argv[i + 1].strip()
            i += 2
            continue
        i += 1
    return out


def main() -> None:
    args = parse_args(sys.argv[1:])
    cfg = load_cfg()

    if args["dry_run"]:
        cfg.run.dry_run = True
    if args["debug"]:
        cfg.run.debug = True

    settings: Dict[str, Any] = {}
    if args["type"]:
        if args["type"].lower() not in POST_TYPES:
            raise RuntimeError(f"unsupported --type: {args['type']}")
        settings["type"] = args["type"].lower()
    if args["status"]:
        if args["status"].lower() not in POST_STATUSES:
            raise RuntimeError(f"unsupported --status: {args['status']}")
        settings["status"] = args["status"].lower()

    validate_cfg(cfg, require_wp=not cfg.run.dry_run)
    print_safe_cfg(cfg)

    topics = collect_topics(args)
    if not topics:
        raise RuntimeError("토픽이 없습니다 (--topic / --topics-file / TOPICS / --rss)")

    result = process_bulk_generation(cfg, topics, settings)
    print(f"[BULK] done success={len(result.success)} failed={len(result.failed)} skipped={len(result.skipped)}")
    for f in result.failed:
        print(" -", f["topic"], "=>", f["error"])

    if args["out"]:
        p = Path(args["out"])
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        print("[BULK] results saved:", p)


if __name__ == "__main__":
    try:
        main()
    except Exception:
        import traceback

        traceback.print_exc()
        sys.exit(1)
