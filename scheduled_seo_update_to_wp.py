# -*- coding: utf-8 -*-
"""scheduled_seo_update_to_wp.py

SEO 점수가 낮은 기존 글을 주기적으로 AI로 다시 써서 업데이트 (cron / GitHub Actions)

대상
- content_state 에서 auto_update=1 이고 마지막 업데이트가 UPDATE_FREQUENCY 보다 오래된 글
- 오래된 순으로 UPDATE_BATCH_SIZE 개

처리
- WP에서 현재 본문을 받아 SEO 채점
- 점수 >= SEO_THRESHOLD 면 건너뜀 (update_skipped)
- 아니면 기존 본문을 넣어 재생성 -> 글 업데이트 -> 대표 이미지 교체(UPDATE_IMAGES=1)
- 글 하나가 실패해도 나머지는 계속 (update_failed)

옵션
- --register POST_ID [--type post|docs|product] : 자동 업데이트 대상으로 등록
- --dry-run, --debug
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from ai_image import guess_ext_and_type
from autopost_config import POST_TYPES, AppConfig, load_cfg, print_safe_cfg, validate_cfg
from content_gen import generate_content
from gen_history import (
    get_content_state,
    get_posts_needing_update,
    init_db,
    log_event,
    mark_updated,
    record_generation,
    save_content_state,
)
from seo_score import analyze
from wp_rest import (
    slugify,
    wc_get_product,
    wc_update_product,
    wp_get_post,
    wp_update_post,
    wp_upload_media_bytes,
)


def fetch_existing(cfg: AppConfig, post_id: int, post_type: str) -> Dict[str, Any]:
    if post_type == "product":
        return wc_get_product(cfg.wp, post_id)
    return wp_get_post(cfg.wp, post_id, post_type)


def update_single_content(cfg: AppConfig, state: Dict[str, Any], now: Optional[datetime] = None) -> str:
    """글 하나 처리, 'updated' 또는 'skipped' 반환 (실패는 예외)"""
    post_id = int(state["post_id"])
    post_type = state.get("post_type") or "post"
    keywords: List[str] = list(state.get("keywords") or [])

    log_event(cfg.sqlite_path, "info", "update_started", f"Starting content update for post {post_id}", post_id=post_id)

    post = fetch_existing(cfg, post_id, post_type)
    report = analyze(post["content"], post["title"], keywords, post.get("excerpt", ""))
    if report.score >= cfg.update.seo_threshold:
        log_event(
            cfg.sqlite_path, "info", "update_skipped",
            f"SEO score {report.score} above threshold", {"threshold": cfg.update.seo_threshold}, post_id,
        )
        # 다음 주기까지 다시 보지 않도록
        mark_updated(cfg.sqlite_path, post_id, report.score, now)
        return "skipped"

    topic = post["title"] or state.get("topic") or ""
    new = generate_content(cfg, topic, {
        "type": post_type,
        "keywords": keywords,
        "optimize_seo": True,
        "seo_target": cfg.content.seo_target,
        "generate_images": cfg.update.update_images,
        "existing_content": post["content"],
    })
    new_score = new.seo.score if new.seo else None

    if cfg.run.dry_run:
        print(f"[DRY_RUN] 업데이트 생략: {post_id} score={report.score} -> {new_score} title={new.title}")
        return "updated"

    media_ids: List[int] = []
    if cfg.update.update_images:
        slug = slugify(new.title or topic)
        for i, img in enumerate(new.images, start=1):
            ext, ctype = guess_ext_and_type(img.content_type)
            try:
                mid, _ = wp_upload_media_bytes(cfg.wp, img.content, f"{slug or 'ai-image'}-{i}{ext}", ctype)
                media_ids.append(mid)
            except Exception as e:
                print(f"[IMG] upload failed: {repr(e)}")

    if post_type == "product":
        wc_update_product(cfg.wp, post_id, new, image_ids=media_ids)
    else:
        wp_update_post(
            cfg.wp, post_id,
            title=new.title,
            html_body=new.content,
            post_type=post_type,
            featured_media=media_ids[0] if media_ids else 0,
        )

    mark_updated(cfg.sqlite_path, post_id, new_score, now)
    record_generation(
        cfg.sqlite_path, post_id, post_type, "updated", topic,
        {"old_score": report.score, "new_score": new_score, "provider": new.provider, "tokens": new.tokens,
         "cost": new.cost},
    )
    log_event(
        cfg.sqlite_path, "info", "update_completed", "Content update completed successfully",
        {"old_score": report.score, "new_score": new_score}, post_id,
    )
    return "updated"


def process_scheduled_updates(cfg: AppConfig, now: Optional[datetime] = None) -> Dict[str, List[int]]:
    init_db(cfg.sqlite_path)
    posts = get_posts_needing_update(cfg.sqlite_path, cfg.update.frequency, cfg.update.batch_size, now)
    print(f"[UPDATE] frequency={cfg.update.frequency} candidates={len(posts)} threshold={cfg.update.seo_threshold}")

    out: Dict[str, List[int]] = {"updated": [], "skipped": [], "failed": []}
    for state in posts:
        pid = int(state["post_id"])
        try:
            status = update_single_content(cfg, state, now)
            out[status].append(pid)
        except Exception as e:
            out["failed"].append(pid)
            log_event(cfg.sqlite_path, "error", "update_failed", str(e), post_id=pid)
    return out


def register_post(cfg: AppConfig, post_id: int, post_type: Optional[str] = None, keywords: Optional[List[str]] = None) -> None:
    """자동 업데이트 대상 등록, 마지막 업데이트를 초기화해서 다음 실행에 바로 잡히게

    post_type을 안 주면 이전에 저장된 종류 유지
    """
    init_db(cfg.sqlite_path)
    prev = get_content_state(cfg.sqlite_path, post_id) or {}
    post_type = post_type or prev.get("post_type") or "post"
    save_content_state(
        cfg.sqlite_path, post_id,
        post_type=post_type,
        topic=prev.get("topic", ""),
        keywords=keywords or prev.get("keywords") or list(cfg.content.keywords),
        auto_update=True,
        last_update="1970-01-01T00:00:00",
        seo_score=prev.get("seo_score"),
    )
    print(f"OK(registered): {post_id} type={post_type}")


# -----------------------------
# Main
# -----------------------------

def parse_args(argv: List[str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {"dry_run": False, "debug": False, "register": 0, "type": ""}
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
        if a == "--register" and i + 1 < len(argv):
            try:
                out["register"] = int(argv[i + 1])
            except ValueError:
                raise RuntimeError(f"--register needs a post id: {argv[i + 1]}")
            i += 2
            continue
        if a == "--type" and i + 1 < len(argv):
            out["type"] = argv[i + 1].strip().lower()
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

    if args["register"]:
        if args["type"] and args["type"] not in POST_TYPES:
            raise RuntimeError(f"unsupported --type: {args['type']}")
        register_post(cfg, args["register"], args["type"] or None)
        return

    validate_cfg(cfg)
    print_safe_cfg(cfg)

    out = process_scheduled_updates(cfg)
    print(f"[UPDATE] done updated={len(out['updated'])} skipped={len(out['skipped'])} failed={len(out['failed'])}")


if __name__ == "__main__":
    try:
        main()
    except Exception:
        import traceback

        traceback.print_exc()
        sys.exit(1)
