# -*- coding: utf-8 -*-
"""wp_rest.py

WordPress / WooCommerce REST 호출 모음 (애플리케이션 비밀번호 Basic 인증)

- /wp-json/wp/v2/{posts|pages|docs}
- /wp-json/wp/v2/media, /wp-json/wp/v2/tags
- /wp-json/wc/v3/products (이름/설명/가격/이미지만)
"""

from __future__ import annotations

import base64
import re
from typing import Any, Dict, List, Optional, Tuple

import requests

from autopost_config import WordPressConfig

USER_AGENT = "ai-autopost-bot/1.0"

# post_type -> REST 엔드포인트
WP_ENDPOINTS = {
    "post": "posts",
    "page": "pages",
    "docs": "docs",
}


def wp_auth_header(user: str, app_pass: str) -> Dict[str, str]:
    token = base64.b64encode(f"{user}:{app_pass}".encode("utf-8")).decode("utf-8")
    return {"Authorization": f"Basic {token}", "User-Agent": USER_AGENT}


def slugify(text: str, max_len: int = 80) -> str:
    t = (text or "").strip().lower()
    t = re.sub(r"[^\w\s-]", " ", t)
    t = re.sub(r"[\s_-]+", "-", t).strip("-")
    return t[:max_len].strip("-")


def _endpoint(cfg: WordPressConfig, post_type: str) -> str:
    ep = WP_ENDPOINTS.get((post_type or "post").lower(), "posts")
    return cfg.base_url.rstrip("/") + f"/wp-json/wp/v2/{ep}"


def _json_headers(cfg: WordPressConfig) -> Dict[str, str]:
    return {**wp_auth_header(cfg.user, cfg.app_pass), "Content-Type": "application/json"}


def _merged_tags(cfg: WordPressConfig, tag_ids: Optional[List[int]]) -> List[int]:
    tags = [int(x) for x in (cfg.tag_ids + list(tag_ids or [])) if int(x) > 0]
    return sorted(set(tags))


# -----------------------------
# Posts / pages / docs
# -----------------------------

def wp_create_post(cfg: WordPressConfig, title: str, html_body: str, status: str = "", post_type: str = "post",
                   excerpt: str = "", slug: str = "", featured_media: int = 0,
                   tag_ids: Optional[List[int]] = None) -> Tuple[int, str]:
    payload: Dict[str, Any] = {"title": title, "content": html_body, "status": status or cfg.status}
    if slug:
        payload["slug"] = slug
    if excerpt:
        payload["excerpt"] = excerpt
    if featured_media:
        payload["featured_media"] = int(featured_media)
    # 카테고리/태그는 일반 글에만
    if (post_type or "post") == "post":
        if cfg.category_ids:
            payload["categories"] = cfg.category_ids
        tags = _merged_tags(cfg, tag_ids)
        if tags:
            payload["tags"] = tags

    r = requests.post(_endpoint(cfg, post_type), headers=_json_headers(cfg), json=payload, timeout=35)
    if r.status_code not in (200, 201):
        raise RuntimeError(f"WP create failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return int(data["id"]), str(data.get("link") or "")


def wp_update_post(cfg: WordPressConfig, post_id: int, title: str = "", html_body: str = "",
                   post_type: str = "post", featured_media: int = 0, excerpt: str = "",
                   tag_ids: Optional[List[int]] = None) -> Tuple[int, str]:
    """빈 값은 보내지 않음 (제목이 비면 기존 제목 유지)"""
    payload: Dict[str, Any] = {}
    if title:
        payload["title"] = title
    if html_body:
        payload["content"] = html_body
    if excerpt:
        payload["excerpt"] = excerpt
    if featured_media:
        payload["featured_media"] = int(featured_media)
    if tag_ids and (post_type or "post") == "post":
        payload["tags"] = _merged_tags(cfg, tag_ids)

    url = _endpoint(cfg, post_type) + f"/{int(post_id)}"
    r = requests.post(url, headers=_json_headers(cfg), json=payload, timeout=35)
    if r.status_code not in (200, 201):
        raise RuntimeError(f"WP update failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return int(data["id"]), str(data.get("link") or "")


def wp_get_post(cfg: WordPressConfig, post_id: int, post_type: str = "post") -> Dict[str, Any]:
    """context=edit로 raw 본문까지 받아옵니다"""
    url = _endpoint(cfg, post_type) + f"/{int(post_id)}"
    r = requests.get(url, headers=wp_auth_header(cfg.user, cfg.app_pass), params={"context": "edit"}, timeout=25)
    if r.status_code != 200:
        raise RuntimeError(f"WP get failed: {r.status_code} body={r.text[:500]}")
    data = r.json()

    def _field(key: str) -> str:
        v = data.get(key)
        if isinstance(v, dict):
            return str(v.get("raw") or v.get("rendered") or "")
        return str(v or "")

    return {
        "id": int(data.get("id") or post_id),
        "title": _field("title"),
        "content": _field("content"),
        "excerpt": _field("excerpt"),
        "link": str(data.get("link") or ""),
        "status": str(data.get("status") or ""),
        "featured_media": int(data.get("featured_media") or 0),
    }


def wp_find_post_by_slug(cfg: WordPressConfig, slug: str, post_type: str = "post") -> Optional[Tuple[int, str]]:
    if not slug:
        return None
    params = {"slug": slug, "status": "publish,draft,pending,private", "per_page": 1}
    r = requests.get(_endpoint(cfg, post_type), headers=wp_auth_header(cfg.user, cfg.app_pass), params=params, timeout=25)
    if r.status_code != 200:
        return None
    try:
        items = r.json()
    except ValueError:
        return None
    if not isinstance(items, list) or not items:
        return None
    it = items[0]
    pid = int(it.get("id") or 0)
    return (pid, str(it.get("link") or "")) if pid else None


# -----------------------------
# Media / tags
# -----------------------------

def wp_upload_media_bytes(cfg: WordPressConfig, content: bytes, filename: str, content_type: str) -> Tuple[int, str]:
    url = cfg.base_url.rstrip("/") + "/wp-json/wp/v2/media"
    headers = {
        **wp_auth_header(cfg.user, cfg.app_pass),
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Type": content_type or "application/octet-stream",
    }
    r = requests.post(url, headers=headers, data=content, timeout=60)
    if r.status_code not in (200, 201):
        raise RuntimeError(f"WP media upload failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return int(data["id"]), str(data.get("source_url") or "")


def wp_get_or_create_tag_id(cfg: WordPressConfig, tag_name: str) -> int:
    name = (tag_name or "").strip()
    if not name:
        return 0

    headers = wp_auth_header(cfg.user, cfg.app_pass)
    url = cfg.base_url.rstrip("/") + "/wp-json/wp/v2/tags"
    r = requests.get(url, headers=headers, params={"search": name, "per_page": 50}, timeout=25)
    if r.status_code == 200:
        items = r.json()
        if isinstance(items, list):
            for it in items:
                if str(it.get("name") or "").strip().lower() == name.lower():
                    return int(it.get("id") or 0)

    rr = requests.post(url, headers={**headers, "Content-Type": "application/json"}, json={"name": name}, timeout=25)
    if rr.status_code in (200, 201):
        return int(rr.json().get("id") or 0)
    # term_exists: 검색에 안 잡힌 동일 태그
    try:
        data = rr.json()
    except ValueError:
        return 0
    if isinstance(data, dict) and data.get("code") == "term_exists":
        return int(((data.get("data") or {}).get("term_id")) or 0)
    return 0


# -----------------------------
# WooCommerce
# -----------------------------

def _product_payload(content: Any, status: str, image_ids: Optional[List[int]]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": content.title,
        "type": "simple",
        "description": content.content,
        "short_description": content.short_description or content.excerpt,
    }
    if status:
        payload["status"] = status
    price = re.sub(r"[^0-9.]", "", str(content.price or ""))
    if price:
        payload["regular_price"] = price
    if image_ids:
        payload["images"] = [{"id": int(i)} for i in image_ids if int(i) > 0]
    return payload


def wc_create_product(cfg: WordPressConfig, content: Any, status: str = "",
                      image_ids: Optional[List[int]] = None) -> Tuple[int, str]:
    url = cfg.base_url.rstrip("/") + "/wp-json/wc/v3/products"
    payload = _product_payload(content, status or cfg.status, image_ids)
    r = requests.post(url, headers=_json_headers(cfg), json=payload, timeout=35)
    if r.status_code not in (200, 201):
        raise RuntimeError(f"WC product create failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return int(data["id"]), str(data.get("permalink") or "")


def wc_update_product(cfg: WordPressConfig, product_id: int, content: Any,
                      image_ids: Optional[List[int]] = None) -> Tuple[int, str]:
    url = cfg.base_url.rstrip("/") + f"/wp-json/wc/v3/products/{int(product_id)}"
    payload = _product_payload(content, "", image_ids)
    if not content.title:
        payload.pop("name", None)
    r = requests.put(url, headers=_json_headers(cfg), json=payload, timeout=35)
    if r.status_code not in (200, 201):
        raise RuntimeError(f"WC product update failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return int(data["id"]), str(data.get("permalink") or "")


def wc_get_product(cfg: WordPressConfig, product_id: int) -> Dict[str, Any]:
    url = cfg.base_url.rstrip("/") + f"/wp-json/wc/v3/products/{int(product_id)}"
    r = requests.get(url, headers=wp_auth_header(cfg.user, cfg.app_pass), timeout=25)
    if r.status_code != 200:
        raise RuntimeError(f"WC product get failed: {r.status_code} body={r.text[:500]}")
    data = r.json()
    return {
        "id": int(data.get("id") or product_id),
        "title": str(data.get("name") or ""),
        "content": str(data.get("description") or ""),
        "excerpt": str(data.get("short_description") or ""),
        "link": str(data.get("permalink") or ""),
        "status": str(data.get("status") or ""),
        "featured_media": 0,
    }
