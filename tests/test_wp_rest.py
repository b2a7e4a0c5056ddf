import base64

import pytest

import wp_rest
from content_gen import GeneratedContent
from wp_rest import (
    slugify,
    wc_create_product,
    wc_update_product,
    wp_auth_header,
    wp_create_post,
    wp_find_post_by_slug,
    wp_get_or_create_tag_id,
    wp_get_post,
    wp_update_post,
    wp_upload_media_bytes,
)


class Recorder:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, headers=None, json=None, params=None, data=None, timeout=None, **kw):
        self.calls.append({"url": url, "headers": headers, "json": json, "params": params, "data": data})
        return self.responses[min(len(self.calls), len(self.responses)) - 1]


def test_auth_header_is_basic_app_password():
    h = wp_auth_header("bot", "secret")
    assert h["Authorization"] == "Basic " + base64.b64encode(b"bot:secret").decode()


def test_create_post_payload(cfg, monkeypatch, make_response):
    cfg.wp.category_ids = [4]
    cfg.wp.tag_ids = [9, 3]
    rec = Recorder(make_response(201, {"id": 42, "link": "https://example.com/p/42"}))
    monkeypatch.setattr(wp_rest.requests, "post", rec)

    pid, link = wp_create_post(
        cfg.wp, "Title", "<p>x</p>", status="publish", excerpt="ex", slug="title", featured_media=7, tag_ids=[3, 5],
    )

    assert (pid, link) == (42, "https://example.com/p/42")
    call = rec.calls[0]
    assert call["url"] == "https://example.com/wp-json/wp/v2/posts"
    assert call["json"] == {
        "title": "Title", "content": "<p>x</p>", "status": "publish", "slug": "title", "excerpt": "ex",
        "featured_media": 7, "categories": [4], "tags": [3, 5, 9],
    }
    assert call["headers"]["Content-Type"] == "application/json"


def test_create_docs_uses_custom_endpoint_without_taxonomies(cfg, monkeypatch, make_response):
    cfg.wp.category_ids = [4]
    rec = Recorder(make_response(201, {"id": 5}))
    monkeypatch.setattr(wp_rest.requests, "post", rec)

    wp_create_post(cfg.wp, "Doc", "<p>x</p>", post_type="docs", tag_ids=[1])

    assert rec.calls[0]["url"].endswith("/wp-json/wp/v2/docs")
    assert rec.calls[0]["json"]["status"] == "draft"
    assert "categories" not in rec.calls[0]["json"]
    assert "tags" not in rec.calls[0]["json"]


def test_create_post_failure_raises(cfg, monkeypatch, make_response):
    monkeypatch.setattr(wp_rest.requests, "post", Recorder(make_response(401, text="unauthorized")))
    with pytest.raises(RuntimeError, match="WP create failed: 401"):
        wp_create_post(cfg.wp, "T", "<p>x</p>")


def test_update_post_omits_empty_title(cfg, monkeypatch, make_response):
    rec = Recorder(make_response(200, {"id": 8, "link": "l"}))
    monkeypatch.setattr(wp_rest.requests, "post", rec)

    wp_update_post(cfg.wp, 8, title="", html_body="<p>new</p>", featured_media=3)

    assert rec.calls[0]["url"].endswith("/wp-json/wp/v2/posts/8")
    assert rec.calls[0]["json"] == {"content": "<p>new</p>", "featured_media": 3}


def test_get_post_reads_raw_fields(cfg, monkeypatch, make_response):
    rec = Recorder(make_response(200, {
        "id": 5,
        "title": {"raw": "Raw title", "rendered": "Rendered"},
        "content": {"raw": "<p>raw</p>", "rendered": "<p>rendered</p>"},
        "excerpt": {"rendered": "<p>ex</p>"},
        "link": "https://example.com/5",
        "featured_media": 2,
    }))
    monkeypatch.setattr(wp_rest.requests, "get", rec)

    post = wp_get_post(cfg.wp, 5)

    assert rec.calls[0]["params"] == {"context": "edit"}
    assert post["title"] == "Raw title"
    assert post["content"] == "<p>raw</p>"
    assert post["excerpt"] == "<p>ex</p>"
    assert post["featured_media"] == 2


def test_find_post_by_slug(cfg, monkeypatch, make_response):
    monkeypatch.setattr(wp_rest.requests, "get", Recorder(make_response(200, [{"id": 3, "link": "l3"}])))
    assert wp_find_post_by_slug(cfg.wp, "my-slug") == (3, "l3")

    monkeypatch.setattr(wp_rest.requests, "get", Recorder(make_response(200, [])))
    assert wp_find_post_by_slug(cfg.wp, "my-slug") is None
    assert wp_find_post_by_slug(cfg.wp, "") is None


def test_upload_media_headers(cfg, monkeypatch, make_response):
    rec = Recorder(make_response(201, {"id": 11, "source_url": "https://example.com/a.png"}))
    monkeypatch.setattr(wp_rest.requests, "post", rec)

    assert wp_upload_media_bytes(cfg.wp, b"img", "a.png", "image/png") == (11, "https://example.com/a.png")
    call = rec.calls[0]
    assert call["headers"]["Content-Disposition"] == 'attachment; filename="a.png"'
    assert call["headers"]["Content-Type"] == "image/png"
    assert call["data"] == b"img"


def test_tag_lookup_finds_existing(cfg, monkeypatch, make_response):
    monkeypatch.setattr(wp_rest.requests, "get", Recorder(make_response(200, [{"id": 6, "name": "Python"}])))

    def no_post(*a, **kw):
        raise AssertionError("must not create")

    monkeypatch.setattr(wp_rest.requests, "post", no_post)
    assert wp_get_or_create_tag_id(cfg.wp, "python") == 6


def test_tag_created_or_term_exists(cfg, monkeypatch, make_response):
    monkeypatch.setattr(wp_rest.requests, "get", Recorder(make_response(200, [])))
    monkeypatch.setattr(wp_rest.requests, "post", Recorder(make_response(201, {"id": 12})))
    assert wp_get_or_create_tag_id(cfg.wp, "new tag") == 12

    monkeypatch.setattr(
        wp_rest.requests, "post",
        Recorder(make_response(400, {"code": "term_exists", "data": {"term_id": 13}})),
    )
    assert wp_get_or_create_tag_id(cfg.wp, "dup") == 13
    assert wp_get_or_create_tag_id(cfg.wp, "  ") == 0


def test_wc_create_product_maps_basic_fields_only(cfg, monkeypatch, make_response):
    rec = Recorder(make_response(201, {"id": 77, "permalink": "https://example.com/product/lamp"}))
    monkeypatch.setattr(wp_rest.requests, "post", rec)
    content = GeneratedContent(
        title="Lamp", content="<p>desc</p>", excerpt="ex", short_description="short", price="$29.99",
        features=["bright"],
    )

    assert wc_create_product(cfg.wp, content, status="publish", image_ids=[3, 4]) == (
        77, "https://example.com/product/lamp"
    )
    call = rec.calls[0]
    assert call["url"] == "https://example.com/wp-json/wc/v3/products"
    assert call["json"] == {
        "name": "Lamp", "type": "simple", "description": "<p>desc</p>", "short_description": "short",
        "status": "publish", "regular_price": "29.99", "images": [{"id": 3}, {"id": 4}],
    }


def test_wc_update_product_uses_put(cfg, monkeypatch, make_response):
    rec = Recorder(make_response(200, {"id": 77}))
    monkeypatch.setattr(wp_rest.requests, "put", rec)
    content = GeneratedContent(title="", content="<p>new</p>", excerpt="ex")

    wc_update_product(cfg.wp, 77, content)

    assert rec.calls[0]["url"].endswith("/wp-json/wc/v3/products/77")
    assert rec.calls[0]["json"] == {"type": "simple", "description": "<p>new</p>", "short_description": "ex"}


def test_slugify():
    assert slugify("Hello, World!  Again") == "hello-world-again"
    assert slugify("파이썬 테스트 가이드") == "파이썬-테스트-가이드"
    assert slugify("  --  ") == ""
