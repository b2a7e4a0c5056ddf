import base64
from types import SimpleNamespace

import pytest

import ai_image
from ai_image import download_image_bytes, generate_images, image_prompt, sniff_image_type
from ai_text import ProviderError
from conftest import JPEG_BYTES, PNG_BYTES


def _b64(b):
    return base64.b64encode(b).decode("ascii")


def test_stable_diffusion_request_and_artifacts(cfg, monkeypatch, make_response):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None, **kw):
        calls.append({"url": url, "headers": headers, "json": json})
        return make_response(200, {"artifacts": [
            {"base64": _b64(PNG_BYTES), "finishReason": "SUCCESS"},
            {"base64": _b64(PNG_BYTES), "finishReason": "CONTENT_FILTERED"},
        ]})

    monkeypatch.setattr(ai_image.requests, "post", fake_post)

    images = generate_images(cfg, "Create image", provider="stable_diffusion", count=2, style="anime")

    assert len(images) == 1
    assert images[0].content == PNG_BYTES
    assert images[0].content_type == "image/png"
    assert images[0].provider == "stable_diffusion"
    call = calls[0]
    assert "stable-diffusion-xl-1024-v1-0/text-to-image" in call["url"]
    assert call["headers"]["Authorization"] == "Bearer s-test"
    assert call["json"]["samples"] == 2
    assert call["json"]["style_preset"] == "anime"
    assert call["json"]["text_prompts"] == [{"text": "Create image"}]


def test_unknown_style_maps_to_photographic(cfg, monkeypatch, make_response):
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None, **kw):
        seen.update(json)
        return make_response(200, {"artifacts": [{"base64": _b64(PNG_BYTES)}]})

    monkeypatch.setattr(ai_image.requests, "post", fake_post)
    generate_images(cfg, "p", provider="stable_diffusion", style="professional")
    assert seen["style_preset"] == "photographic"


def test_all_filtered_raises(cfg, monkeypatch, make_response):
    monkeypatch.setattr(
        ai_image.requests, "post",
        lambda *a, **kw: make_response(200, {"artifacts": [{"base64": _b64(PNG_BYTES), "finishReason": "CONTENT_FILTERED"}]}),
    )
    with pytest.raises(ProviderError, match="No image returned from stable_diffusion"):
        generate_images(cfg, "p", provider="stable_diffusion")


class FakeImagesClient:
    calls = []
    data = None

    def __init__(self, **kwargs):
        self.images = SimpleNamespace(generate=self._generate)

    def _generate(self, **kwargs):
        FakeImagesClient.calls.append(kwargs)
        return SimpleNamespace(data=[FakeImagesClient.data])


def test_dalle_b64_one_call_per_image(cfg, monkeypatch):
    FakeImagesClient.calls = []
    FakeImagesClient.data = SimpleNamespace(b64_json=_b64(PNG_BYTES), url=None)
    monkeypatch.setattr(ai_image, "OpenAI", FakeImagesClient)

    images = generate_images(cfg, "p", provider="dalle", count=2)

    assert len(images) == 2
    assert all(i.content_type == "image/png" for i in images)
    assert len(FakeImagesClient.calls) == 2
    assert FakeImagesClient.calls[0]["model"] == "dall-e-3"
    assert FakeImagesClient.calls[0]["n"] == 1


def test_dalle_url_is_downloaded(cfg, monkeypatch, make_response):
    FakeImagesClient.calls = []
    FakeImagesClient.data = SimpleNamespace(b64_json=None, url="https://cdn.example.com/img.jpg")
    monkeypatch.setattr(ai_image, "OpenAI", FakeImagesClient)
    monkeypatch.setattr(
        ai_image.requests, "get",
        lambda url, **kw: make_response(200, content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"}),
    )

    images = generate_images(cfg, "p", provider="dalle")
    assert images[0].content == JPEG_BYTES
    assert images[0].content_type == "image/jpeg"


def test_unsupported_image_provider(cfg):
    with pytest.raises(ProviderError, match="Unsupported image provider: midjourney"):
        generate_images(cfg, "p", provider="midjourney")


def test_missing_image_key(cfg):
    cfg.providers.stability_api_key = ""
    with pytest.raises(ProviderError, match="API key not configured for provider: stable_diffusion"):
        generate_images(cfg, "p")


def test_download_rejects_html_page(monkeypatch, make_response):
    html = b"<html><body>blocked</body></html>"
    monkeypatch.setattr(
        ai_image.requests, "get",
        lambda url, **kw: make_response(200, content=html, headers={"Content-Type": "text/html"}),
    )
    with pytest.raises(RuntimeError, match="not an image"):
        download_image_bytes("https://example.com/x.jpg")


def test_download_http_error(monkeypatch, make_response):
    monkeypatch.setattr(ai_image.requests, "get", lambda url, **kw: make_response(404, content=b"nope"))
    with pytest.raises(RuntimeError, match="image download failed: 404"):
        download_image_bytes("https://example.com/x.jpg")


def test_sniff_image_type():
    assert sniff_image_type(PNG_BYTES) == "image/png"
    assert sniff_image_type(JPEG_BYTES) == "image/jpeg"
    assert sniff_image_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert sniff_image_type(b"GIF89a" + b"\x00" * 10) == "image/gif"
    assert sniff_image_type(b"<html>") == ""


def test_image_prompt():
    assert image_prompt(" Home office setup ", "minimalist") == (
        "Create minimalist image for: Home office setup. No text, no watermark."
    )
