import json

import pytest

import ai_text
from autopost_config import AppConfig, BulkConfig, ContentConfig, ProviderConfig, RunConfig, UpdateConfig, WordPressConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xFF\xD8\xFF\xE0" + b"\x00" * 2048

# SEO 체크를 모두 통과하는 본문 (키워드 "python testing")
FILLER = (
    "<p>We write small tests. They run fast. You see the result at once. It is a good habit "
    "for the team. Each test checks one thing. Keep them short and clear. Then fix what breaks.</p>"
)
GOOD_HTML = (
    "<p>Python testing helps you ship good code. Learn python testing with us.</p>"
    "<h2>Why python testing matters</h2>"
    + FILLER * 9
    + '<p>Read the <a href="https://docs.pytest.org">docs</a> now.</p>'
)
GOOD_META = "A" * 140


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, content=b"", headers=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.headers = headers or {}
        if text is None:
            text = json.dumps(json_data) if json_data is not None else content.decode("utf-8", errors="ignore")
        self.text = text

    def json(self):
        if self._json is None:
            raise ValueError("no json body")
        return self._json


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    ai_text.RATE_LIMITER.reset()
    yield
    ai_text.RATE_LIMITER.reset()


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    monkeypatch.setattr(ai_text.time, "sleep", lambda s: None)


@pytest.fixture
def cfg(tmp_path):
    return AppConfig(
        wp=WordPressConfig(base_url="https://example.com", user="bot", app_pass="secret"),
        providers=ProviderConfig(
            openai_api_key="sk-test",
            gemini_api_key="g-test",
            anthropic_api_key="a-test",
            deepseek_api_key="d-test",
            stability_api_key="s-test",
            max_retries=2,
        ),
        content=ContentConfig(generate_images=False, optimize_seo=False),
        bulk=BulkConfig(batch_size=2, batch_delay_sec=1.5),
        update=UpdateConfig(),
        run=RunConfig(),
        sqlite_path=str(tmp_path / "data" / "test.sqlite3"),
    )
