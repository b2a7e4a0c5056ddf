import os
from datetime import datetime, timezone

import pytest

from gen_history import (
    get_content_state,
    get_generations,
    get_logs,
    get_posts_needing_update,
    init_db,
    is_duplicate_topic,
    log_event,
    mark_updated,
    record_generation,
    save_content_state,
)

NOW = datetime(2024, 5, 10, 12, 0, 0)


@pytest.fixture
def db(cfg):
    init_db(cfg.sqlite_path)
    return cfg.sqlite_path


def test_init_db_creates_parent_dir(cfg):
    init_db(cfg.sqlite_path)
    assert os.path.exists(cfg.sqlite_path)
    init_db(cfg.sqlite_path)


def test_duplicate_topic_only_counts_success(db):
    record_generation(db, 1, "post", "success", "Remote Work Tips", {"tokens": 10})
    record_generation(db, 0, "post", "failed", "Broken topic", {"error": "x"})

    assert is_duplicate_topic(db, "remote work tips ")
    assert not is_duplicate_topic(db, "Broken topic")
    assert not is_duplicate_topic(db, "Something else")


@pytest.fixture
def states(db):
    save_content_state(db, 1, topic="one", keywords=["a"], last_update="2024-05-01T00:00:00")
    save_content_state(db, 2, topic="two", last_update="2024-05-10T11:00:00")
    save_content_state(db, 3, topic="three", auto_update=False, last_update="2024-01-01T00:00:00")
    save_content_state(db, 4, post_type="product", topic="four", last_update="2024-04-01T00:00:00")
    return db


@pytest.mark.parametrize("frequency,expected", [
    ("daily", [4, 1]),
    ("weekly", [4, 1]),
    ("monthly", [4]),
])
def test_posts_needing_update_by_frequency(states, frequency, expected):
    rows = get_posts_needing_update(states, frequency, 10, NOW)
    assert [r["post_id"] for r in rows] == expected


def test_posts_needing_update_respects_batch_size(states):
    rows = get_posts_needing_update(states, "daily", 1, NOW)
    assert [r["post_id"] for r in rows] == [4]
    assert rows[0]["post_type"] == "product"
    assert rows[0]["auto_update"] is True


def test_mark_updated(states):
    mark_updated(states, 1, 88, NOW)
    st = get_content_state(states, 1)
    assert st["last_update"] == "2024-05-10T12:00:00"
    assert st["seo_score"] == 88
    assert st["keywords"] == ["a"]
    assert [r["post_id"] for r in get_posts_needing_update(states, "daily", 10, NOW)] == [4]


def test_log_event_prints_and_stores(db, capsys):
    log_event(db, "error", "update_failed", "boom", {"k": "v"}, post_id=5)

    assert "[ERROR] update_failed: boom" in capsys.readouterr().out
    logs = get_logs(db, "update_failed")
    assert logs[0]["message"] == "boom"
    assert logs[0]["context"] == {"k": "v"}
    assert logs[0]["post_id"] == 5
    assert logs[0]["level"] == "error"


def test_default_timestamps_are_naive_utc(states):
    before = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
    mark_updated(states, 1, 70)
    record_generation(states, 1, "post", "success", "one")

    stamp = get_content_state(states, 1)["last_update"]
    created = get_generations(states, "one")[0]["created_at"]
    for ts in (stamp, created):
        assert "+" not in ts
        assert datetime.fromisoformat(ts) >= before
    # 방금 갱신한 글은 오늘 대상에서 빠짐
    assert 1 not in [r["post_id"] for r in get_posts_needing_update(states, "daily", 10)]
