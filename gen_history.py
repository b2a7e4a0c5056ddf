# -*- coding: utf-8 -*-
"""gen_history.py

로컬 SQLite 기록

- generation_logs : 생성/업데이트 이력 (중복 토픽 방지)
- logs            : 이벤트 로그 (print와 같이 남김)
- content_state   : 글별 자동 업데이트 여부, 마지막 업데이트 시각, SEO 점수
  (WP REST로는 커스텀 메타를 못 읽는 사이트가 많아서 여기서 관리)
"""

from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

FREQUENCY_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}


def _utcnow() -> datetime:
    # DB에는 tz 없는 UTC ISO 문자열로 저장
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _now_iso() -> str:
    return _utcnow().replace(microsecond=0).isoformat()


def init_db(path: str) -> None:
    Path(os.path.dirname(path) or ".").mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(path)
    cur = con.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS generation_logs (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          post_id INTEGER,
          type TEXT,
          status TEXT,
          topic TEXT,
          created_at TEXT,
          updated_at TEXT,
          meta TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS logs (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          timestamp TEXT,
          level TEXT,
          type TEXT,
          message TEXT,
          context TEXT,
          post_id INTEGER
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS content_state (
          post_id INTEGER PRIMARY KEY,
          post_type TEXT,
          topic TEXT,
          keywords TEXT,
          auto_update INTEGER DEFAULT 1,
          last_update TEXT,
          seo_score INTEGER
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_generation_logs_topic ON generation_logs(topic)")
    con.commit()
    con.close()


def log_event(path: str, level: str, type_: str, message: str, context: Optional[Dict[str, Any]] = None,
              post_id: int = 0) -> None:
    print(f"[{level.upper()}] {type_}: {message}")
    con = sqlite3.connect(path)
    con.execute(
        "INSERT INTO logs(timestamp, level, type, message, context, post_id) VALUES (?, ?, ?, ?, ?, ?)",
        (_now_iso(), level.lower(), type_, message, json.dumps(context or {}, ensure_ascii=False), int(post_id or 0)),
    )
    con.commit()
    con.close()


def get_logs(path: str, type_: str = "", limit: int = 100) -> List[Dict[str, Any]]:
    con = sqlite3.connect(path)
    cur = con.cursor()
    if type_:
        cur.execute(
            "SELECT timestamp, level, type, message, context, post_id FROM logs WHERE type = ? ORDER BY id DESC LIMIT ?",
            (type_, limit),
        )
    else:
        cur.execute("SELECT timestamp, level, type, message, context, post_id FROM logs ORDER BY id DESC LIMIT ?", (limit,))
    rows = cur.fetchall()
    con.close()
    return [
        {
            "timestamp": r[0],
            "level": r[1],
            "type": r[2],
            "message": r[3],
            "context": json.loads(r[4] or "{}"),
            "post_id": int(r[5] or 0),
        }
        for r in rows
    ]


def record_generation(path: str, post_id: int, type_: str, status: str, topic: str,
                      meta: Optional[Dict[str, Any]] = None) -> None:
    now = _now_iso()
    con = sqlite3.connect(path)
    con.execute(
        """
        INSERT INTO generation_logs(post_id, type, status, topic, created_at, updated_at, meta)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (int(post_id or 0), type_, status, (topic or "").strip(), now, now, json.dumps(meta or {}, ensure_ascii=False)),
    )
    con.commit()
    con.close()


def get_generations(path: str, topic: str = "", limit: int = 100) -> List[Dict[str, Any]]:
    con = sqlite3.connect(path)
    cur = con.cursor()
    if topic:
        cur.execute(
            "SELECT post_id, type, status, topic, created_at, meta FROM generation_logs "
            "WHERE lower(topic) = lower(?) ORDER BY id DESC LIMIT ?",
            (topic.strip(), int(limit)),
        )
    else:
        cur.execute(
            "SELECT post_id, type, status, topic, created_at, meta FROM generation_logs ORDER BY id DESC LIMIT ?",
            (int(limit),),
        )
    rows = cur.fetchall()
    con.close()
    return [
        {"post_id": int(r[0] or 0), "type": r[1], "status": r[2], "topic": r[3], "created_at": r[4],
         "meta": json.loads(r[5] or "{}")}
        for r in rows
    ]


def is_duplicate_topic(path: str, topic: str) -> bool:
    con = sqlite3.connect(path)
    cur = con.cursor()
    cur.execute(
        "SELECT 1 FROM generation_logs WHERE lower(topic) = lower(?) AND status = 'success' LIMIT 1",
        ((topic or "").strip(),),
    )
    row = cur.fetchone()
    con.close()
    return row is not None


def save_content_state(path: str, post_id: int, post_type: str = "post", topic: str = "",
                       keywords: Optional[List[str]] = None, auto_update: bool = True,
                       last_update: Optional[str] = None, seo_score: Optional[int] = None) -> None:
    con = sqlite3.connect(path)
    con.execute(
        """
        INSERT OR REPLACE INTO content_state(post_id, post_type, topic, keywords, auto_update, last_update, seo_score)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            int(post_id),
            post_type or "post",
            topic or "",
            json.dumps(list(keywords or []), ensure_ascii=False),
            1 if auto_update else 0,
            last_update or _now_iso(),
            seo_score,
        ),
    )
    con.commit()
    con.close()


def get_content_state(path: str, post_id: int) -> Optional[Dict[str, Any]]:
    con = sqlite3.connect(path)
    cur = con.cursor()
    cur.execute(
        "SELECT post_id, post_type, topic, keywords, auto_update, last_update, seo_score FROM content_state WHERE post_id = ?",
        (int(post_id),),
    )
    row = cur.fetchone()
    con.close()
    return _state_row(row) if row else None


def _state_row(row: tuple) -> Dict[str, Any]:
    return {
        "post_id": int(row[0]),
        "post_type": row[1] or "post",
        "topic": row[2] or "",
        "keywords": json.loads(row[3] or "[]"),
        "auto_update": bool(row[4]),
        "last_update": row[5] or "",
        "seo_score": row[6],
    }


def get_posts_needing_update(path: str, frequency: str = "daily", batch_size: int = 10,
                             now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """auto_update 켜져 있고 마지막 업데이트가 주기보다 오래된 글 (오래된 순)"""
    now = now or _utcnow()
    cutoff = now - timedelta(days=FREQUENCY_DAYS.get(frequency, 1))
    con = sqlite3.connect(path)
    cur = con.cursor()
    cur.execute(
        """
        SELECT post_id, post_type, topic, keywords, auto_update, last_update, seo_score
        FROM content_state
        WHERE auto_update = 1 AND (last_update IS NULL OR last_update = '' OR last_update <= ?)
        ORDER BY last_update ASC
        LIMIT ?
        """,
        (cutoff.replace(microsecond=0).isoformat(), int(batch_size)),
    )
    rows = cur.fetchall()
    con.close()
    return [_state_row(r) for r in rows]


def mark_updated(path: str, post_id: int, seo_score: Optional[int] = None,
                 now: Optional[datetime] = None) -> None:
    ts = (now or _utcnow()).replace(microsecond=0).isoformat()
    con = sqlite3.connect(path)
    if seo_score is None:
        con.execute("UPDATE content_state SET last_update = ? WHERE post_id = ?", (ts, int(post_id)))
    else:
        con.execute(
            "UPDATE content_state SET last_update = ?, seo_score = ? WHERE post_id = ?",
            (ts, int(seo_score), int(post_id)),
        )
    con.commit()
    con.close()
