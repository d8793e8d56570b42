"""
SQLite-backed store for API users, their keys, and request quotas.

Design goals:
- Local-first, stdlib sqlite3 only.
- Quota is per user; every key of a user draws from the same allowance.
- Validation and the usage increment happen in one guarded UPDATE.
"""

from __future__ import annotations

import secrets
import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_api_key() -> str:
    return "rh_" + secrets.token_hex(24)


@dataclass(frozen=True)
class UserRow:
    id: str
    requests_used: int
    requests_limit: int

    @property
    def remaining_requests(self) -> int:
        return max(0, self.requests_limit - self.requests_used)


@dataclass(frozen=True)
class ApiKeyRow:
    id: str
    user_id: str
    key_name: str
    key_value: str
    is_active: bool
    requests_used: int
    requests_limit: int
    created_at: str = ""
    last_used_at: str = ""

    @property
    def remaining_requests(self) -> int:
        return max(0, self.requests_limit - self.requests_used)

    @property
    def preview(self) -> str:
        return self.key_value[:8] + "..."

    def to_dict(self, reveal: bool = False) -> Dict[str, Any]:
        payload = asdict(self)
        if not reveal:
            payload["key_value"] = self.preview
        payload["remaining_requests"] = self.remaining_requests
        return payload


_KEY_SELECT = """
    SELECT k.id, k.user_id, k.key_name, k.key_value, k.is_active, k.created_at,
           COALESCE(k.last_used_at, '') AS last_used_at,
           u.requests_used, u.requests_limit
    FROM api_keys k JOIN users u ON u.id = k.user_id
"""


class SqliteStore:
    def __init__(self, data_dir: Path, default_limit: int = 1000):
        self._lock = RLock()
        self._default_limit = int(default_limit)
        self._db_path = Path(data_dir) / "reelhub.db"
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA foreign_keys=ON;")
        self._migrate()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _migrate(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
            )
            row = self._conn.execute("SELECT version FROM schema_version").fetchone()
            if not row:
                self._conn.execute("INSERT INTO schema_version(version) VALUES (1)")

            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                  id TEXT PRIMARY KEY,
                  requests_used INTEGER NOT NULL DEFAULT 0,
                  requests_limit INTEGER NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS api_keys (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  key_name TEXT NOT NULL,
                  key_value TEXT UNIQUE NOT NULL,
                  is_active INTEGER NOT NULL DEFAULT 1,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  last_used_at TEXT,
                  FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                )
                """
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ---- users -----------------------------------------------------------

    def ensure_user(self, user_id: str, requests_limit: Optional[int] = None) -> UserRow:
        limit = self._default_limit if requests_limit is None else int(requests_limit)
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO users(id, requests_used, requests_limit, created_at) VALUES (?, 0, ?, ?)",
                (user_id, limit, _utc_now_iso()),
            )
        return self.get_user(user_id) or UserRow(id=user_id, requests_used=0, requests_limit=limit)

    def get_user(self, user_id: str) -> Optional[UserRow]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, requests_used, requests_limit FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return UserRow(id=row["id"], requests_used=int(row["requests_used"]), requests_limit=int(row["requests_limit"]))

    def set_user_limit(self, user_id: str, requests_limit: int) -> Optional[UserRow]:
        with self._lock, self._conn:
            self._conn.execute("UPDATE users SET requests_limit = ? WHERE id = ?", (int(requests_limit), user_id))
        return self.get_user(user_id)

    def reset_usage(self, user_id: str) -> Optional[UserRow]:
        with self._lock, self._conn:
            self._conn.execute("UPDATE users SET requests_used = 0 WHERE id = ?", (user_id,))
        return self.get_user(user_id)

    # ---- api keys --------------------------------------------------------

    def _key_from_row(self, row) -> ApiKeyRow:
        return ApiKeyRow(
            id=row["id"],
            user_id=row["user_id"],
            key_name=row["key_name"],
            key_value=row["key_value"],
            is_active=bool(row["is_active"]),
            requests_used=int(row["requests_used"]),
            requests_limit=int(row["requests_limit"]),
            created_at=row["created_at"],
            last_used_at=row["last_used_at"],
        )

    def create_api_key(self, user_id: str, key_name: str, key_value: Optional[str] = None) -> ApiKeyRow:
        self.ensure_user(user_id)
        key_id = str(uuid.uuid4())
        now = _utc_now_iso()
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO api_keys(id, user_id, key_name, key_value, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, 1, ?, ?)
                """,
                (key_id, user_id, key_name, key_value or generate_api_key(), now, now),
            )
        key = self.get_api_key(key_id)
        if key is None:
            raise sqlite3.DatabaseError(f"API key {key_id} missing after insert")
        return key

    def get_api_key(self, key_id: str) -> Optional[ApiKeyRow]:
        with self._lock:
            row = self._conn.execute(_KEY_SELECT + " WHERE k.id = ?", (key_id,)).fetchone()
        return self._key_from_row(row) if row else None

    def find_api_key(self, key_value: str) -> Optional[ApiKeyRow]:
        with self._lock:
            row = self._conn.execute(_KEY_SELECT + " WHERE k.key_value = ?", (key_value,)).fetchone()
        return self._key_from_row(row) if row else None

    def list_api_keys(self, user_id: Optional[str] = None) -> List[ApiKeyRow]:
        with self._lock:
            if user_id:
                rows = self._conn.execute(
                    _KEY_SELECT + " WHERE k.user_id = ? ORDER BY k.created_at", (user_id,)
                ).fetchall()
            else:
                rows = self._conn.execute(_KEY_SELECT + " ORDER BY k.created_at").fetchall()
        return [self._key_from_row(r) for r in rows]

    def set_api_key_active(self, key_id: str, is_active: bool) -> Optional[ApiKeyRow]:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE api_keys SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, _utc_now_iso(), key_id),
            )
        return self.get_api_key(key_id)

    def delete_api_key(self, key_id: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM api_keys WHERE id = ?", (key_id,))
            return cur.rowcount > 0

    def validate_and_increment(self, key_value: str) -> Optional[ApiKeyRow]:
        """
        Count one request against the key's user.

        Returns the updated key row, or None when the key is unknown, inactive,
        or its user has no requests left. The checks and the increment are one
        UPDATE, so concurrent requests cannot overshoot the limit.
        """
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE users SET requests_used = requests_used + 1
                WHERE id = (SELECT user_id FROM api_keys WHERE key_value = ? AND is_active = 1)
                  AND requests_used < requests_limit
                """,
                (key_value,),
            )
            if cur.rowcount != 1:
                return None
            self._conn.execute(
                "UPDATE api_keys SET last_used_at = ? WHERE key_value = ?",
                (_utc_now_iso(), key_value),
            )
        return self.find_api_key(key_value)
