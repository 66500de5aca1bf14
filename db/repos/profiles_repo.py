from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Iterator, List, Optional, Tuple

from models.profile import Profile
from services.domain_utils import public_identifier_from_url


_JSON_COLUMNS = ("experience", "education", "skills")

_COLUMNS = (
    "id",
    "public_identifier",
    "linkedin_url",
    "first_name",
    "last_name",
    "full_name",
    "headline",
    "location",
    "about",
    "profile_picture_url",
    "current_company",
    "current_title",
    "connection_degree",
    "connected_at",
    "experience",
    "education",
    "skills",
    "scraped_at",
    "last_interaction",
    "is_partial",
    "created_at",
    "updated_at",
)

# Free-text columns that the doubled-text backfill rewrites
TEXT_FIELDS = ("first_name", "last_name", "full_name", "headline")


def _row_to_profile(row: sqlite3.Row) -> Profile:
    data: Dict[str, Any] = {key: row[key] for key in row.keys()}
    for key in _JSON_COLUMNS:
        raw = data.get(key)
        # NULL means never observed; '[]' means observed and empty
        data[key] = json.loads(raw) if raw is not None else None
    data["is_partial"] = bool(data.get("is_partial"))
    return Profile.model_validate(data)


def _profile_to_params(profile: Profile) -> Tuple[Any, ...]:
    data = profile.model_dump()
    values: List[Any] = []
    for key in _COLUMNS:
        value = data.get(key)
        if key in _JSON_COLUMNS:
            value = json.dumps(value, ensure_ascii=False) if value is not None else None
        elif key == "is_partial":
            value = 1 if value else 0
        values.append(value)
    return tuple(values)


class ProfilesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # --- Writes ---
    def save(self, profile: Profile) -> None:
        """Insert or update a reconciled profile by public_identifier.

        The row mirrors `profile` exactly; merging happens before this call.
        id and created_at of an existing row are never changed.
        """
        placeholders = ", ".join(["?" for _ in _COLUMNS])
        updates = ", ".join(
            f"{col} = excluded.{col}" for col in _COLUMNS if col not in ("id", "public_identifier", "created_at")
        )
        sql = (
            f"INSERT INTO profiles ({', '.join(_COLUMNS)}) VALUES ({placeholders}) "
            f"ON CONFLICT(public_identifier) DO UPDATE SET {updates};"
        )
        self.conn.execute(sql, _profile_to_params(profile))

    def mark_full(self, public_identifier: str, updated_at: str) -> bool:
        cur = self.conn.execute(
            "UPDATE profiles SET is_partial = 0, updated_at = ? WHERE public_identifier = ? AND is_partial = 1",
            (updated_at, public_identifier),
        )
        return cur.rowcount > 0

    def update_text_fields(self, profile_id: str, fields: Dict[str, Optional[str]]) -> None:
        columns = [col for col in fields if col in TEXT_FIELDS]
        if not columns:
            return
        assignments = ", ".join(f"{col} = ?" for col in columns)
        self.conn.execute(
            f"UPDATE profiles SET {assignments} WHERE id = ?",
            (*[fields[col] for col in columns], profile_id),
        )

    # --- Reads ---
    def get_by_key(self, public_identifier: str) -> Optional[Profile]:
        row = self.conn.execute(
            "SELECT * FROM profiles WHERE public_identifier = ?", (public_identifier,)
        ).fetchone()
        return _row_to_profile(row) if row else None

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        row = self.conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return _row_to_profile(row) if row else None

    def get_by_url(self, url: str) -> Optional[Profile]:
        key = public_identifier_from_url(url)
        if not key:
            return None
        return self.get_by_key(key)

    def get_id_for_key(self, public_identifier: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT id FROM profiles WHERE public_identifier = ?", (public_identifier,)
        ).fetchone()
        return row[0] if row else None

    def exists(self, public_identifier: str) -> bool:
        return self.get_id_for_key(public_identifier) is not None

    def search(
        self,
        query: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Profile], int]:
        """Filtered search over scalar fields; returns (page, total matches).

        filters may hold company, title, location (substring matches) and
        connection_degree (list of 1/2/3) plus is_partial (bool).
        """
        where = ["1=1"]
        params: List[Any] = []
        if query:
            like = f"%{query}%"
            where.append(
                "(full_name LIKE ? OR headline LIKE ? OR current_company LIKE ? "
                "OR current_title LIKE ? OR location LIKE ?)"
            )
            params.extend([like] * 5)
        filters = filters or {}
        if filters.get("company"):
            where.append("current_company LIKE ?")
            params.append(f"%{filters['company']}%")
        if filters.get("title"):
            where.append("(current_title LIKE ? OR headline LIKE ?)")
            params.extend([f"%{filters['title']}%"] * 2)
        if filters.get("location"):
            where.append("location LIKE ?")
            params.append(f"%{filters['location']}%")
        degrees = [int(d) for d in (filters.get("connection_degree") or [])]
        if degrees:
            where.append(f"connection_degree IN ({', '.join('?' for _ in degrees)})")
            params.extend(degrees)
        if filters.get("is_partial") is not None:
            where.append("is_partial = ?")
            params.append(1 if filters["is_partial"] else 0)

        where_sql = " AND ".join(where)
        total = self.conn.execute(f"SELECT COUNT(*) FROM profiles WHERE {where_sql}", params).fetchone()[0]
        rows = self.conn.execute(
            f"SELECT * FROM profiles WHERE {where_sql} ORDER BY scraped_at DESC, id LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [_row_to_profile(r) for r in rows], int(total)

    def count(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM profiles").fetchone()[0])

    def count_partial(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM profiles WHERE is_partial = 1").fetchone()[0])

    def partial_keys(self, limit: Optional[int] = None) -> List[str]:
        sql = "SELECT public_identifier FROM profiles WHERE is_partial = 1 ORDER BY scraped_at ASC, id"
        if limit is not None:
            rows = self.conn.execute(f"{sql} LIMIT ?", (limit,)).fetchall()
        else:
            rows = self.conn.execute(sql).fetchall()
        return [r[0] for r in rows]

    def all_profiles(self) -> List[Profile]:
        rows = self.conn.execute("SELECT * FROM profiles ORDER BY scraped_at DESC, id").fetchall()
        return [_row_to_profile(r) for r in rows]

    def iter_text_fields(self) -> Iterator[Tuple[str, Dict[str, Optional[str]]]]:
        cols = ", ".join(TEXT_FIELDS)
        for row in self.conn.execute(f"SELECT id, {cols} FROM profiles").fetchall():
            yield row["id"], {col: row[col] for col in TEXT_FIELDS}
