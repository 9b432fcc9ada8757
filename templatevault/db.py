import json
import logging
import os
import sqlite3
from contextlib import contextmanager

logger = logging.getLogger("TemplateVault")

from .codec import decode_tag, decode_template, encode_tag, encode_template
from .constants import BUSY_TIMEOUT_MS, DEFAULT_SETTINGS, DEFAULT_TAGS, SCHEMA_VERSION
from .errors import StorageEngineError
from .models import CategoryCount, Tag
from .schema import SCHEMA_SQL, TAG_COLUMNS, TEMPLATE_COLUMNS
from .utils import now_iso, now_ms

_TEMPLATE_SELECT = f"SELECT {', '.join(TEMPLATE_COLUMNS)} FROM templates"
_TEMPLATE_UPSERT = (
    f"INSERT OR REPLACE INTO templates({', '.join(TEMPLATE_COLUMNS)}) "
    f"VALUES({', '.join('?' for _ in TEMPLATE_COLUMNS)})"
)
_TAG_UPSERT = f"INSERT OR REPLACE INTO tags({', '.join(TAG_COLUMNS)}) VALUES(?,?,?)"


class TemplateVaultStore:
    """Owns one sqlite connection and the templates/tags tables.

    Not thread-safe on its own; StoreHandle serializes every call.
    """

    def __init__(self, db_path):
        self.db_path = db_path
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        except OSError as exc:
            raise StorageEngineError(f"Failed to create data directory for {self.db_path}: {exc}") from exc
        self._conn = self._connect()
        try:
            self.ensure_schema()
        except StorageEngineError:
            self._conn.close()
            raise
        logger.info("Opened template store at %s (schema v%s)", self.db_path, SCHEMA_VERSION)

    def _connect(self):
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout = {int(BUSY_TIMEOUT_MS)}")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA case_sensitive_like = ON")
        except sqlite3.Error as exc:
            raise StorageEngineError(f"Failed to open database {self.db_path}: {exc}") from exc
        return conn

    @contextmanager
    def _transaction(self, action):
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as exc:
            raise StorageEngineError(f"Database error while trying to {action}: {exc}") from exc

    @property
    def in_transaction(self):
        return self._conn.in_transaction

    def rollback(self):
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            raise StorageEngineError(f"Rollback failed: {exc}") from exc

    def close(self):
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            raise StorageEngineError(f"Failed to close database: {exc}") from exc

    def ensure_schema(self):
        try:
            self._conn.executescript(SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise StorageEngineError(f"Failed to initialize schema: {exc}") from exc
        with self._transaction("record schema version") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta(key,value) VALUES('schema_version', ?)",
                (SCHEMA_VERSION,),
            )

    # ── templates ──

    def upsert_template(self, template):
        row = encode_template(template)
        with self._transaction("save template") as conn:
            conn.execute(_TEMPLATE_UPSERT, row)

    def batch_upsert_templates(self, templates):
        # Encode first; a bad record aborts before anything is written.
        rows = [encode_template(t) for t in templates]
        with self._transaction("import templates") as conn:
            conn.executemany(_TEMPLATE_UPSERT, rows)
        logger.info("Imported %d templates", len(rows))
        return len(rows)

    def get_all_templates(self):
        with self._transaction("list templates") as conn:
            rows = conn.execute(f"{_TEMPLATE_SELECT} ORDER BY updated_at DESC").fetchall()
        return [decode_template(r) for r in rows]

    def get_template_by_id(self, tpl_id):
        with self._transaction("load template") as conn:
            row = conn.execute(f"{_TEMPLATE_SELECT} WHERE id = ?", (tpl_id,)).fetchone()
        if row is None:
            return None
        return decode_template(row)

    def delete_template(self, tpl_id):
        with self._transaction("delete template") as conn:
            cur = conn.execute("DELETE FROM templates WHERE id = ?", (tpl_id,))
        return cur.rowcount

    def toggle_template_favorite(self, tpl_id):
        # updated_at never moves backwards, so every toggle advances it.
        with self._transaction("toggle favorite") as conn:
            cur = conn.execute(
                """
                UPDATE templates
                SET is_favorite = NOT is_favorite,
                    updated_at = MAX(?, updated_at + 1)
                WHERE id = ?
                """,
                (now_ms(), tpl_id),
            )
        return cur.rowcount

    def search_templates(self, keyword):
        # Raw, case-sensitive LIKE over title and the encoded sections text;
        # % and _ in the keyword act as wildcards.
        keyword = "" if keyword is None else str(keyword)
        like_q = f"%{keyword}%"
        logger.debug("search_templates keyword=%r", keyword)
        with self._transaction("search templates") as conn:
            rows = conn.execute(
                f"{_TEMPLATE_SELECT} WHERE title LIKE ? OR sections LIKE ? ORDER BY updated_at DESC",
                (like_q, like_q),
            ).fetchall()
        logger.debug("search_templates rows=%d", len(rows))
        return [decode_template(r) for r in rows]

    def get_all_diseases(self):
        return self._category_counts("disease")

    def get_all_template_types(self):
        return self._category_counts("template_type")

    def _category_counts(self, column):
        if column not in ("disease", "template_type"):
            raise ValueError(f"Unsupported category column: {column}")
        with self._transaction(f"count templates by {column}") as conn:
            rows = conn.execute(
                f"SELECT {column} AS name, COUNT(*) AS template_count "
                f"FROM templates GROUP BY {column} ORDER BY {column} ASC"
            ).fetchall()
        return [CategoryCount(name=r["name"], template_count=int(r["template_count"])) for r in rows]

    def clear_all_templates(self):
        with self._transaction("clear templates") as conn:
            cur = conn.execute("DELETE FROM templates")
        logger.info("Cleared %d templates", cur.rowcount)
        return cur.rowcount

    # ── tags ──

    def upsert_tag(self, tag):
        row = encode_tag(tag)
        with self._transaction("save tag") as conn:
            conn.execute(_TAG_UPSERT, row)

    def get_all_tags(self):
        with self._transaction("list tags") as conn:
            rows = conn.execute(f"SELECT {', '.join(TAG_COLUMNS)} FROM tags ORDER BY name ASC").fetchall()
        return [decode_tag(r) for r in rows]

    def reset_tags(self, reseed=False):
        with self._transaction("reset tags") as conn:
            cur = conn.execute("DELETE FROM tags")
            if reseed:
                conn.executemany(_TAG_UPSERT, [encode_tag(Tag(**t)) for t in DEFAULT_TAGS])
        logger.info("Reset tags: removed=%d reseeded=%s", cur.rowcount, bool(reseed))
        return cur.rowcount

    def seed_default_tags(self):
        rows = [encode_tag(Tag(**t)) for t in DEFAULT_TAGS]
        with self._transaction("seed default tags") as conn:
            conn.executemany(_TAG_UPSERT, rows)
        return len(rows)

    # ── bundle / settings ──

    def export_bundle(self):
        return {
            "version": SCHEMA_VERSION,
            "exportedAt": now_iso(),
            "templates": [t.to_dict() for t in self.get_all_templates()],
            "tags": [t.to_dict() for t in self.get_all_tags()],
        }

    def get_settings(self) -> dict:
        with self._transaction("load settings") as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = 'settings'").fetchone()
        if row:
            try:
                stored = json.loads(row["value"])
            except (json.JSONDecodeError, TypeError):
                logger.warning("Ignoring unreadable settings value in meta table")
            else:
                if isinstance(stored, dict):
                    return {**DEFAULT_SETTINGS, **stored}
        return dict(DEFAULT_SETTINGS)

    def set_settings(self, settings: dict):
        merged = {**self.get_settings(), **(settings or {})}
        with self._transaction("save settings") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta(key, value) VALUES('settings', ?)",
                (json.dumps(merged, ensure_ascii=False),),
            )
        return merged
