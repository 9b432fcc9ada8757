SCHEMA_SQL = r"""
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS templates (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  sections TEXT NOT NULL,
  disease TEXT NOT NULL,
  template_type TEXT NOT NULL,
  tags TEXT NOT NULL,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  is_favorite INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tags (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  color TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_templates_updated ON templates(updated_at);
"""

TEMPLATE_COLUMNS = (
    "id",
    "title",
    "sections",
    "disease",
    "template_type",
    "tags",
    "created_at",
    "updated_at",
    "is_favorite",
)

TAG_COLUMNS = ("id", "name", "color")
