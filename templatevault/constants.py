APP_NAME = "TemplateVault"
SCHEMA_VERSION = "1"

DB_FILENAME = "template.db"
DATA_DIR_ENV = "TEMPLATEVAULT_DATA_DIR"
BUSY_TIMEOUT_MS = 5000

DEFAULT_TAGS = [
    {"id": "common", "name": "常用", "color": "#4caf50"},
    {"id": "emergency", "name": "急诊", "color": "#e53935"},
    {"id": "surgery", "name": "手术", "color": "#ff9800"},
    {"id": "pediatric", "name": "儿科", "color": "#9c27b0"},
]

DEFAULT_SETTINGS = {
    "main_visible": True,
    "float_visible": False,
}
