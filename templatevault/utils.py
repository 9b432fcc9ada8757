import json
import time
from datetime import datetime, timezone


def now_ms():
    return int(time.time() * 1000)


def now_iso():
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def json_dumps(obj):
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
