"""Conversion between Template/Tag records and their stored rows.

``sections`` and ``tags`` are stored as JSON text. Everything else maps
one column to one field.
"""

import json

from .errors import DecodeError, EncodeError
from .models import Tag, Template, TemplateSection
from .utils import json_dumps


def _check_str(value, what):
    if not isinstance(value, str):
        raise EncodeError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _check_millis(value, what):
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f"{what} must be an integer millisecond timestamp, got {value!r}")
    return value


def encode_sections(sections):
    if not isinstance(sections, (list, tuple)):
        raise EncodeError(f"sections must be a list, got {type(sections).__name__}")
    items = []
    for s in sections:
        if not isinstance(s, TemplateSection):
            raise EncodeError(f"Expected TemplateSection, got {type(s).__name__}")
        items.append(
            {
                "title": _check_str(s.title, "section title"),
                "content": _check_str(s.content, "section content"),
            }
        )
    return json_dumps(items)


def encode_tag_ids(tags):
    if not isinstance(tags, (list, tuple)):
        raise EncodeError(f"tags must be a list of tag ids, got {type(tags).__name__}")
    return json_dumps([_check_str(t, "tag id") for t in tags])


def encode_template(template):
    if not isinstance(template, Template):
        raise EncodeError(f"Expected Template, got {type(template).__name__}")
    if template.is_favorite not in (True, False):
        raise EncodeError(f"is_favorite must be a boolean, got {template.is_favorite!r}")
    return (
        _check_str(template.id, "template id"),
        template.title,
        encode_sections(template.sections),
        template.disease,
        template.template_type,
        encode_tag_ids(template.tags),
        _check_millis(template.created_at, "created_at"),
        _check_millis(template.updated_at, "updated_at"),
        1 if template.is_favorite else 0,
    )


def decode_sections(raw, record_id=None):
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DecodeError(record_id, "sections", exc) from exc
    if not isinstance(data, list):
        raise DecodeError(record_id, "sections", "expected a JSON array")

    sections = []
    for item in data:
        if not isinstance(item, dict) or "title" not in item or "content" not in item:
            raise DecodeError(record_id, "sections", "section must have title and content")
        sections.append(TemplateSection(title=str(item["title"]), content=str(item["content"])))
    return sections


def decode_tag_ids(raw, record_id=None):
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DecodeError(record_id, "tags", exc) from exc
    if not isinstance(data, list) or not all(isinstance(t, str) for t in data):
        raise DecodeError(record_id, "tags", "expected a JSON array of strings")
    return data


def decode_template(row):
    record_id = row["id"]
    return Template(
        id=record_id,
        title=row["title"],
        sections=decode_sections(row["sections"], record_id),
        disease=row["disease"],
        template_type=row["template_type"],
        tags=decode_tag_ids(row["tags"], record_id),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
        is_favorite=bool(row["is_favorite"]),
    )


def encode_tag(tag):
    if not isinstance(tag, Tag):
        raise EncodeError(f"Expected Tag, got {type(tag).__name__}")
    return (tag.id, tag.name, tag.color)


def decode_tag(row):
    return Tag(id=row["id"], name=row["name"], color=row["color"])
