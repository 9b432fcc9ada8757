from dataclasses import dataclass, field


@dataclass
class TemplateSection:
    title: str
    content: str

    def to_dict(self):
        return {"title": self.title, "content": self.content}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("section must be an object with title and content")
        return cls(title=str(data.get("title", "") or ""), content=str(data.get("content", "") or ""))


@dataclass
class Template:
    """A report template as seen by callers.

    ``sections`` keeps its order; ``tags`` holds Tag ids and is not checked
    against the tags table.
    """

    id: str
    title: str
    sections: list[TemplateSection] = field(default_factory=list)
    disease: str = ""
    template_type: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0
    is_favorite: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "sections": [s.to_dict() for s in self.sections],
            "disease": self.disease,
            "templateType": self.template_type,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isFavorite": self.is_favorite,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("template must be a JSON object")
        tpl_id = _require_id(data.get("id"), "template id")
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("template title is required")

        sections = data.get("sections") or []
        if not isinstance(sections, list):
            raise ValueError("sections must be a list")
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValueError("tags must be a list")

        return cls(
            id=tpl_id,
            title=title,
            sections=[TemplateSection.from_dict(s) for s in sections],
            disease=str(data.get("disease", "") or ""),
            template_type=str(data.get("templateType", "") or ""),
            tags=[str(t) for t in tags],
            created_at=_to_int(data.get("createdAt")),
            updated_at=_to_int(data.get("updatedAt")),
            is_favorite=_to_bool(data.get("isFavorite", False)),
        )

    def to_text(self):
        # Plain-text rendering used for copy-to-clipboard.
        return "\n".join(f"{s.title}：{s.content}" for s in self.sections)


@dataclass
class Tag:
    id: str
    name: str
    color: str = ""

    def to_dict(self):
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("tag must be a JSON object")
        tag_id = _require_id(data.get("id"), "tag id")
        return cls(id=tag_id, name=str(data.get("name", "") or ""), color=str(data.get("color", "") or ""))


@dataclass
class CategoryCount:
    name: str
    template_count: int

    def to_dict(self):
        return {"name": self.name, "templateCount": self.template_count}


def _require_id(value, what):
    # Ids are opaque: kept byte-for-byte, only blank ones are refused.
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{what} is required")
    return value


def _to_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


_TRUE_STRINGS = ("true", "1", "yes")
_FALSE_STRINGS = ("false", "0", "no", "")


def _to_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"isFavorite must be a boolean, got {value!r}")
