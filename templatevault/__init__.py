from .constants import APP_NAME, SCHEMA_VERSION
from .errors import (
    DecodeError,
    EncodeError,
    LockError,
    NotInitializedError,
    StorageEngineError,
    StoreError,
)
from .handle import StoreHandle
from .models import CategoryCount, Tag, Template, TemplateSection

VERSION = "1.0.0"

__all__ = [
    "APP_NAME",
    "SCHEMA_VERSION",
    "VERSION",
    "CategoryCount",
    "DecodeError",
    "EncodeError",
    "LockError",
    "NotInitializedError",
    "StorageEngineError",
    "StoreError",
    "StoreHandle",
    "Tag",
    "Template",
    "TemplateSection",
]
