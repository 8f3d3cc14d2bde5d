import re
from typing import Any, Optional
from bson import ObjectId
from bson.errors import InvalidId


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip the ends"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a Mongo ObjectId, returning None for anything malformed"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None
