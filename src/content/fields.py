"""Editor field catalogue: labelled content fields grouped in sections.

The admin panel presents content as sections of fields, each bound to
a dotted content key.  A schema is declared in TOML::

    [[sections]]
    title = "Hero Section"

    [[sections.fields]]
    label = "Main Heading"
    key = "studio.hero.heading"
    default = "Create content at the speed of thought"

    [[sections.fields]]
    label = "Hero Background Image"
    key = "studio.hero.image"
    type = "image"
"""

from __future__ import annotations

import logging
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class FieldType(StrEnum):
    TEXT = "text"
    TEXTAREA = "textarea"
    IMAGE = "image"
    COLOR = "color"


class ContentField(BaseModel):
    """A single editable value bound to a dotted content key."""

    label: str
    key: str
    type: FieldType = FieldType.TEXT
    default: str = ""
    help: str = ""


class FieldSection(BaseModel):
    title: str
    fields: list[ContentField] = Field(default_factory=list)


class FieldSchema(BaseModel):
    sections: list[FieldSection] = Field(default_factory=list)

    def find(self, key: str) -> ContentField | None:
        """Return the field bound to ``key``, if any."""
        for section in self.sections:
            for field in section.fields:
                if field.key == key:
                    return field
        return None


class _Readable(Protocol):
    def get(self, path: str, default: Any = None) -> Any: ...


def load_field_schema(path: str | Path) -> FieldSchema:
    """Load a field schema from TOML.

    Returns an empty schema if the file is missing or invalid.
    """
    schema_path = Path(path)
    if not schema_path.exists():
        logger.warning("Field schema not found: %s", schema_path)
        return FieldSchema()
    try:
        with open(schema_path, "rb") as f:
            return FieldSchema.model_validate(tomllib.load(f))
    except (tomllib.TOMLDecodeError, OSError, ValidationError) as exc:
        logger.warning("Failed to parse field schema %s: %s", schema_path, exc)
        return FieldSchema()


def resolve_fields(schema: FieldSchema, content: _Readable) -> list[tuple[str, ContentField, Any]]:
    """Pair every field with its current value (or its default).

    Returns ``(section_title, field, value)`` tuples in schema order.
    """
    rows = []
    for section in schema.sections:
        for field in section.fields:
            rows.append((section.title, field, content.get(field.key, field.default)))
    return rows
