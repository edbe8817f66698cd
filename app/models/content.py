"""Tagged variants for message content."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.models.messages import ContentPart, ImageUrlPart, TextPart


@dataclass(frozen=True)
class TextContent:
    """Content that is already plain text."""

    text: str


@dataclass(frozen=True)
class PartsContent:
    """Ordered sequence of content parts.

    Entries that are neither a text nor an image part are kept as they came
    in and ignored by the flatteners.
    """

    parts: tuple[ContentPart | Any, ...]

    def text_parts(self) -> list[TextPart]:
        return [part for part in self.parts if isinstance(part, TextPart)]


@dataclass(frozen=True)
class UnknownContent:
    """Any other content shape, including ``None``."""

    value: Any


Content = TextContent | PartsContent | UnknownContent


def _parse_part(raw: Any) -> ContentPart | Any:
    if isinstance(raw, TextPart | ImageUrlPart):
        return raw
    if not isinstance(raw, Mapping):
        return raw

    try:
        if raw.get("type") == "text":
            return TextPart.model_validate(raw)
        if raw.get("type") == "image_url":
            return ImageUrlPart.model_validate(raw)
    except Exception:
        # Malformed or unconvertible parts stay raw and are ignored by the flatteners
        pass
    return raw


def classify_content(value: Any) -> Content:
    """Classify a raw ``content`` value into one of the content variants."""
    if isinstance(value, str):
        return TextContent(value)
    if isinstance(value, list | tuple):
        return PartsContent(tuple(_parse_part(part) for part in value))
    return UnknownContent(value)


def stringify(value: Any) -> str:
    """Best-effort textual representation; ``None`` becomes an empty string."""
    if value is None:
        return ""
    return str(value)
