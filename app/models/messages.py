"""Chat message data models."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class TextPart(BaseModel):
    """Text content part."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["text"] = "text"
    text: str

    @field_validator("text", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        """Accept non-string text (numbers, ...) as its string form."""
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ImageUrl(BaseModel):
    """Reference to an image."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str


class ImageUrlPart(BaseModel):
    """Image reference content part."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = TextPart | ImageUrlPart


class Message(BaseModel):
    """A single conversation turn.

    ``content`` is left untyped on purpose so that whatever the caller sent
    reaches the normalizer; see ``app.models.content.classify_content``.
    ``role`` is whatever the backend protocol allows (``developer``,
    ``function``, ...); only ``assistant`` is treated specially downstream.
    Provider specific fields (``name``, ``tool_call_id``, ...) are kept as
    extras and survive every transform.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    role: str
    content: Any = None


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing one message.

    ``diagnostic`` is set whenever a degraded replacement was produced
    instead of the real content.
    """

    message: Message
    diagnostic: str | None = None

    @property
    def degraded(self) -> bool:
        return self.diagnostic is not None


class ChatCompletionRequest(BaseModel):
    """Incoming chat completion request.

    Only the fields the proxy touches are declared; everything else is
    forwarded to the backend untouched.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[Message]
    stream: bool | None = None

    def to_backend_payload(self, messages: list[Message]) -> dict[str, Any]:
        """Build the backend payload with the given (normalized) messages."""
        payload = self.model_dump(exclude={"messages"}, exclude_none=True)
        payload["messages"] = [message.model_dump(exclude_none=True) for message in messages]
        payload["stream"] = False
        return payload
